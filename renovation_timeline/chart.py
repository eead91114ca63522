"""Gantt chart painting shared by the interactive widget and the PDF export."""
from __future__ import annotations

from datetime import date
from typing import Dict, Mapping, Optional, Sequence

from PyQt6.QtCore import QEvent, QPointF, QRectF, QSize, Qt, pyqtSignal
from PyQt6.QtGui import QBrush, QColor, QFont, QPainter, QPainterPath, QPen, QPolygonF
from PyQt6.QtWidgets import QToolTip, QWidget

from .config import ChartSettings
from .labels import task_tooltip
from .models import Contractor, MilestoneMarker, Task, WorkPackage
from .timeline import TimelineLayout, arrow_path, build_layout, style_for

HEADER_HEIGHT = 52  # month labels + day ticks
MONTH_ROW_HEIGHT = 28
TICK_LENGTH = 8
BAR_HEIGHT = 16
MIN_BAR_PAINT_WIDTH = 4
BAR_LABEL_MIN_WIDTH = 50
MONTH_LABEL_MIN_WIDTH = 40
ARROW_HEAD_LENGTH = 8
ARROW_HEAD_HALF_WIDTH = 3
FONT_PIXEL_SIZE = 9

HEADER_COLOR = QColor("#f1f5f9")
GRID_COLOR = QColor("#cbd5e1")
TEXT_COLOR = QColor("#475569")
STRIPE_COLOR = QColor("#f8fafc")
ARROW_COLOR = QColor("#94a3b8")
TODAY_COLOR = QColor("#f87171")
BAR_TEXT_COLOR = QColor("white")
EMPTY_TEXT_COLOR = QColor("#94a3b8")

TODAY_TAG = "Today"
TODAY_TAG_WIDTH = 34
TODAY_TAG_HEIGHT = 14
EMPTY_MESSAGE = "No tasks scheduled yet. Add a task to see the Gantt chart."


def paint_timeline(painter: QPainter, layout: TimelineLayout, tasks: Sequence[Task]) -> None:
    """Paint header and body at the painter's origin, in layout pixel units."""
    painter.save()
    painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
    font = QFont(painter.font())
    font.setPixelSize(FONT_PIXEL_SIZE)
    painter.setFont(font)

    _paint_header(painter, layout)
    painter.translate(0, HEADER_HEIGHT)
    _paint_rows(painter, layout, len(tasks))
    _paint_today_line(painter, layout)
    _paint_arrows(painter, layout)
    _paint_tasks(painter, layout, tasks)
    _paint_today_tag(painter, layout)
    painter.restore()


def _paint_header(painter: QPainter, layout: TimelineLayout) -> None:
    dw = layout.day_width_px
    painter.fillRect(QRectF(0, 0, layout.width_px, HEADER_HEIGHT), HEADER_COLOR)
    painter.setPen(QPen(GRID_COLOR, 1))
    for span in layout.month_spans:
        rect = QRectF(span.start_day_offset * dw, 0, span.day_count * dw, MONTH_ROW_HEIGHT)
        painter.setPen(QPen(GRID_COLOR, 1))
        painter.drawLine(rect.topRight(), rect.bottomRight())
        if rect.width() > MONTH_LABEL_MIN_WIDTH:
            painter.setPen(TEXT_COLOR)
            painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, span.label)

    for tick in layout.day_ticks:
        x = tick.day_offset * dw
        painter.setPen(QPen(GRID_COLOR, 1))
        painter.drawLine(QPointF(x, MONTH_ROW_HEIGHT), QPointF(x, MONTH_ROW_HEIGHT + TICK_LENGTH))
        painter.setPen(TEXT_COLOR)
        label_rect = QRectF(x - 10, MONTH_ROW_HEIGHT + TICK_LENGTH, 20, HEADER_HEIGHT - MONTH_ROW_HEIGHT - TICK_LENGTH)
        painter.drawText(label_rect, Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignTop, tick.label)

    painter.setPen(QPen(GRID_COLOR, 1))
    painter.drawLine(QPointF(0, HEADER_HEIGHT), QPointF(layout.width_px, HEADER_HEIGHT))


def _paint_rows(painter: QPainter, layout: TimelineLayout, row_count: int) -> None:
    rh = layout.row_height_px
    for row in range(row_count):
        rect = QRectF(0, row * rh, layout.width_px, rh)
        if row % 2 == 1:
            painter.fillRect(rect, STRIPE_COLOR)
        painter.setPen(QPen(GRID_COLOR, 1))
        painter.drawLine(rect.bottomLeft(), rect.bottomRight())


def today_tag_rect(layout: TimelineLayout) -> Optional[QRectF]:
    """Rect of the "Today" tag in body coordinates, sitting on the header's bottom edge."""
    if layout.today_offset is None:
        return None
    x = layout.today_offset * layout.day_width_px
    left = min(max(x - TODAY_TAG_WIDTH / 2, 0), max(layout.width_px - TODAY_TAG_WIDTH, 0))
    return QRectF(left, -TODAY_TAG_HEIGHT, TODAY_TAG_WIDTH, TODAY_TAG_HEIGHT)


def _paint_today_line(painter: QPainter, layout: TimelineLayout) -> None:
    if layout.today_offset is None:
        return
    pen = QPen(TODAY_COLOR, 2)
    pen.setStyle(Qt.PenStyle.DashLine)
    painter.setPen(pen)
    x = layout.today_offset * layout.day_width_px
    painter.drawLine(QPointF(x, 0), QPointF(x, layout.height_px))


def _paint_today_tag(painter: QPainter, layout: TimelineLayout) -> None:
    rect = today_tag_rect(layout)
    if rect is None:
        return
    painter.setPen(Qt.PenStyle.NoPen)
    painter.setBrush(QBrush(TODAY_COLOR))
    painter.drawRoundedRect(rect, 3, 3)
    painter.setPen(BAR_TEXT_COLOR)
    painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, TODAY_TAG)


def paint_empty_state(painter: QPainter, rect: QRectF) -> None:
    painter.save()
    painter.setPen(EMPTY_TEXT_COLOR)
    painter.drawText(rect, Qt.AlignmentFlag.AlignCenter | Qt.TextFlag.TextWordWrap, EMPTY_MESSAGE)
    painter.restore()


def _paint_arrows(painter: QPainter, layout: TimelineLayout) -> None:
    pen = QPen(ARROW_COLOR, 1.5)
    for arrow in layout.arrows:
        start, control_a, control_b, end = (QPointF(x, y) for x, y in arrow_path(arrow))
        path = QPainterPath(start)
        path.cubicTo(control_a, control_b, end)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPath(path)

        direction = 1 if end.x() >= control_b.x() else -1
        head = QPolygonF([
            end,
            QPointF(end.x() - ARROW_HEAD_LENGTH * direction, end.y() - ARROW_HEAD_HALF_WIDTH),
            QPointF(end.x() - ARROW_HEAD_LENGTH * direction, end.y() + ARROW_HEAD_HALF_WIDTH),
        ])
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QBrush(ARROW_COLOR))
        painter.drawPolygon(head)


def _paint_tasks(painter: QPainter, layout: TimelineLayout, tasks: Sequence[Task]) -> None:
    rh = layout.row_height_px
    for row, task in enumerate(tasks):
        anchor = layout.anchor_for(task.id)
        if anchor is None:
            continue
        style = style_for(task)
        painter.setPen(QPen(QColor(style.border), 1))
        painter.setBrush(QBrush(QColor(style.fill)))
        center_y = row * rh + rh / 2
        if isinstance(anchor, MilestoneMarker):
            half = anchor.size_px / 2
            diamond = QPolygonF([
                QPointF(anchor.center_px, center_y - half),
                QPointF(anchor.center_px + half, center_y),
                QPointF(anchor.center_px, center_y + half),
                QPointF(anchor.center_px - half, center_y),
            ])
            painter.drawPolygon(diamond)
            continue
        rect = QRectF(anchor.left_px, center_y - BAR_HEIGHT / 2, max(anchor.width_px, MIN_BAR_PAINT_WIDTH), BAR_HEIGHT)
        painter.drawRoundedRect(rect, 2, 2)
        if anchor.width_px > BAR_LABEL_MIN_WIDTH:
            painter.setPen(BAR_TEXT_COLOR)
            painter.drawText(rect.adjusted(4, 0, -4, 0), Qt.AlignmentFlag.AlignVCenter | Qt.AlignmentFlag.AlignLeft, task.name)


class GanttChartWidget(QWidget):
    """Scrollable chart body; emits `task_clicked` with the Task under the cursor."""

    task_clicked = pyqtSignal(object)

    def __init__(self, settings: Optional[ChartSettings] = None, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.settings = settings or ChartSettings()
        self.tasks: list[Task] = []
        self.work_packages: Dict[str, WorkPackage] = {}
        self.contractors: Dict[str, Contractor] = {}
        self.timeline_layout = build_layout([], **self._layout_options())
        self.setMouseTracking(True)
        self._apply_size()

    def _layout_options(self, today: Optional[date] = None) -> dict:
        return {
            "day_width_px": self.settings.day_width_px,
            "row_height_px": self.settings.row_height_px,
            "tick_interval_days": self.settings.tick_interval_days,
            "milestone_size_px": self.settings.milestone_size_px,
            "today": today,
        }

    def set_tasks(
        self,
        tasks: Sequence[Task],
        work_packages: Optional[Mapping[str, WorkPackage]] = None,
        contractors: Optional[Mapping[str, Contractor]] = None,
        *,
        today: Optional[date] = None,
    ) -> None:
        """Recompute the layout from scratch for a new task list."""
        self.tasks = list(tasks)
        self.work_packages = dict(work_packages or {})
        self.contractors = dict(contractors or {})
        self.timeline_layout = build_layout(self.tasks, **self._layout_options(today))
        self._apply_size()
        self.update()

    def _apply_size(self) -> None:
        self.setMinimumSize(self.sizeHint())

    def sizeHint(self) -> QSize:  # type: ignore[override]
        return QSize(self.timeline_layout.width_px, HEADER_HEIGHT + self.timeline_layout.height_px)

    def task_at(self, x: float, y: float) -> Optional[Task]:
        """Return the task whose bar or marker covers the point, if any."""
        row = int((y - HEADER_HEIGHT) // self.timeline_layout.row_height_px)
        if y < HEADER_HEIGHT or row >= len(self.tasks):
            return None
        task = self.tasks[row]
        anchor = self.timeline_layout.anchor_for(task.id)
        if anchor is None:
            return None
        if isinstance(anchor, MilestoneMarker):
            hit = abs(x - anchor.center_px) <= anchor.size_px / 2
        else:
            hit = anchor.left_px <= x <= anchor.left_px + max(anchor.width_px, MIN_BAR_PAINT_WIDTH)
        return task if hit else None

    def paintEvent(self, event):  # type: ignore[override]
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor("white"))
        if self.tasks:
            paint_timeline(painter, self.timeline_layout, self.tasks)
        else:
            paint_empty_state(painter, QRectF(self.rect()))
        painter.end()

    def mousePressEvent(self, event):  # type: ignore[override]
        if event.button() == Qt.MouseButton.LeftButton:
            task = self.task_at(event.position().x(), event.position().y())
            if task is not None:
                self.task_clicked.emit(task)
        super().mousePressEvent(event)

    def event(self, event):  # type: ignore[override]
        if event.type() == QEvent.Type.ToolTip:
            task = self.task_at(event.pos().x(), event.pos().y())
            if task is None:
                QToolTip.hideText()
            else:
                text = "\n".join(task_tooltip(task, self.work_packages, self.contractors))
                QToolTip.showText(event.globalPos(), text, self)
            return True
        return super().event(event)
