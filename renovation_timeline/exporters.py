"""Export helpers for iCalendar and PDF."""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from PyQt6.QtCore import QRectF, Qt
from PyQt6.QtGui import QColor, QFont, QPageLayout, QPageSize, QPainter, QPdfWriter, QPen

from .chart import EMPTY_MESSAGE, GRID_COLOR, HEADER_COLOR, HEADER_HEIGHT, TEXT_COLOR, paint_timeline
from .config import DEFAULT_CALENDAR_NAME, ChartSettings
from .labels import STATUS_LABELS
from .models import Task, TaskStatus
from .timeline import build_layout

logger = logging.getLogger(__name__)

ICS_PRODID = "-//Renovation Timeline//Renovation Schedule//EN"
ICS_UID_DOMAIN = "renovation-timeline"
ICS_SUMMARY_PREFIX = "Renovation: "

PDF_PAGE_MARGIN_RATIO = 0.04
PDF_LABEL_COL_WIDTH = 260
PDF_LABEL_PADDING = 6
PDF_FONT_PIXEL_SIZE = 10


def _escape_text(value: str) -> str:
    """Escape TEXT values per RFC 5545 (backslash, semicolon, comma, newline)."""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
        .replace("\r", "\\n")
    )


def _ics_date(value: date) -> str:
    return value.strftime("%Y%m%d")


def _event_lines(task: Task, start: date, end_exclusive: date, stamp: str) -> List[str]:
    status = "COMPLETED" if task.status == TaskStatus.COMPLETE else "CONFIRMED"
    return [
        "BEGIN:VEVENT",
        f"UID:{task.id}@{ICS_UID_DOMAIN}",
        f"DTSTAMP:{stamp}",
        f"DTSTART;VALUE=DATE:{_ics_date(start)}",
        f"DTEND;VALUE=DATE:{_ics_date(end_exclusive)}",
        f"SUMMARY:{_escape_text(ICS_SUMMARY_PREFIX + task.name)}",
        f"DESCRIPTION:{_escape_text(task.notes or '')}",
        f"STATUS:{status}",
        "END:VEVENT",
    ]


def build_ics(
    tasks: Iterable[Task],
    *,
    calendar_name: str = DEFAULT_CALENDAR_NAME,
    stamp: Optional[datetime] = None,
) -> str:
    """Render milestones, then ranged tasks, as all-day calendar events.

    All-day DTEND is exclusive, so ranged events end the day after the task's
    inclusive end date and milestones span their single day.
    """
    task_list = list(tasks)
    stamp_text = (stamp or datetime.now(timezone.utc)).astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{ICS_PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{_escape_text(calendar_name)}",
    ]
    for task in task_list:
        if task.is_milestone:
            lines.extend(_event_lines(task, task.start, task.start + timedelta(days=1), stamp_text))
    for task in task_list:
        if not task.is_milestone:
            end = max(task.end, task.start)
            lines.extend(_event_lines(task, task.start, end + timedelta(days=1), stamp_text))
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"


def export_as_ics(
    path: Path | str,
    tasks: Iterable[Task],
    *,
    calendar_name: str = DEFAULT_CALENDAR_NAME,
    stamp: Optional[datetime] = None,
) -> None:
    """Write the schedule as an .ics calendar file."""
    ics_path = Path(path)
    ics_path.parent.mkdir(parents=True, exist_ok=True)
    content = build_ics(tasks, calendar_name=calendar_name, stamp=stamp)
    with ics_path.open("w", newline="", encoding="utf-8") as handle:
        handle.write(content)
    logger.info("Exported calendar to %s", ics_path)


def export_as_pdf(
    path: Path | str,
    tasks: Iterable[Task],
    settings: Optional[ChartSettings] = None,
    *,
    today: Optional[date] = None,
) -> None:
    """Render the Gantt chart, with a task label column, to a landscape A4 PDF."""
    pdf_path = Path(path)
    pdf_path.parent.mkdir(parents=True, exist_ok=True)
    settings = settings or ChartSettings()

    writer = QPdfWriter(str(pdf_path))
    writer.setPageSize(QPageSize(QPageSize.PageSizeId.A4))
    writer.setPageOrientation(QPageLayout.Orientation.Landscape)
    writer.setResolution(300)

    task_list = list(tasks)
    painter = QPainter()
    if not painter.begin(writer):
        raise OSError(f"Cannot write PDF to {pdf_path}")
    _draw_pdf_chart(painter, writer, task_list, settings, today)
    painter.end()
    logger.info("Exported PDF with %d tasks to %s", len(task_list), pdf_path)


def _compute_scale(content_rect, total_width: float, total_height: float) -> float:
    """Fit the whole chart onto the page, preserving its aspect ratio."""
    return min(content_rect.width() / max(1.0, total_width), content_rect.height() / max(1.0, total_height))


def _draw_pdf_chart(
    painter: QPainter,
    writer: QPdfWriter,
    tasks: Sequence[Task],
    settings: ChartSettings,
    today: Optional[date],
) -> None:
    page_rect = writer.pageLayout().paintRectPixels(writer.resolution())
    margin = int(page_rect.width() * PDF_PAGE_MARGIN_RATIO)
    content_rect = page_rect.adjusted(margin, margin, -margin, -margin)

    if not tasks:
        painter.setPen(QPen(TEXT_COLOR))
        painter.drawText(QRectF(content_rect), Qt.AlignmentFlag.AlignCenter, EMPTY_MESSAGE)
        return

    layout = build_layout(
        tasks,
        day_width_px=settings.day_width_px,
        row_height_px=settings.row_height_px,
        tick_interval_days=settings.tick_interval_days,
        milestone_size_px=settings.milestone_size_px,
        today=today,
    )
    total_width = PDF_LABEL_COL_WIDTH + layout.width_px
    total_height = HEADER_HEIGHT + layout.height_px
    scale = _compute_scale(content_rect, total_width, total_height)

    painter.translate(content_rect.left(), content_rect.top())
    painter.scale(scale, scale)
    _draw_label_column(painter, tasks, settings.row_height_px)
    painter.translate(PDF_LABEL_COL_WIDTH, 0)
    paint_timeline(painter, layout, tasks)


def _draw_label_column(painter: QPainter, tasks: Sequence[Task], row_height: int) -> None:
    painter.save()
    font = QFont(painter.font())
    font.setPixelSize(PDF_FONT_PIXEL_SIZE)
    painter.setFont(font)

    header = QRectF(0, 0, PDF_LABEL_COL_WIDTH, HEADER_HEIGHT)
    painter.fillRect(header, HEADER_COLOR)
    painter.setPen(QPen(GRID_COLOR, 1))
    painter.drawRect(header)
    painter.setPen(QPen(TEXT_COLOR))
    painter.drawText(
        header.adjusted(PDF_LABEL_PADDING, 0, -PDF_LABEL_PADDING, 0),
        Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignBottom,
        "Task",
    )

    for row, task in enumerate(tasks):
        rect = QRectF(0, HEADER_HEIGHT + row * row_height, PDF_LABEL_COL_WIDTH, row_height)
        painter.setPen(QPen(GRID_COLOR, 1))
        painter.drawRect(rect)
        painter.setPen(QPen(QColor("#0f172a")))
        name = f"◆ {task.name}" if task.is_milestone else task.name
        text_rect = rect.adjusted(PDF_LABEL_PADDING, 0, -PDF_LABEL_PADDING, 0)
        painter.drawText(text_rect, Qt.AlignmentFlag.AlignVCenter | Qt.AlignmentFlag.AlignLeft, name)
        painter.setPen(QPen(TEXT_COLOR))
        painter.drawText(text_rect, Qt.AlignmentFlag.AlignVCenter | Qt.AlignmentFlag.AlignRight, STATUS_LABELS[task.status])
    painter.restore()
