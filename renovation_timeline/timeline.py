"""Timeline layout engine: date range, axis, bars, milestones and dependency arrows.

Every function here is a pure computation over an in-memory task list. The
chart widget and the PDF exporter both draw from the ``TimelineLayout``
produced by :func:`build_layout`.
"""
from __future__ import annotations

import calendar
import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .config import DEFAULT_DAY_WIDTH, DEFAULT_MILESTONE_SIZE, DEFAULT_ROW_HEIGHT, DEFAULT_TICK_INTERVAL
from .labels import STATUS_LABELS, month_label
from .models import (
    DayTick,
    DependencyArrow,
    MilestoneMarker,
    MonthSpan,
    Task,
    TaskBar,
    TaskStatus,
    TimelineRange,
    floor_to_day,
)

logger = logging.getLogger(__name__)

RANGE_PADDING_DAYS = 7
EMPTY_RANGE_DAYS_BEFORE = 7
EMPTY_RANGE_DAYS_AFTER = 60

Anchor = Union[TaskBar, MilestoneMarker]


@dataclass(frozen=True)
class StatusStyle:
    label: str
    fill: str
    border: str


STATUS_STYLES: Dict[TaskStatus, StatusStyle] = {
    TaskStatus.SCHEDULED: StatusStyle(STATUS_LABELS[TaskStatus.SCHEDULED], "#3b82f6", "#2563eb"),
    TaskStatus.IN_PROGRESS: StatusStyle(STATUS_LABELS[TaskStatus.IN_PROGRESS], "#f97316", "#ea580c"),
    TaskStatus.DELAYED: StatusStyle(STATUS_LABELS[TaskStatus.DELAYED], "#ef4444", "#dc2626"),
    TaskStatus.COMPLETE: StatusStyle(STATUS_LABELS[TaskStatus.COMPLETE], "#22c55e", "#16a34a"),
}


@dataclass(frozen=True)
class TimelineLayout:
    """Everything needed to paint one Gantt chart."""

    range: TimelineRange
    month_spans: Tuple[MonthSpan, ...]
    day_ticks: Tuple[DayTick, ...]
    bars: Tuple[TaskBar, ...]
    markers: Tuple[MilestoneMarker, ...]
    arrows: Tuple[DependencyArrow, ...]
    today_offset: Optional[int]
    day_width_px: int
    row_height_px: int
    width_px: int
    height_px: int

    def anchor_for(self, task_id: str) -> Optional[Anchor]:
        for anchor in self.bars + self.markers:
            if anchor.task_id == task_id:
                return anchor
        return None


def days_between(start: date, end: date) -> int:
    return (end - start).days


def resolve_range(tasks: Sequence[Task], *, today: Optional[date] = None) -> TimelineRange:
    """Compute the visible window: seven days of padding around the task dates.

    With no tasks the window runs from a week before ``today`` to sixty days
    after it so the empty chart still has a sensible width.
    """
    if not tasks:
        anchor = floor_to_day(today) if today is not None else date.today()
        start = anchor - timedelta(days=EMPTY_RANGE_DAYS_BEFORE)
        end = anchor + timedelta(days=EMPTY_RANGE_DAYS_AFTER)
        return TimelineRange(start=start, end=end, total_days=days_between(start, end))

    earliest = min(floor_to_day(task.start) for task in tasks)
    latest = max(floor_to_day(task.end) for task in tasks)
    start = earliest - timedelta(days=RANGE_PADDING_DAYS)
    end = latest + timedelta(days=RANGE_PADDING_DAYS)
    return TimelineRange(start=start, end=end, total_days=days_between(start, end))


def _first_of_next_month(value: date) -> date:
    if value.month == 12:
        return date(value.year + 1, 1, 1)
    return date(value.year, value.month + 1, 1)


def generate_month_spans(timeline: TimelineRange) -> List[MonthSpan]:
    """Split the range into month header cells, clipping the first and last months."""
    spans: List[MonthSpan] = []
    cursor = timeline.start
    while cursor <= timeline.end:
        last_day = calendar.monthrange(cursor.year, cursor.month)[1]
        span_end = min(date(cursor.year, cursor.month, last_day), timeline.end)
        start_offset = days_between(timeline.start, cursor)
        day_count = min(days_between(cursor, span_end) + 1, timeline.total_days - start_offset)
        # A range ending on the 1st leaves nothing of that month to draw.
        if day_count > 0:
            spans.append(MonthSpan(label=month_label(cursor), start_day_offset=start_offset, day_count=day_count))
        cursor = _first_of_next_month(cursor)
    return spans


def generate_day_ticks(timeline: TimelineRange, interval_days: int = DEFAULT_TICK_INTERVAL) -> List[DayTick]:
    """One tick every ``interval_days`` from offset 0 up to and including ``total_days``."""
    if interval_days < 1:
        raise ValueError(f"interval_days must be positive, got {interval_days}")
    return [
        DayTick(day_offset=offset, label=str((timeline.start + timedelta(days=offset)).day))
        for offset in range(0, timeline.total_days + 1, interval_days)
    ]


def layout_bar(task: Task, timeline: TimelineRange, day_width_px: int = DEFAULT_DAY_WIDTH) -> TaskBar:
    """Map a task's dates to a pixel offset and width, never narrower than one day."""
    left = timeline.day_offset(task.start) * day_width_px
    width = max(task.duration_days() * day_width_px, day_width_px)
    return TaskBar(task_id=task.id, left_px=left, width_px=width)


def layout_milestone(
    task: Task,
    timeline: TimelineRange,
    day_width_px: int = DEFAULT_DAY_WIDTH,
    size_px: int = DEFAULT_MILESTONE_SIZE,
) -> MilestoneMarker:
    center = timeline.day_offset(task.start) * day_width_px
    return MilestoneMarker(task_id=task.id, center_px=center, size_px=size_px)


def is_milestone(task: Task) -> bool:
    return task.is_milestone


def style_for(task: Task) -> StatusStyle:
    return STATUS_STYLES[task.status]


def route_arrows(
    tasks: Sequence[Task],
    anchors: Union[Mapping[str, Anchor], Iterable[Anchor]],
    *,
    row_height_px: int = DEFAULT_ROW_HEIGHT,
) -> List[DependencyArrow]:
    """Connect each prerequisite's right edge to its dependent's left edge.

    Row positions come from the order of ``tasks``. Edges pointing at tasks
    outside that list, or at the task itself, are dropped. A pair listed twice
    yields a single arrow.
    """
    if not isinstance(anchors, Mapping):
        anchors = {anchor.task_id: anchor for anchor in anchors}
    rows = {task.id: idx for idx, task in enumerate(tasks)}
    half_row = row_height_px / 2

    arrows: Dict[str, DependencyArrow] = {}
    for target_row, task in enumerate(tasks):
        if not task.has_dependencies():
            continue
        target = anchors.get(task.id)
        if target is None:
            logger.debug("Task %s has no computed position; skipping its dependencies", task.id)
            continue
        for dep_id in task.depends_on:
            if dep_id == task.id:
                logger.debug("Dropping self-referential dependency on %s", task.id)
                continue
            source_row = rows.get(dep_id)
            source = anchors.get(dep_id)
            if source_row is None or source is None:
                logger.debug("Dropping dangling dependency %s -> %s", dep_id, task.id)
                continue
            arrow = DependencyArrow(
                from_task_id=dep_id,
                to_task_id=task.id,
                x1=source.right_px,
                y1=source_row * row_height_px + half_row,
                x2=target.left_px,
                y2=target_row * row_height_px + half_row,
            )
            arrows.setdefault(arrow.edge_id, arrow)
    return list(arrows.values())


def arrow_path(arrow: DependencyArrow) -> Tuple[Tuple[float, float], ...]:
    """Cubic curve points: start, two controls on the horizontal midpoint, end."""
    mid_x = (arrow.x1 + arrow.x2) / 2
    return (
        (arrow.x1, arrow.y1),
        (mid_x, arrow.y1),
        (mid_x, arrow.y2),
        (arrow.x2, arrow.y2),
    )


def today_offset(timeline: TimelineRange, today: Optional[date] = None) -> Optional[int]:
    """Day offset of today's marker line, or None when today is outside the range."""
    offset = timeline.day_offset(today if today is not None else date.today())
    if offset < 0 or offset > timeline.total_days:
        return None
    return offset


def filter_tasks(
    tasks: Iterable[Task],
    *,
    work_package_id: Optional[str] = None,
    status: Optional[TaskStatus] = None,
) -> List[Task]:
    """Keep tasks matching the given work package and status (None matches all)."""
    return [
        task
        for task in tasks
        if (work_package_id is None or task.work_package_id == work_package_id)
        and (status is None or task.status == status)
    ]


def _canvas_width(
    timeline: TimelineRange,
    day_width_px: int,
    bars: Sequence[TaskBar],
    markers: Sequence[MilestoneMarker],
) -> int:
    """Range width, widened when an inverted task's bar runs past the range end."""
    edges = [bar.right_px for bar in bars]
    edges.extend(marker.center_px + marker.size_px / 2 for marker in markers)
    return max([timeline.total_days * day_width_px] + [math.ceil(edge) for edge in edges])


def build_layout(
    tasks: Sequence[Task],
    *,
    day_width_px: int = DEFAULT_DAY_WIDTH,
    row_height_px: int = DEFAULT_ROW_HEIGHT,
    tick_interval_days: int = DEFAULT_TICK_INTERVAL,
    milestone_size_px: int = DEFAULT_MILESTONE_SIZE,
    today: Optional[date] = None,
) -> TimelineLayout:
    """Run the whole pipeline for one render pass."""
    timeline = resolve_range(tasks, today=today)
    bars: List[TaskBar] = []
    markers: List[MilestoneMarker] = []
    anchors: Dict[str, Anchor] = {}
    for task in tasks:
        if is_milestone(task):
            anchor: Anchor = layout_milestone(task, timeline, day_width_px, milestone_size_px)
            markers.append(anchor)
        else:
            anchor = layout_bar(task, timeline, day_width_px)
            bars.append(anchor)
        anchors[task.id] = anchor

    arrows = route_arrows(tasks, anchors, row_height_px=row_height_px)
    logger.debug(
        "Laid out %d bars, %d milestones, %d arrows over %d days",
        len(bars),
        len(markers),
        len(arrows),
        timeline.total_days,
    )
    return TimelineLayout(
        range=timeline,
        month_spans=tuple(generate_month_spans(timeline)),
        day_ticks=tuple(generate_day_ticks(timeline, tick_interval_days)),
        bars=tuple(bars),
        markers=tuple(markers),
        arrows=tuple(arrows),
        today_offset=today_offset(timeline, today),
        day_width_px=day_width_px,
        row_height_px=row_height_px,
        width_px=_canvas_width(timeline, day_width_px, bars, markers),
        height_px=len(tasks) * row_height_px,
    )
