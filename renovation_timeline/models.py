"""Data models shared across the timeline application."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional, Tuple, Union

DateLike = Union[date, datetime, str]


class TaskStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    DELAYED = "delayed"
    COMPLETE = "complete"


def floor_to_day(value: DateLike) -> date:
    """Drop the time-of-day component, converting aware timestamps to local time first."""
    if isinstance(value, str):
        value = _parse_iso(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


def _parse_iso(text: str) -> Union[date, datetime]:
    text = text.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y"}
    return bool(value)


@dataclass
class Task:
    """Serializable representation of a single schedule task."""

    id: str
    name: str
    start: date
    end: date
    status: TaskStatus = TaskStatus.SCHEDULED
    is_milestone: bool = False
    work_package_id: Optional[str] = None
    contractor_id: Optional[str] = None
    depends_on: Tuple[str, ...] = field(default_factory=tuple)
    notes: Optional[str] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Task":
        """Build a task from a persistence row.

        Date columns may be ISO dates or timestamps; blank foreign keys become
        None and a missing ``depends_on`` becomes an empty tuple.
        """
        depends_on = record.get("depends_on") or ()
        if isinstance(depends_on, str):
            depends_on = depends_on.split(";")
        return cls(
            id=str(record["id"]),
            name=str(record["name"]),
            start=floor_to_day(record["start_date"]),
            end=floor_to_day(record["end_date"]),
            status=TaskStatus(record.get("status") or TaskStatus.SCHEDULED.value),
            is_milestone=_as_bool(record.get("is_milestone", False)),
            work_package_id=_optional_text(record.get("work_package_id")),
            contractor_id=_optional_text(record.get("contractor_id")),
            depends_on=tuple(str(dep).strip() for dep in depends_on if dep is not None and str(dep).strip()),
            notes=_optional_text(record.get("notes")),
        )

    def duration_days(self) -> int:
        """Whole days from start to end, clamped so inverted ranges count as zero."""
        return max((floor_to_day(self.end) - floor_to_day(self.start)).days, 0)

    def has_dependencies(self) -> bool:
        return bool(self.depends_on)


@dataclass(frozen=True)
class WorkPackage:
    id: str
    number: int
    name: str
    description: str = ""


@dataclass(frozen=True)
class Contractor:
    id: str
    name: str
    company: Optional[str] = None
    trade: str = ""


@dataclass(frozen=True)
class TimelineRange:
    start: date
    end: date
    total_days: int

    def day_offset(self, value: DateLike) -> int:
        """Days from the range start to ``value`` (negative when before it)."""
        return (floor_to_day(value) - self.start).days


@dataclass(frozen=True)
class MonthSpan:
    label: str
    start_day_offset: int
    day_count: int


@dataclass(frozen=True)
class DayTick:
    day_offset: int
    label: str


@dataclass(frozen=True)
class TaskBar:
    task_id: str
    left_px: float
    width_px: float

    @property
    def right_px(self) -> float:
        return self.left_px + self.width_px


@dataclass(frozen=True)
class MilestoneMarker:
    """Fixed-size marker centred on a milestone's start day."""

    task_id: str
    center_px: float
    size_px: float

    @property
    def left_px(self) -> float:
        return self.center_px

    @property
    def right_px(self) -> float:
        return self.center_px


@dataclass(frozen=True)
class DependencyArrow:
    from_task_id: str
    to_task_id: str
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def edge_id(self) -> str:
        return f"{self.from_task_id}-{self.to_task_id}"
