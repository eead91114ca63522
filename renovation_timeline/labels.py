"""Display text for dates and task rows."""
from __future__ import annotations

from datetime import date
from typing import List, Mapping, Optional

from .models import Contractor, Task, TaskStatus, WorkPackage

STATUS_LABELS = {
    TaskStatus.SCHEDULED: "Scheduled",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.DELAYED: "Delayed",
    TaskStatus.COMPLETE: "Complete",
}

EMPTY_DATE = "-"


def format_date(value: Optional[date]) -> str:
    """Return ``Jan 15, 2025`` style text."""
    if value is None:
        return EMPTY_DATE
    return f"{value:%b} {value.day}, {value.year}"


def month_label(value: date) -> str:
    return f"{value:%b %Y}"


def _lookup_work_package(task: Task, work_packages: Mapping[str, WorkPackage]) -> Optional[WorkPackage]:
    if task.work_package_id is None:
        return None
    return work_packages.get(task.work_package_id)


def _lookup_contractor(task: Task, contractors: Mapping[str, Contractor]) -> Optional[Contractor]:
    if task.contractor_id is None:
        return None
    return contractors.get(task.contractor_id)


def task_caption(
    task: Task,
    work_packages: Mapping[str, WorkPackage],
    contractors: Mapping[str, Contractor],
) -> str:
    """Short second line under a task name: work package badge and contractor."""
    parts = []
    wp = _lookup_work_package(task, work_packages)
    if wp is not None:
        parts.append(f"WP{wp.number}")
    contractor = _lookup_contractor(task, contractors)
    if contractor is not None:
        parts.append(contractor.name)
    return " · ".join(parts)


def task_tooltip(
    task: Task,
    work_packages: Mapping[str, WorkPackage],
    contractors: Mapping[str, Contractor],
) -> List[str]:
    lines = [
        task.name,
        f"Status: {STATUS_LABELS[task.status]}",
        f"Dates: {format_date(task.start)} to {format_date(task.end)}",
    ]
    wp = _lookup_work_package(task, work_packages)
    if wp is not None:
        lines.append(f"Work Package: WP{wp.number} - {wp.name}")
    contractor = _lookup_contractor(task, contractors)
    if contractor is not None:
        company = f" ({contractor.company})" if contractor.company else ""
        lines.append(f"Contractor: {contractor.name}{company}")
    if task.is_milestone:
        lines.append("Milestone")
    if task.notes:
        lines.append(task.notes)
    return lines
