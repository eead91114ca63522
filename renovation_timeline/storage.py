"""CSV snapshot helpers standing in for the hosted task store."""
from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .models import Contractor, Task, WorkPackage

logger = logging.getLogger(__name__)

_TASK_HEADER = [
    "id",
    "name",
    "start_date",
    "end_date",
    "status",
    "is_milestone",
    "work_package_id",
    "contractor_id",
    "depends_on",
    "notes",
]
_WORK_PACKAGE_HEADER = ["id", "number", "name", "description"]
_CONTRACTOR_HEADER = ["id", "name", "company", "trade"]
_REQUIRED_TASK_FIELDS = ("id", "name", "start_date", "end_date")
_DEPENDENCY_SEPARATOR = ";"


def save_tasks(path: Path | str, tasks: Iterable[Task]) -> None:
    """Persist schedule tasks to CSV."""
    csv_path = Path(path)
    csv_path.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with csv_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(_TASK_HEADER)
        for task in tasks:
            writer.writerow([
                task.id,
                task.name,
                task.start.isoformat(),
                task.end.isoformat(),
                task.status.value,
                int(task.is_milestone),
                _serialize_optional(task.work_package_id),
                _serialize_optional(task.contractor_id),
                _DEPENDENCY_SEPARATOR.join(task.depends_on),
                _serialize_optional(task.notes),
            ])
            count += 1
    logger.info("Saved %d tasks to %s", count, csv_path)


def load_tasks(path: Path | str) -> List[Task]:
    """Load schedule tasks from CSV, skipping rows without id, name or dates."""
    csv_path = Path(path)
    with csv_path.open("r", newline="", encoding="utf-8") as handle:
        reader = csv.reader(handle)
        _expect_header(reader, _TASK_HEADER, "task")

        tasks: List[Task] = []
        for line_no, row in enumerate(reader, start=2):
            if len(row) < len(_TASK_HEADER):
                logger.debug("Skipping short row %d in %s", line_no, csv_path)
                continue
            record = dict(zip(_TASK_HEADER, row))
            if any(not record[name].strip() for name in _REQUIRED_TASK_FIELDS):
                logger.debug("Skipping incomplete row %d in %s", line_no, csv_path)
                continue
            tasks.append(Task.from_record(record))

    logger.info("Loaded %d tasks from %s", len(tasks), csv_path)
    return tasks


def load_work_packages(path: Path | str) -> Dict[str, WorkPackage]:
    """Load the work-package lookup table keyed by id."""
    packages: Dict[str, WorkPackage] = {}
    for record in _read_records(Path(path), _WORK_PACKAGE_HEADER, "work package"):
        packages[record["id"]] = WorkPackage(
            id=record["id"],
            number=int(record["number"]),
            name=record["name"],
            description=record["description"],
        )
    return packages


def load_contractors(path: Path | str) -> Dict[str, Contractor]:
    """Load the contractor lookup table keyed by id."""
    contractors: Dict[str, Contractor] = {}
    for record in _read_records(Path(path), _CONTRACTOR_HEADER, "contractor"):
        contractors[record["id"]] = Contractor(
            id=record["id"],
            name=record["name"],
            company=record["company"] or None,
            trade=record["trade"],
        )
    return contractors


def _read_records(csv_path: Path, header: List[str], kind: str) -> List[Dict[str, str]]:
    with csv_path.open("r", newline="", encoding="utf-8") as handle:
        reader = csv.reader(handle)
        _expect_header(reader, header, kind)
        records = [
            dict(zip(header, (cell.strip() for cell in row)))
            for row in reader
            if len(row) >= len(header) and row[0].strip()
        ]
    logger.info("Loaded %d %s records from %s", len(records), kind, csv_path)
    return records


def _expect_header(reader, header: List[str], kind: str) -> None:
    found = next(reader, None)
    if found != header:
        raise ValueError(f"Invalid {kind} CSV: missing header")


def _serialize_optional(value: Optional[str]) -> str:
    return "" if value is None else value
