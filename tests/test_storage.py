from datetime import date
from pathlib import Path

import pytest

from renovation_timeline.models import Contractor, Task, TaskStatus, WorkPackage
from renovation_timeline.storage import load_contractors, load_tasks, load_work_packages, save_tasks

TASK_HEADER = "id,name,start_date,end_date,status,is_milestone,work_package_id,contractor_id,depends_on,notes"


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "schedule.csv"
    tasks = [
        Task(
            id="a",
            name="Demolition",
            start=date(2025, 1, 6),
            end=date(2025, 1, 10),
            status=TaskStatus.COMPLETE,
            work_package_id="wp1",
            contractor_id="c1",
            notes="Dumpster booked, confirm pickup",
        ),
        Task(
            id="b",
            name="Inspection",
            start=date(2025, 1, 13),
            end=date(2025, 1, 13),
            is_milestone=True,
            depends_on=("a",),
        ),
    ]

    save_tasks(path, tasks)
    loaded = load_tasks(path)

    assert loaded == tasks


def test_save_tasks_writes_blank_cells_for_missing_values(tmp_path: Path) -> None:
    path = tmp_path / "schedule.csv"
    tasks = [
        Task(id="a", name="Framing", start=date(2025, 2, 1), end=date(2025, 2, 7), depends_on=("x", "y")),
    ]

    save_tasks(path, tasks)

    text = path.read_text().splitlines()
    assert text[0] == TASK_HEADER
    assert text[1] == "a,Framing,2025-02-01,2025-02-07,scheduled,0,,,x;y,"


def test_load_tasks_skips_incomplete_rows(tmp_path: Path) -> None:
    path = tmp_path / "schedule.csv"
    path.write_text(
        "\n".join(
            [
                TASK_HEADER,
                "a,Tile,2025-04-01,2025-04-03,delayed,0,wp2,,,",
                "b,,2025-04-01,2025-04-03,scheduled,0,,,,",
                "c,No end,2025-04-01,,scheduled,0,,,,",
                "short,row",
            ]
        )
        + "\n",
        encoding="utf-8",
    )

    tasks = load_tasks(path)

    assert [task.id for task in tasks] == ["a"]
    assert tasks[0].status is TaskStatus.DELAYED
    assert tasks[0].work_package_id == "wp2"


def test_load_tasks_rejects_unknown_header(tmp_path: Path) -> None:
    path = tmp_path / "schedule.csv"
    path.write_text("#duration,20\nname,start,end,work_package\n", encoding="utf-8")

    with pytest.raises(ValueError, match="missing header"):
        load_tasks(path)


def test_load_lookup_tables(tmp_path: Path) -> None:
    wp_path = tmp_path / "work_packages.csv"
    wp_path.write_text(
        "id,number,name,description\nwp1,1,Kitchen Cabinets,Uppers and lowers\nwp2,2,Bathroom,\n",
        encoding="utf-8",
    )
    contractor_path = tmp_path / "contractors.csv"
    contractor_path.write_text(
        "id,name,company,trade\nc1,Dana Reyes,Reyes Plumbing,Plumbing\nc2,Sam Ito,,Electrical\n",
        encoding="utf-8",
    )

    work_packages = load_work_packages(wp_path)
    contractors = load_contractors(contractor_path)

    assert work_packages["wp1"] == WorkPackage(id="wp1", number=1, name="Kitchen Cabinets", description="Uppers and lowers")
    assert work_packages["wp2"].description == ""
    assert contractors["c1"] == Contractor(id="c1", name="Dana Reyes", company="Reyes Plumbing", trade="Plumbing")
    assert contractors["c2"].company is None


def test_load_lookup_rejects_wrong_header(tmp_path: Path) -> None:
    path = tmp_path / "contractors.csv"
    path.write_text("id,name\nc1,Someone\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_contractors(path)
