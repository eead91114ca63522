from datetime import date
from pathlib import Path

import pytest
from PyQt6.QtCore import QDate, Qt
from PyQt6.QtWidgets import QApplication, QDialog, QDialogButtonBox, QFileDialog, QMessageBox

from renovation_timeline import app as app_module
from renovation_timeline.app import DELETE_RESULT, MainWindow, TaskEditorDialog
from renovation_timeline.config import ChartSettings
from renovation_timeline.models import Contractor, Task, TaskStatus, WorkPackage
from renovation_timeline.storage import load_tasks

WORK_PACKAGES = {
    "wp1": WorkPackage(id="wp1", number=1, name="Demo"),
    "wp2": WorkPackage(id="wp2", number=2, name="Structure"),
}
CONTRACTORS = {"c1": Contractor(id="c1", name="Dana Reyes", company="Reyes Framing", trade="Carpentry")}


def _tasks():
    return [
        Task(id="a", name="Demolition", start=date(2025, 1, 10), end=date(2025, 1, 15), work_package_id="wp1"),
        Task(
            id="b",
            name="Framing",
            start=date(2025, 1, 16),
            end=date(2025, 1, 20),
            status=TaskStatus.DELAYED,
            depends_on=("a",),
            work_package_id="wp2",
        ),
        Task(id="m", name="Inspection", start=date(2025, 1, 22), end=date(2025, 1, 22), is_milestone=True),
    ]


def _window() -> MainWindow:
    window = MainWindow(ChartSettings())
    window.set_schedule(_tasks(), WORK_PACKAGES, CONTRACTORS)
    return window


def _task(window: MainWindow, task_id: str) -> Task:
    return next(task for task in window.all_tasks if task.id == task_id)


def _dependency_item(dialog: TaskEditorDialog, task_id: str):
    for row in range(dialog.dependency_list.count()):
        item = dialog.dependency_list.item(row)
        if item.data(Qt.ItemDataRole.UserRole) == task_id:
            return item
    raise AssertionError(f"{task_id} not listed")


def test_editor_loads_existing_task(qapp: QApplication) -> None:
    window = _window()

    dialog = TaskEditorDialog(window.all_tasks, window.work_packages, window.contractors, _task(window, "b"))

    assert dialog.name_edit.text() == "Framing"
    assert dialog.start_edit.date() == QDate(2025, 1, 16)
    assert dialog.status_combo.currentData() == TaskStatus.DELAYED.value
    assert dialog.work_package_combo.currentData() == "wp2"
    assert dialog.contractor_combo.currentData() is None
    assert dialog.checked_dependencies() == ["a"]
    # A task never lists itself as a possible prerequisite.
    assert dialog.dependency_list.count() == 2
    assert dialog.delete_button is not None


def test_edited_task_is_saved_and_reloaded(qapp: QApplication, tmp_path: Path) -> None:
    window = _window()
    dialog = TaskEditorDialog(window.all_tasks, window.work_packages, window.contractors, _task(window, "b"))

    dialog.name_edit.setText("Framing and sheathing")
    dialog.end_edit.setDate(QDate(2025, 1, 24))
    dialog.status_combo.setCurrentIndex(dialog.status_combo.findData(TaskStatus.IN_PROGRESS.value))
    dialog.contractor_combo.setCurrentIndex(dialog.contractor_combo.findData("c1"))
    _dependency_item(dialog, "m").setCheckState(Qt.CheckState.Checked)
    dialog.notes_edit.setPlainText("Inspector on site Friday")
    window.apply_task_edit(dialog.task())

    path = tmp_path / "schedule.csv"
    window.save_to(path)

    assert window.current_path == path
    reloaded = {task.id: task for task in load_tasks(path)}
    assert sorted(reloaded) == ["a", "b", "m"]
    framing = reloaded["b"]
    assert framing.name == "Framing and sheathing"
    assert framing.start == date(2025, 1, 16)
    assert framing.end == date(2025, 1, 24)
    assert framing.status is TaskStatus.IN_PROGRESS
    assert framing.work_package_id == "wp2"
    assert framing.contractor_id == "c1"
    assert framing.depends_on == ("a", "m")
    assert framing.notes == "Inspector on site Friday"
    assert reloaded["a"] == _task(window, "a")


def test_new_task_form_requires_a_name(qapp: QApplication) -> None:
    dialog = TaskEditorDialog(_tasks(), WORK_PACKAGES, CONTRACTORS)
    save_button = dialog.buttons.button(QDialogButtonBox.StandardButton.Save)

    assert dialog.delete_button is None
    assert not save_button.isEnabled()

    dialog.name_edit.setText("   ")
    assert not save_button.isEnabled()

    dialog.name_edit.setText("Order windows")
    assert save_button.isEnabled()

    task = dialog.task()
    assert task.id == dialog.task().id
    assert task.id not in {"a", "b", "m"}
    assert task.status is TaskStatus.SCHEDULED
    assert task.start == task.end == date.today()
    assert task.work_package_id is None
    assert task.depends_on == ()
    assert task.notes is None


def test_editor_keeps_references_to_missing_tasks(qapp: QApplication) -> None:
    task = Task(id="p", name="Paint", start=date(2025, 2, 1), end=date(2025, 2, 3), depends_on=("gone", "a"))

    dialog = TaskEditorDialog(_tasks() + [task], {}, {}, task)

    assert dialog.task().depends_on == ("gone", "a")


def test_chart_click_opens_editor_and_applies_changes(qapp: QApplication, monkeypatch: pytest.MonkeyPatch) -> None:
    window = _window()

    def accept_with_rename(dialog: TaskEditorDialog) -> int:
        dialog.name_edit.setText("Strip kitchen")
        dialog.milestone_check.setChecked(True)
        return QDialog.DialogCode.Accepted.value

    monkeypatch.setattr(TaskEditorDialog, "exec", accept_with_rename)

    window.chart.task_clicked.emit(_task(window, "a"))

    edited = _task(window, "a")
    assert edited.name == "Strip kitchen"
    assert edited.is_milestone
    assert len(window.all_tasks) == 3
    assert len(window.chart.timeline_layout.markers) == 2


def test_cancelled_editor_leaves_schedule_alone(qapp: QApplication, monkeypatch: pytest.MonkeyPatch) -> None:
    window = _window()
    monkeypatch.setattr(TaskEditorDialog, "exec", lambda dialog: QDialog.DialogCode.Rejected.value)

    window.chart.task_clicked.emit(_task(window, "a"))

    assert window.all_tasks == sorted(_tasks(), key=lambda task: task.start)


def test_editor_delete_removes_task(qapp: QApplication, monkeypatch: pytest.MonkeyPatch) -> None:
    window = _window()
    monkeypatch.setattr(TaskEditorDialog, "exec", lambda dialog: DELETE_RESULT)

    window.chart.task_clicked.emit(_task(window, "a"))

    assert [task.id for task in window.all_tasks] == ["b", "m"]
    assert window.table.rowCount() == 2
    # b still names a; the arrow is dropped rather than drawn to nowhere.
    assert window.chart.timeline_layout.arrows == ()


def test_new_task_action_adds_task(qapp: QApplication, monkeypatch: pytest.MonkeyPatch) -> None:
    window = _window()

    def fill_in(dialog: TaskEditorDialog) -> int:
        dialog.name_edit.setText("Final walkthrough")
        dialog.start_edit.setDate(QDate(2025, 1, 30))
        dialog.end_edit.setDate(QDate(2025, 1, 30))
        _dependency_item(dialog, "m").setCheckState(Qt.CheckState.Checked)
        return QDialog.DialogCode.Accepted.value

    monkeypatch.setattr(TaskEditorDialog, "exec", fill_in)

    window.action_new_task()

    assert [task.name for task in window.all_tasks][-1] == "Final walkthrough"
    assert window.all_tasks[-1].depends_on == ("m",)
    assert len(window.chart.timeline_layout.arrows) == 2


def test_save_without_file_asks_for_a_path(
    qapp: QApplication, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    window = _window()
    target = tmp_path / "saved.csv"
    monkeypatch.setattr(QFileDialog, "getSaveFileName", lambda *args, **kwargs: (str(target), ""))

    window.action_save()

    assert window.current_path == target
    assert [task.id for task in load_tasks(target)] == ["a", "b", "m"]


def test_save_writes_back_to_opened_file(qapp: QApplication, tmp_path: Path) -> None:
    window = _window()
    window.current_path = tmp_path / "schedule.csv"

    window.delete_task("m")
    window.action_save()

    assert [task.id for task in load_tasks(window.current_path)] == ["a", "b"]


def test_pdf_export_failure_is_reported(qapp: QApplication, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    window = _window()
    errors = []

    def fail(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(QFileDialog, "getSaveFileName", lambda *args, **kwargs: (str(tmp_path / "out.pdf"), ""))
    monkeypatch.setattr(app_module, "export_as_pdf", fail)
    monkeypatch.setattr(QMessageBox, "critical", lambda parent, title, text: errors.append((title, text)))

    window.action_export_pdf()

    assert errors == [("Export failed", "disk full")]
