"""Main PyQt application entry point."""
from __future__ import annotations

import logging
import sys
import uuid
from datetime import date
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from PyQt6.QtCore import QDate, Qt
from PyQt6.QtGui import QAction, QBrush, QColor, QKeySequence
from PyQt6.QtWidgets import (
    QAbstractItemView,
    QApplication,
    QCheckBox,
    QComboBox,
    QDateEdit,
    QDialog,
    QDialogButtonBox,
    QFileDialog,
    QFormLayout,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QScrollArea,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from .chart import HEADER_HEIGHT, GanttChartWidget
from .config import ChartSettings
from .exporters import export_as_ics, export_as_pdf
from .labels import STATUS_LABELS, task_caption, task_tooltip
from .logging_setup import setup_logging
from .models import Contractor, Task, TaskStatus, WorkPackage
from .storage import load_contractors, load_tasks, load_work_packages, save_tasks
from .timeline import filter_tasks, style_for

logger = logging.getLogger(__name__)

LABEL_HEADERS = ["Task", "Details", "Status"]
WORK_PACKAGES_FILENAME = "work_packages.csv"
CONTRACTORS_FILENAME = "contractors.csv"
_LABEL_COLUMN_WIDTHS = (150, 110, 80)
_ALL = "all"
DELETE_RESULT = 2  # dialog result code for a confirmed delete


def _to_qdate(value: date) -> QDate:
    return QDate(value.year, value.month, value.day)


class TaskLabelTable(QTableWidget):
    """Fixed left column listing each task row beside the chart.

    Rows use the chart's row height and the header matches the chart header
    so both sides stay aligned while scrolling.
    """

    def __init__(self, row_height: int, parent: Optional[QWidget] = None) -> None:
        super().__init__(0, len(LABEL_HEADERS), parent)
        self.row_height = row_height
        self._setup_table()

    def _setup_table(self) -> None:
        self.setHorizontalHeaderLabels(LABEL_HEADERS)
        self.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        self.setVerticalScrollMode(QAbstractItemView.ScrollMode.ScrollPerPixel)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.verticalHeader().setVisible(False)
        self.verticalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Fixed)
        self.verticalHeader().setDefaultSectionSize(self.row_height)
        self.horizontalHeader().setFixedHeight(HEADER_HEIGHT)
        header = self.horizontalHeader()
        for col, width in enumerate(_LABEL_COLUMN_WIDTHS):
            header.setSectionResizeMode(col, QHeaderView.ResizeMode.Fixed)
            self.setColumnWidth(col, width)
        self.setFixedWidth(sum(_LABEL_COLUMN_WIDTHS) + 4)

    def set_tasks(
        self,
        tasks: List[Task],
        work_packages: Mapping[str, WorkPackage],
        contractors: Mapping[str, Contractor],
    ) -> None:
        self.setRowCount(0)
        for task in tasks:
            row = self.rowCount()
            self.insertRow(row)
            name = f"{task.name} ◆" if task.is_milestone else task.name
            tooltip = "\n".join(task_tooltip(task, work_packages, contractors))
            cells = [name, task_caption(task, work_packages, contractors), STATUS_LABELS[task.status]]
            for col, text in enumerate(cells):
                item = QTableWidgetItem(text)
                item.setToolTip(tooltip)
                self.setItem(row, col, item)
            status_item = self.item(row, 2)
            status_item.setBackground(QBrush(QColor(style_for(task).fill)))
            status_item.setForeground(QBrush(QColor("white")))
            status_item.setTextAlignment(Qt.AlignmentFlag.AlignCenter)


class TaskEditorDialog(QDialog):
    """Add/edit form for a single task.

    ``exec()`` returns ``Accepted`` when the form should be applied (read it
    back with :meth:`task`) or ``DELETE_RESULT`` once the user confirms a
    delete. Only existing tasks get a Delete button.
    """

    def __init__(
        self,
        tasks: Sequence[Task],
        work_packages: Mapping[str, WorkPackage],
        contractors: Mapping[str, Contractor],
        task: Optional[Task] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.original = task
        self.task_id = task.id if task is not None else str(uuid.uuid4())
        self.setWindowTitle("Edit Task" if task is not None else "Add Task")

        self.name_edit = QLineEdit()
        self.start_edit = QDateEdit()
        self.end_edit = QDateEdit()
        for edit in (self.start_edit, self.end_edit):
            edit.setCalendarPopup(True)
            edit.setDisplayFormat("MMM d, yyyy")
        self.status_combo = QComboBox()
        for status in TaskStatus:
            self.status_combo.addItem(STATUS_LABELS[status], status.value)
        self.milestone_check = QCheckBox("Milestone")

        self.work_package_combo = QComboBox()
        self.work_package_combo.addItem("None", None)
        for wp in sorted(work_packages.values(), key=lambda wp: wp.number):
            self.work_package_combo.addItem(f"WP{wp.number}: {wp.name}", wp.id)
        self.contractor_combo = QComboBox()
        self.contractor_combo.addItem("None", None)
        for contractor in sorted(contractors.values(), key=lambda c: c.name):
            label = f"{contractor.name} ({contractor.company})" if contractor.company else contractor.name
            self.contractor_combo.addItem(label, contractor.id)

        self.dependency_list = QListWidget()
        for other in tasks:
            if other.id == self.task_id:
                continue
            item = QListWidgetItem(other.name)
            item.setData(Qt.ItemDataRole.UserRole, other.id)
            item.setFlags(item.flags() | Qt.ItemFlag.ItemIsUserCheckable)
            item.setCheckState(Qt.CheckState.Unchecked)
            self.dependency_list.addItem(item)
        self.notes_edit = QPlainTextEdit()

        self.buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Save | QDialogButtonBox.StandardButton.Cancel
        )
        self.buttons.accepted.connect(self.accept)
        self.buttons.rejected.connect(self.reject)
        self.delete_button = None
        if task is not None:
            self.delete_button = self.buttons.addButton("Delete", QDialogButtonBox.ButtonRole.DestructiveRole)
            self.delete_button.clicked.connect(self._confirm_delete)
        self.name_edit.textChanged.connect(self._update_save_enabled)

        self._build_layout()
        self._load(task)

    def _build_layout(self) -> None:
        form = QFormLayout()
        form.addRow("Name", self.name_edit)
        form.addRow("Start", self.start_edit)
        form.addRow("End", self.end_edit)
        form.addRow("Status", self.status_combo)
        form.addRow("", self.milestone_check)
        form.addRow("Work package", self.work_package_combo)
        form.addRow("Contractor", self.contractor_combo)
        form.addRow("Depends on", self.dependency_list)
        form.addRow("Notes", self.notes_edit)
        layout = QVBoxLayout(self)
        layout.addLayout(form)
        layout.addWidget(self.buttons)

    def _load(self, task: Optional[Task]) -> None:
        if task is None:
            today = _to_qdate(date.today())
            self.start_edit.setDate(today)
            self.end_edit.setDate(today)
            self._update_save_enabled()
            return
        self.name_edit.setText(task.name)
        self.start_edit.setDate(_to_qdate(task.start))
        self.end_edit.setDate(_to_qdate(task.end))
        self.status_combo.setCurrentIndex(self.status_combo.findData(task.status.value))
        self.milestone_check.setChecked(task.is_milestone)
        self.work_package_combo.setCurrentIndex(max(0, self.work_package_combo.findData(task.work_package_id)))
        self.contractor_combo.setCurrentIndex(max(0, self.contractor_combo.findData(task.contractor_id)))
        for row in range(self.dependency_list.count()):
            item = self.dependency_list.item(row)
            if item.data(Qt.ItemDataRole.UserRole) in task.depends_on:
                item.setCheckState(Qt.CheckState.Checked)
        self.notes_edit.setPlainText(task.notes or "")
        self._update_save_enabled()

    def _update_save_enabled(self) -> None:
        self.buttons.button(QDialogButtonBox.StandardButton.Save).setEnabled(bool(self.name_edit.text().strip()))

    def _confirm_delete(self) -> None:
        answer = QMessageBox.question(self, "Delete task", f"Delete {self.name_edit.text() or 'this task'}?")
        if answer == QMessageBox.StandardButton.Yes:
            self.done(DELETE_RESULT)

    def checked_dependencies(self) -> List[str]:
        checked = []
        for row in range(self.dependency_list.count()):
            item = self.dependency_list.item(row)
            if item.checkState() == Qt.CheckState.Checked:
                checked.append(item.data(Qt.ItemDataRole.UserRole))
        return checked

    def task(self) -> Task:
        """Build the task described by the form."""
        listed = {
            self.dependency_list.item(row).data(Qt.ItemDataRole.UserRole)
            for row in range(self.dependency_list.count())
        }
        # References to tasks no longer in the schedule are kept as-is.
        kept = [dep for dep in self.original.depends_on if dep not in listed] if self.original else []
        notes = self.notes_edit.toPlainText().strip()
        return Task(
            id=self.task_id,
            name=self.name_edit.text().strip(),
            start=self.start_edit.date().toPyDate(),
            end=self.end_edit.date().toPyDate(),
            status=TaskStatus(self.status_combo.currentData()),
            is_milestone=self.milestone_check.isChecked(),
            work_package_id=self.work_package_combo.currentData(),
            contractor_id=self.contractor_combo.currentData(),
            depends_on=tuple(kept + self.checked_dependencies()),
            notes=notes or None,
        )


class MainWindow(QMainWindow):
    """Primary window with filters, the label column and the chart."""

    def __init__(self, settings: Optional[ChartSettings] = None) -> None:
        super().__init__()
        self.setWindowTitle("Renovation Timeline")
        self.settings = settings or ChartSettings()
        self.current_path: Optional[Path] = None
        self.all_tasks: List[Task] = []
        self.work_packages: Dict[str, WorkPackage] = {}
        self.contractors: Dict[str, Contractor] = {}

        self.table = TaskLabelTable(self.settings.row_height_px)
        self.chart = GanttChartWidget(self.settings)
        self.scroll = QScrollArea()
        self.work_package_filter = QComboBox()
        self.status_filter = QComboBox()
        self.chart.task_clicked.connect(self._handle_task_clicked)
        self._build_layout()
        self._build_menu()
        self._populate_filters()
        self.resize(1200, 700)

    def _build_layout(self) -> None:
        """Filters on top; label table and scrollable chart side by side."""
        filters = QHBoxLayout()
        filters.addWidget(QLabel("Work package"))
        filters.addWidget(self.work_package_filter)
        filters.addWidget(QLabel("Status"))
        filters.addWidget(self.status_filter)
        filters.addStretch(1)
        self.work_package_filter.currentIndexChanged.connect(self._apply_filters)
        self.status_filter.currentIndexChanged.connect(self._apply_filters)

        self.scroll.setWidget(self.chart)
        self.scroll.setWidgetResizable(False)
        # Keep vertical scrolling of labels and bars in lockstep.
        self.scroll.verticalScrollBar().valueChanged.connect(self.table.verticalScrollBar().setValue)
        self.table.verticalScrollBar().valueChanged.connect(self.scroll.verticalScrollBar().setValue)

        body = QHBoxLayout()
        body.setSpacing(0)
        body.addWidget(self.table)
        body.addWidget(self.scroll, 1)

        container = QWidget()
        layout = QVBoxLayout(container)
        layout.addLayout(filters)
        layout.addLayout(body, 1)
        self.setCentralWidget(container)

    def _build_menu(self) -> None:
        menu = self.menuBar()
        file_menu = menu.addMenu("File")

        new_task_action = QAction("New Task...", self)
        new_task_action.setShortcut(QKeySequence.StandardKey.New)
        new_task_action.triggered.connect(self.action_new_task)
        file_menu.addAction(new_task_action)

        open_action = QAction("Open", self)
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self.action_open)
        file_menu.addAction(open_action)

        save_action = QAction("Save", self)
        save_action.setShortcut(QKeySequence.StandardKey.Save)
        save_action.triggered.connect(self.action_save)
        file_menu.addAction(save_action)

        save_as_action = QAction("Save As...", self)
        save_as_action.setShortcut(QKeySequence.StandardKey.SaveAs)
        save_as_action.triggered.connect(self.action_save_as)
        file_menu.addAction(save_as_action)

        file_menu.addSeparator()
        calendar_action = QAction("Export Calendar...", self)
        calendar_action.triggered.connect(self.action_export_calendar)
        file_menu.addAction(calendar_action)

        pdf_action = QAction("Export PDF...", self)
        pdf_action.triggered.connect(self.action_export_pdf)
        file_menu.addAction(pdf_action)

        file_menu.addSeparator()
        quit_action = QAction("Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

    def _populate_filters(self) -> None:
        """Rebuild filter choices from the loaded lookups, keeping the current picks."""
        selected_wp = self.work_package_filter.currentData()
        selected_status = self.status_filter.currentData()

        self.work_package_filter.blockSignals(True)
        self.work_package_filter.clear()
        self.work_package_filter.addItem("All work packages", _ALL)
        for wp in sorted(self.work_packages.values(), key=lambda wp: wp.number):
            self.work_package_filter.addItem(f"WP{wp.number}: {wp.name}", wp.id)
        index = self.work_package_filter.findData(selected_wp)
        self.work_package_filter.setCurrentIndex(max(0, index))
        self.work_package_filter.blockSignals(False)

        self.status_filter.blockSignals(True)
        self.status_filter.clear()
        self.status_filter.addItem("All statuses", _ALL)
        for status in TaskStatus:
            self.status_filter.addItem(STATUS_LABELS[status], status.value)
        index = self.status_filter.findData(selected_status)
        self.status_filter.setCurrentIndex(max(0, index))
        self.status_filter.blockSignals(False)

    def set_schedule(
        self,
        tasks: List[Task],
        work_packages: Optional[Mapping[str, WorkPackage]] = None,
        contractors: Optional[Mapping[str, Contractor]] = None,
    ) -> None:
        self.all_tasks = sorted(tasks, key=lambda task: task.start)
        self.work_packages = dict(work_packages or {})
        self.contractors = dict(contractors or {})
        self._populate_filters()
        self._apply_filters()

    def visible_tasks(self) -> List[Task]:
        wp_choice = self.work_package_filter.currentData()
        status_choice = self.status_filter.currentData()
        return filter_tasks(
            self.all_tasks,
            work_package_id=None if wp_choice in (None, _ALL) else wp_choice,
            status=None if status_choice in (None, _ALL) else TaskStatus(status_choice),
        )

    def _apply_filters(self) -> None:
        tasks = self.visible_tasks()
        self.table.set_tasks(tasks, self.work_packages, self.contractors)
        self.chart.set_tasks(tasks, self.work_packages, self.contractors)
        self.statusBar().showMessage(f"Showing {len(tasks)} of {len(self.all_tasks)} tasks", 3000)

    def _handle_task_clicked(self, task: Task) -> None:
        for row in range(self.table.rowCount()):
            if self.chart.tasks[row].id == task.id:
                self.table.selectRow(row)
                break
        self.statusBar().showMessage(" | ".join(task_tooltip(task, self.work_packages, self.contractors)[:3]), 5000)
        self.edit_task(task)

    def edit_task(self, task: Optional[Task] = None) -> None:
        """Open the task editor; with no task it adds a new one."""
        dialog = TaskEditorDialog(self.all_tasks, self.work_packages, self.contractors, task, parent=self)
        result = dialog.exec()
        if result == DELETE_RESULT and task is not None:
            self.delete_task(task.id)
        elif result == QDialog.DialogCode.Accepted.value:
            self.apply_task_edit(dialog.task())
        dialog.deleteLater()

    def apply_task_edit(self, task: Task) -> None:
        """Insert a new task or replace the one sharing its id."""
        is_new = all(existing.id != task.id for existing in self.all_tasks)
        tasks = [existing for existing in self.all_tasks if existing.id != task.id]
        tasks.append(task)
        self.set_schedule(tasks, self.work_packages, self.contractors)
        logger.info("%s task %s (%s)", "Added" if is_new else "Updated", task.id, task.name)
        self.statusBar().showMessage(f"{'Added' if is_new else 'Updated'} {task.name}", 3000)

    def delete_task(self, task_id: str) -> None:
        tasks = [task for task in self.all_tasks if task.id != task_id]
        if len(tasks) == len(self.all_tasks):
            return
        self.set_schedule(tasks, self.work_packages, self.contractors)
        logger.info("Deleted task %s", task_id)
        self.statusBar().showMessage("Task deleted", 3000)

    def save_to(self, path: Path) -> None:
        save_tasks(path, self.all_tasks)
        self.current_path = path
        logger.info("Saved %d tasks to %s", len(self.all_tasks), path)

    # Menu actions ------------------------------------------------------
    def action_new_task(self) -> None:
        self.edit_task(None)

    def action_save(self) -> None:
        """Write the schedule back to the file it came from, or ask for one."""
        if self.current_path is None:
            self.action_save_as()
            return
        self._save_with_feedback(self.current_path)

    def action_save_as(self) -> None:
        path, _ = QFileDialog.getSaveFileName(self, "Save schedule", filter="CSV Files (*.csv)")
        if not path:
            return
        self._save_with_feedback(Path(path))

    def _save_with_feedback(self, path: Path) -> None:
        try:
            self.save_to(path)
        except OSError as exc:
            logger.exception("Failed to save %s", path)
            QMessageBox.critical(self, "Save failed", str(exc))
            return
        self.statusBar().showMessage(f"Saved to {path}", 3000)

    def open_path(self, path: Path) -> None:
        """Load tasks plus any lookup tables stored beside them."""
        tasks = load_tasks(path)
        work_packages: Dict[str, WorkPackage] = {}
        contractors: Dict[str, Contractor] = {}
        wp_path = path.parent / WORK_PACKAGES_FILENAME
        if wp_path.exists():
            work_packages = load_work_packages(wp_path)
        contractor_path = path.parent / CONTRACTORS_FILENAME
        if contractor_path.exists():
            contractors = load_contractors(contractor_path)
        self.set_schedule(tasks, work_packages, contractors)
        self.current_path = path

    def action_open(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Open schedule", filter="CSV Files (*.csv)")
        if not path:
            return
        try:
            self.open_path(Path(path))
        except (OSError, ValueError) as exc:  # pragma: no cover - interactive guard
            logger.exception("Failed to open %s", path)
            QMessageBox.critical(self, "Open failed", str(exc))
            return
        logger.info("Opened schedule %s", path)
        self.statusBar().showMessage(f"Loaded schedule from {path}", 3000)

    def action_export_calendar(self) -> None:
        path, _ = QFileDialog.getSaveFileName(self, "Export calendar", filter="Calendar Files (*.ics)")
        if not path:
            return
        try:
            export_as_ics(path, self.all_tasks, calendar_name=self.settings.calendar_name)
        except OSError as exc:  # pragma: no cover - interactive guard
            logger.exception("Calendar export to %s failed", path)
            QMessageBox.critical(self, "Export failed", str(exc))
            return
        self.statusBar().showMessage(f"Exported calendar to {path}", 3000)

    def action_export_pdf(self) -> None:
        path, _ = QFileDialog.getSaveFileName(self, "Export PDF", filter="PDF Files (*.pdf)")
        if not path:
            return
        try:
            export_as_pdf(path, self.visible_tasks(), self.settings)
        except OSError as exc:
            logger.exception("PDF export to %s failed", path)
            QMessageBox.critical(self, "Export failed", str(exc))
            return
        self.statusBar().showMessage(f"Exported PDF to {path}", 3000)


def run() -> None:
    """Entry point used by `python -m renovation_timeline`."""
    settings = ChartSettings.from_env()
    setup_logging(log_dir=settings.log_dir, console_level=settings.log_level)
    app = QApplication(sys.argv)
    window = MainWindow(settings)
    if len(sys.argv) > 1:
        window.open_path(Path(sys.argv[1]))
    window.show()
    app.exec()


if __name__ == "__main__":
    run()
