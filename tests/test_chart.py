from datetime import date
from pathlib import Path

from PyQt6.QtWidgets import QApplication

from renovation_timeline.app import MainWindow
from renovation_timeline.chart import (
    HEADER_COLOR,
    HEADER_HEIGHT,
    TODAY_TAG_HEIGHT,
    TODAY_TAG_WIDTH,
    GanttChartWidget,
    today_tag_rect,
)
from renovation_timeline.config import ChartSettings
from renovation_timeline.models import Task, TaskStatus
from renovation_timeline.storage import save_tasks


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


def test_chart_widget_recomputes_layout(qapp: QApplication) -> None:
    chart = GanttChartWidget(ChartSettings())

    chart.set_tasks(_tasks(), today=date(2025, 1, 12))

    layout = chart.timeline_layout
    assert len(layout.bars) == 2
    assert len(layout.markers) == 1
    assert len(layout.arrows) == 1
    assert chart.sizeHint().width() == layout.width_px
    assert chart.sizeHint().height() == HEADER_HEIGHT + 3 * 40


def test_chart_widget_hit_testing(qapp: QApplication) -> None:
    chart = GanttChartWidget(ChartSettings())
    chart.set_tasks(_tasks(), today=date(2025, 1, 12))

    # Range starts 2025-01-03; bar b covers x 39..51 on the second row.
    assert chart.task_at(40, HEADER_HEIGHT + 60).id == "b"
    assert chart.task_at(100, HEADER_HEIGHT + 60) is None
    # Milestone m is centred at x 57 on the third row.
    assert chart.task_at(59, HEADER_HEIGHT + 100).id == "m"
    assert chart.task_at(40, 10) is None
    assert chart.task_at(40, HEADER_HEIGHT + 500) is None


def test_chart_widget_paints_without_error(qapp: QApplication) -> None:
    chart = GanttChartWidget(ChartSettings())
    chart.set_tasks(_tasks(), today=date(2025, 1, 12))

    pixmap = chart.grab()

    assert pixmap.width() == chart.width()


def test_empty_chart_shows_message_instead_of_grid(qapp: QApplication) -> None:
    chart = GanttChartWidget(ChartSettings())
    chart.set_tasks([], today=date(2025, 1, 12))
    chart.resize(600, 300)

    image = chart.grab().toImage()

    # No header band is painted, only the centred message.
    assert image.pixelColor(5, 5).name() == "#ffffff"


def test_populated_chart_paints_header(qapp: QApplication) -> None:
    chart = GanttChartWidget(ChartSettings())
    chart.set_tasks(_tasks(), today=date(2025, 1, 12))

    image = chart.grab().toImage()

    assert image.pixelColor(5, 5).name() == HEADER_COLOR.name()


def test_today_tag_sits_on_today_line(qapp: QApplication) -> None:
    chart = GanttChartWidget(ChartSettings())
    chart.set_tasks(_tasks(), today=date(2025, 1, 12))

    rect = today_tag_rect(chart.timeline_layout)

    # Today is nine days after the 2025-01-03 range start.
    assert rect.center().x() == 27
    assert rect.top() == -TODAY_TAG_HEIGHT
    assert rect.width() == TODAY_TAG_WIDTH


def test_today_tag_stays_inside_chart(qapp: QApplication) -> None:
    chart = GanttChartWidget(ChartSettings())
    chart.set_tasks(_tasks(), today=date(2025, 1, 3))

    assert today_tag_rect(chart.timeline_layout).left() == 0

    chart.set_tasks(_tasks(), today=date(2024, 6, 1))

    assert today_tag_rect(chart.timeline_layout) is None


def test_main_window_filters_tasks(qapp: QApplication) -> None:
    window = MainWindow(ChartSettings())
    window.set_schedule(_tasks())

    assert window.table.rowCount() == 3

    window.status_filter.setCurrentIndex(window.status_filter.findData(TaskStatus.DELAYED.value))

    assert [task.id for task in window.visible_tasks()] == ["b"]
    assert window.table.rowCount() == 1
    assert window.chart.timeline_layout.arrows == ()


def test_main_window_opens_schedule_with_lookups(qapp: QApplication, tmp_path: Path) -> None:
    schedule = tmp_path / "schedule.csv"
    save_tasks(schedule, _tasks())
    (tmp_path / "work_packages.csv").write_text(
        "id,number,name,description\nwp1,1,Demo,\nwp2,2,Structure,\n", encoding="utf-8"
    )

    window = MainWindow(ChartSettings())
    window.open_path(schedule)

    assert window.current_path == schedule
    assert window.table.item(0, 1).text() == "WP1"
    assert window.work_package_filter.count() == 3

    window.work_package_filter.setCurrentIndex(window.work_package_filter.findData("wp2"))

    assert [task.id for task in window.visible_tasks()] == ["b"]
