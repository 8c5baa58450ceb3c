import gc
import json

import plotly.graph_objects as go
import pytest

from issue_reporter.dashboard import Dashboard, reports_frame, status_chart, type_chart
from tests.conftest import PIXEL, make_report


@pytest.fixture
def seeded(store):
    store.save_all([
        make_report("1", "2024-01-01T00:00:00Z", type="Roads"),
        make_report("2", "2024-01-03T00:00:00Z", type="Water", status="in_progress",
                    location={"lat": 21.4, "lng": 39.8}),
        make_report("3", "2024-01-02T00:00:00Z", type="Roads", status="resolved", image=None),
    ])
    return store


@pytest.fixture
def dashboard(seeded):
    board = Dashboard(seeded, poll_interval=5)
    board.refresh(now=100.0)
    return board


def ids(reports):
    return [r["id"] for r in reports]


def test_refresh_loads_newest_first(dashboard):
    assert ids(dashboard.visible()) == ["2", "3", "1"]


def test_tab_filter(dashboard):
    dashboard.set_tab("resolved")
    assert ids(dashboard.visible()) == ["3"]
    dashboard.set_tab("new")
    assert ids(dashboard.visible()) == ["1"]
    dashboard.set_tab("all")
    assert len(dashboard.visible()) == 3


def test_unknown_tab_rejected(dashboard):
    with pytest.raises(ValueError):
        dashboard.set_tab("closed")


def test_stats(dashboard):
    assert dashboard.stats() == {
        "total": 3,
        "new": 1,
        "in_progress": 1,
        "resolved": 1,
        "types": {"Water": 1, "Roads": 2},
    }


def test_stats_on_empty_store(store):
    board = Dashboard(store)
    board.refresh()
    assert board.stats() == {"total": 0, "new": 0, "in_progress": 0, "resolved": 0, "types": {}}


def test_resolving_moves_report_between_tabs(dashboard, seeded):
    dashboard.set_status("1", "resolved")

    dashboard.set_tab("resolved")
    assert "1" in ids(dashboard.visible())
    dashboard.set_tab("new")
    assert "1" not in ids(dashboard.visible())

    assert seeded.get("1")["status"] == "resolved"
    dashboard.refresh()
    assert dashboard.get("1")["status"] == "resolved"


def test_delete_updates_view_and_store(dashboard, seeded):
    dashboard.delete("2")
    assert ids(dashboard.visible()) == ["3", "1"]
    assert ids(seeded.load_all()) == ["3", "1"]
    assert dashboard.stats()["in_progress"] == 0


def test_unknown_ids_are_ignored(dashboard, seeded):
    dashboard.set_status("missing", "resolved")
    dashboard.delete("missing")
    assert len(seeded.load_all()) == 3
    assert len(dashboard.visible()) == 3


def test_polling_interval(dashboard, seeded):
    seeded.append(make_report("4", "2024-02-01T00:00:00Z"))
    assert not dashboard.due(now=103.0)
    assert not dashboard.refresh_if_due(now=103.0)
    assert "4" not in ids(dashboard.visible())

    assert dashboard.refresh_if_due(now=105.0)
    assert ids(dashboard.visible())[0] == "4"


def test_watch_marks_view_stale_on_change(dashboard, seeded):
    dashboard.watch()
    try:
        seeded.append(make_report("4", "2024-02-01T00:00:00Z"))
        assert dashboard.due(now=101.0)
        dashboard.refresh_if_due(now=101.0)
        assert ids(dashboard.visible())[0] == "4"
    finally:
        dashboard.unwatch()

    seeded.append(make_report("5", "2024-03-01T00:00:00Z"))
    assert not dashboard.due(now=102.0)


def test_frame_omits_media(dashboard):
    df = dashboard.frame()
    assert "image" not in df.columns
    assert "audio" not in df.columns
    row = df.set_index("id").loc["2"]
    assert (row["lat"], row["lng"]) == (21.4, 39.8)
    assert df.set_index("id").loc["3", "has_image"] == False  # noqa: E712


def test_empty_frame_has_columns():
    df = reports_frame([])
    assert df.empty
    assert "status" in df.columns


def test_charts(dashboard):
    df = dashboard.frame()
    assert isinstance(status_chart(df), go.Figure)
    assert isinstance(type_chart(df), go.Figure)


def test_set_status_on_record_stored_without_id(store, storage):
    storage.set_item("reports", json.dumps([{"image": PIXEL, "created_at": "2024-01-01T00:00:00Z"}]))
    board = Dashboard(store)
    board.refresh()
    report_id = board.visible()[0]["id"]

    board.set_status(report_id, "resolved")

    assert board.get(report_id)["status"] == "resolved"
    assert store.get(report_id)["status"] == "resolved"
    board.delete(report_id)
    assert store.load_all() == []


def test_dropped_dashboards_leave_no_listeners(store, storage):
    for _ in range(200):
        Dashboard(store).watch()
    gc.collect()
    assert storage.listeners() == []
