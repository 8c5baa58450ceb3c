"""Admin dashboard controller: polling view, tab filter, counts, triage."""

from __future__ import annotations

import time
from typing import Dict, List, Optional

import pandas as pd
import plotly.express as px

from issue_reporter import config
from issue_reporter.store import Report, ReportStore

FRAME_COLUMNS = ["id", "type", "status", "created_at", "lat", "lng", "has_image", "has_audio"]


def reports_frame(reports: List[Report]) -> pd.DataFrame:
    """Tabular view of reports without the inline media payloads."""
    rows = []
    for r in reports:
        location = r.get("location") or {}
        rows.append({
            "id": r.get("id"),
            "type": r.get("type"),
            "status": r.get("status"),
            "created_at": r.get("created_at"),
            "lat": location.get("lat"),
            "lng": location.get("lng"),
            "has_image": bool(r.get("image")),
            "has_audio": bool(r.get("audio")),
        })
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def status_chart(df: pd.DataFrame):
    counts = df["status"].map(config.STATUS_LABELS).fillna(df["status"])
    return px.pie(names=counts, title="Status distribution")


def type_chart(df: pd.DataFrame):
    counts = df["type"].value_counts().reset_index()
    counts.columns = ["type", "count"]
    return px.bar(counts, x="type", y="count", title="Reports by type")


class Dashboard:
    def __init__(self, store: ReportStore, poll_interval: float = config.POLL_INTERVAL):
        self.store = store
        self.poll_interval = poll_interval
        self.reports: List[Report] = []
        self.active_tab = "all"
        self.last_loaded: Optional[float] = None
        self.stale = True
        self._unsubscribe = None

    # ---------------- loading ----------------

    def refresh(self, now: Optional[float] = None) -> List[Report]:
        self.reports = self.store.load_all()
        self.last_loaded = time.monotonic() if now is None else now
        self.stale = False
        return self.reports

    def due(self, now: Optional[float] = None) -> bool:
        """True when the view should be reloaded."""
        if self.stale or self.last_loaded is None:
            return True
        now = time.monotonic() if now is None else now
        return now - self.last_loaded >= self.poll_interval

    def refresh_if_due(self, now: Optional[float] = None) -> bool:
        if self.due(now):
            self.refresh(now)
            return True
        return False

    def watch(self):
        """Mark the view stale whenever the store changes."""
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._mark_stale)

    def unwatch(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _mark_stale(self, key=None):
        self.stale = True

    # ---------------- derived views ----------------

    def set_tab(self, tab: str):
        if tab not in config.DASHBOARD_TABS:
            raise ValueError(f"Unknown tab {tab!r}")
        self.active_tab = tab

    def visible(self) -> List[Report]:
        if self.active_tab == "all":
            return list(self.reports)
        return [r for r in self.reports if r.get("status") == self.active_tab]

    def frame(self) -> pd.DataFrame:
        return reports_frame(self.reports)

    def stats(self) -> Dict:
        df = self.frame()
        by_status = df["status"].value_counts()
        stats = {"total": len(df)}
        for status in config.STATUSES:
            stats[status] = int(by_status.get(status, 0))
        stats["types"] = {t: int(n) for t, n in df["type"].value_counts(sort=False).items()}
        return stats

    def get(self, report_id: str) -> Optional[Report]:
        for report in self.reports:
            if report["id"] == report_id:
                return report
        return None

    # ---------------- mutations ----------------

    def set_status(self, report_id: str, status: str):
        self.store.update_status(report_id, status)
        self.reports = [
            dict(r, status=status) if r["id"] == report_id else r
            for r in self.reports
        ]

    def delete(self, report_id: str):
        self.store.remove(report_id)
        self.reports = [r for r in self.reports if r["id"] != report_id]
