"""
Report store: the only code that reads or writes the persisted report list.

The whole collection lives under one storage key as a JSON array. Every
operation reads the full array, changes it, and writes the full array back.
There is no locking and no merging, so two sessions writing at the same time
can lose an update (the last write wins).
"""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from issue_reporter import config
from issue_reporter.storage import KeyValueStorage

Report = Dict[str, Any]

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def timestamp_id() -> str:
    return str(int(time.time() * 1000))


def parse_timestamp(value) -> datetime:
    """Parse an ISO-8601 string; unparseable values sort as oldest."""
    if not isinstance(value, str) or not value:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_location(location) -> Optional[Dict[str, float]]:
    if not isinstance(location, dict):
        return None
    lat, lng = location.get("lat"), location.get("lng")
    if lat is None or lng is None or isinstance(lat, bool) or isinstance(lng, bool):
        return None
    try:
        return {"lat": float(lat), "lng": float(lng)}
    except (TypeError, ValueError):
        return None


def normalize_report(report: Report) -> Report:
    """Fill defaults for fields older or hand-edited records may lack."""
    normalized = dict(report)
    normalized["id"] = str(report.get("id") or timestamp_id())
    normalized["type"] = report.get("type") or config.DEFAULT_REPORT_TYPE
    normalized["created_at"] = report.get("created_at") or now_iso()
    normalized["status"] = report.get("status") or "new"
    normalized["location"] = normalize_location(report.get("location"))
    normalized["image"] = report.get("image") or None
    normalized["audio"] = report.get("audio") or None
    return normalized


def sort_newest_first(reports: List[Report]) -> List[Report]:
    return sorted(reports, key=lambda r: parse_timestamp(r.get("created_at")), reverse=True)


class ReportStore:
    def __init__(self, storage: KeyValueStorage, key: str = config.REPORTS_KEY):
        self.storage = storage
        self.key = key

    # ---------------- raw access ----------------

    def _write(self, reports: List[Report]) -> None:
        self.storage.set_item(self.key, json.dumps(reports, ensure_ascii=False))

    def _read(self) -> List[Report]:
        """Stored array; a missing or corrupt value is reset to [].

        Records missing an id or created_at get one, persisted right away so
        every later read sees the same values.
        """
        raw = self.storage.get_item(self.key)
        if raw is None:
            self._write([])
            return []
        try:
            reports = json.loads(raw)
            if not isinstance(reports, list):
                raise ValueError(f"expected a JSON array, got {type(reports).__name__}")
        except ValueError as e:
            print("Error loading reports:", e)
            self._write([])
            return []
        reports = [r for r in reports if isinstance(r, dict)]
        if self._fill_identity(reports):
            self._write(reports)
        return reports

    @staticmethod
    def _fill_identity(reports: List[Report]) -> bool:
        """Give id-less or undated records a stable id and created_at.

        Ids generated in one pass share a timestamp and differ by position.
        Returns True when anything was filled in.
        """
        base = timestamp_id()
        created = now_iso()
        changed = False
        for index, report in enumerate(reports):
            if not report.get("id"):
                report["id"] = f"{base}-{index}"
                changed = True
            if not report.get("created_at"):
                report["created_at"] = created
                changed = True
        return changed

    # ---------------- operations ----------------

    def load_all(self) -> List[Report]:
        return sort_newest_first([normalize_report(r) for r in self._read()])

    def get(self, report_id: str) -> Optional[Report]:
        for report in self.load_all():
            if report["id"] == str(report_id):
                return report
        return None

    def append(self, report: Report) -> None:
        reports = self._read()
        self._write([dict(report)] + reports)

    def update_status(self, report_id: str, status: str) -> None:
        if status not in config.STATUSES:
            raise ValueError(f"Unknown status {status!r}; expected one of {config.STATUSES}")
        reports = [normalize_report(r) for r in self._read()]
        for report in reports:
            if report["id"] == str(report_id):
                report["status"] = status
        self._write(reports)

    def remove(self, report_id: str) -> None:
        reports = [normalize_report(r) for r in self._read()]
        self._write([r for r in reports if r["id"] != str(report_id)])

    def save_all(self, reports: List[Report]) -> None:
        """Overwrite the stored collection with ``reports``."""
        self._write([dict(r) for r in reports])

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        """Call ``listener(key)`` whenever the report key changes.

        Bound methods are held weakly, see ``KeyValueStorage.subscribe``.
        """
        return self.storage.subscribe(listener, key=self.key)
