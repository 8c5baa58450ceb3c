"""Report submission form controller."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from issue_reporter import config
from issue_reporter.geolocation import GeolocationError
from issue_reporter.store import Report, ReportStore, now_iso, timestamp_id


class ValidationError(Exception):
    """Submission blocked; ``str(error)`` is shown to the user."""


@dataclass
class SubmissionResult:
    report: Report
    location_error: Optional[GeolocationError] = None

    @property
    def location_message(self) -> Optional[str]:
        return self.location_error.message if self.location_error else None


class ReportForm:
    """Holds the draft (photo, audio, category) until it is submitted."""

    def __init__(self, store: ReportStore, geolocator, timeout: float = config.GEOLOCATION_TIMEOUT):
        self.store = store
        self.geolocator = geolocator
        self.timeout = timeout
        self.clear()

    def clear(self):
        self.image: Optional[str] = None
        self.audio: Optional[str] = None
        self.type: str = ""

    def locate(self):
        """Current position, or (None, error) when geolocation fails."""
        try:
            return self.geolocator.current_position(timeout=self.timeout), None
        except GeolocationError as e:
            print(f"Geolocation failed ({e.code}): {e.detail}")
            return None, e

    def submit(self) -> SubmissionResult:
        if not self.image:
            raise ValidationError("Please capture or choose a photo first.")
        if self.type and self.type not in config.REPORT_TYPES:
            raise ValidationError(f"Unknown issue type: {self.type}")

        location, error = self.locate()
        report = {
            "id": timestamp_id(),
            "image": self.image,
            "audio": self.audio,
            "type": self.type,
            "location": location,
            "created_at": now_iso(),
            "status": "new",
        }
        self.store.append(report)
        self.clear()
        return SubmissionResult(report=report, location_error=error)
