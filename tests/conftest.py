import pytest

from issue_reporter.storage import MemoryStorage
from issue_reporter.store import ReportStore

PIXEL = "data:image/png;base64,iVBORw0KGgo="


def make_report(report_id, created_at="2024-01-01T00:00:00Z", **fields):
    report = {
        "id": report_id,
        "image": PIXEL,
        "audio": None,
        "type": "",
        "location": None,
        "created_at": created_at,
        "status": "new",
    }
    report.update(fields)
    return report


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return ReportStore(storage)
