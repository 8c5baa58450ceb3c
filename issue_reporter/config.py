# ---------------- CONFIG ----------------
import os

APP_TITLE = "Civic Issue Reporter"
APP_SUB = "Snap it. Report it. Track it."

DATA_DIR = os.getenv("ISSUE_REPORTER_DATA_DIR", "data")

# Storage keys
REPORTS_KEY = "reports"
SESSION_KEY = "adminUser"

# Mock admin credentials (not a security boundary)
ADMIN_USERNAME = os.getenv("ISSUE_REPORTER_ADMIN_USER", "admin")
ADMIN_PASSWORD = os.getenv("ISSUE_REPORTER_ADMIN_PASSWORD", "admin123")

# Geolocation lookup
GEOLOCATION_URL = os.getenv("ISSUE_REPORTER_GEO_URL", "https://ipapi.co/json/")
GEOLOCATION_TIMEOUT = float(os.getenv("ISSUE_REPORTER_GEO_TIMEOUT", 15))

# Dashboard refresh interval, seconds
POLL_INTERVAL = int(os.getenv("ISSUE_REPORTER_POLL_INTERVAL", 5))

# Captured photos are downscaled to fit this box
MAX_IMAGE_SIZE = (1200, 1200)

REPORT_TYPES = ["Cleanliness", "Lighting", "Roads", "Water", "Other"]
DEFAULT_REPORT_TYPE = "Other"

STATUSES = ["new", "in_progress", "resolved"]
STATUS_LABELS = {
    "new": "New",
    "in_progress": "In Progress",
    "resolved": "Resolved",
}
DASHBOARD_TABS = ["all"] + STATUSES
