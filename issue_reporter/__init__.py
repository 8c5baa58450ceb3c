"""Civic issue reporting: report store, submission form, admin dashboard."""

__version__ = "0.1.0"
