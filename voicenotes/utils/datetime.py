"""Datetime utility functions."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


def placeholder_title(created_at: datetime) -> str:
    """Title used until enrichment suggests a better one."""
    return f"Voice Note {created_at.astimezone(UTC):%Y-%m-%d %H:%M}"
