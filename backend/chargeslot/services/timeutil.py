from datetime import datetime, timezone

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def utcnow_str() -> str:
    """Current UTC time in the format SQLite's CURRENT_TIMESTAMP uses."""
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)
