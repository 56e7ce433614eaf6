from datetime import datetime, timezone


def utcnow_iso() -> str:
    """Return current UTC timestamp in ISO-8601, the way rows store it."""
    return datetime.now(timezone.utc).isoformat()
