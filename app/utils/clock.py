from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware UTC now; naive datetimes are rejected on insert."""
    return datetime.now(timezone.utc)
