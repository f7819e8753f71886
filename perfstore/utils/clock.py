from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware UTC now, used for every created_at/updated_at stamp."""
    return datetime.now(timezone.utc)
