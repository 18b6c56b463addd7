from datetime import UTC, datetime
from typing import Annotated

from pydantic.functional_serializers import PlainSerializer


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(v: datetime | None) -> datetime | None:
    """Attach UTC to naive values read back from databases without tz support."""
    if v is None:
        return None
    if v.tzinfo is None:
        return v.replace(tzinfo=UTC)
    return v


def _serialize_utc_datetime(v: datetime | None) -> str | None:
    v = as_utc(v)
    return v.isoformat() if v is not None else None


UTCDatetime = Annotated[datetime, PlainSerializer(_serialize_utc_datetime)]
