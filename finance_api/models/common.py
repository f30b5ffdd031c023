from datetime import datetime, timezone
from typing import Annotated
from uuid import uuid4

from pydantic import AfterValidator


def utcnow() -> datetime:
    """Naive UTC now; every timestamp in the store is naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def new_id() -> str:
    return str(uuid4())


# Timestamps arriving as "2025-11-01T12:00:00Z" and "2025-11-01T12:00:00"
# must compare equal once stored.
UTCDateTime = Annotated[datetime, AfterValidator(to_naive_utc)]
