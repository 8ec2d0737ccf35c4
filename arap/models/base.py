from datetime import datetime, timezone
from typing import Annotated

from bson import ObjectId
from pydantic import AfterValidator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(ObjectId())


def as_utc(value: datetime) -> datetime:
    """MongoDB hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]
