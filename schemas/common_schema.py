"""Shared response pieces: the success envelope, pagination and creator summary."""

from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


def as_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class Envelope(BaseModel):
    """Base for every successful response body."""

    request_status: str = Field("success", examples=["success"])


class PageResponse(Envelope):
    """Pagination fields added to every listing response."""

    total: int
    nextPage: Optional[int] = None
    prevPage: Optional[int] = None


class CreatorSummary(BaseModel):
    id: int
    username: str


class DeletedResponse(Envelope):
    """Acknowledgement returned after a delete or unlink."""

    deleted_id: int


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)
