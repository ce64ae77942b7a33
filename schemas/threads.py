"""Pydantic schemas for thread-related requests and responses."""
from datetime import datetime, timezone
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict, field_validator


def as_utc(value: datetime) -> datetime:
    """Normalize a stored timestamp to an aware UTC datetime."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ThreadCreate(BaseModel):
    """Schema for creating a thread."""
    anon_user_id: Optional[str] = Field(default=None, alias="anonUserId")
    title: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class ThreadUpdate(BaseModel):
    """Schema for renaming a thread."""
    anon_user_id: Optional[str] = Field(default=None, alias="anonUserId")
    title: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class ThreadSummary(BaseModel):
    """A thread as returned by every storage backend."""
    thread_id: str
    title: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)


class ThreadListResponse(BaseModel):
    ok: bool = True
    threads: List[ThreadSummary]


class ThreadCreated(BaseModel):
    ok: bool = True
    thread_id: str = Field(alias="threadId")

    model_config = ConfigDict(populate_by_name=True)


class OkResponse(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
