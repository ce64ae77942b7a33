"""Pydantic schemas for message history."""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, field_validator

from models.messages import MessageRole
from .threads import as_utc


class MessageRecord(BaseModel):
    """A message as returned by every storage backend."""
    msg_id: str
    role: MessageRole
    content: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)


class HistoryResponse(BaseModel):
    ok: bool = True
    messages: List[MessageRecord]
