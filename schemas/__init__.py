from .threads import (
    ThreadCreate, ThreadUpdate, ThreadSummary, ThreadListResponse, ThreadCreated,
    OkResponse, ErrorResponse,
)
from .messages import MessageRecord, HistoryResponse

__all__ = ["ThreadCreate", "ThreadUpdate", "ThreadSummary", "ThreadListResponse", "ThreadCreated",
           "OkResponse", "ErrorResponse", "MessageRecord", "HistoryResponse"]
