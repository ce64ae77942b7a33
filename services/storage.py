"""Storage backend interface shared by every persistence engine."""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging

from config import Settings
from errors import ConfigurationError
from models.messages import MessageRole
from schemas.threads import ThreadSummary
from schemas.messages import MessageRecord

logger = logging.getLogger(__name__)

THREAD_LIST_LIMIT = 100
HISTORY_LIMIT = 500


class StorageBackend(ABC):
    """
    Persistence contract for users, threads and messages.

    Every implementation must return the same records in the same order so
    the request handlers never need to know which engine is in use:

    - list_threads: newest updated_at first, at most THREAD_LIST_LIMIT rows
    - get_history: oldest created_at first, at most HISTORY_LIMIT rows

    Ownership is checked by callers through thread_owned_by, except for
    rename_thread which checks it itself and raises NotFoundError.
    """

    kind: str = ""

    def migrate(self) -> None:
        """Create the persistent schema if missing. Idempotent."""

    def close(self) -> None:
        """Release connections held by the backend."""

    @abstractmethod
    def ensure_user(self, anon_user_id: str) -> None:
        ...

    @abstractmethod
    def create_thread(self, thread_id: str, anon_user_id: str, title: Optional[str] = None) -> None:
        ...

    @abstractmethod
    def list_threads(self, anon_user_id: str) -> List[ThreadSummary]:
        ...

    @abstractmethod
    def thread_owned_by(self, thread_id: str, anon_user_id: str) -> bool:
        ...

    @abstractmethod
    def rename_thread(self, thread_id: str, anon_user_id: str, title: str) -> None:
        ...

    @abstractmethod
    def insert_message(self, msg_id: str, thread_id: str, role: MessageRole, content: Optional[str]) -> None:
        ...

    @abstractmethod
    def touch_thread(self, thread_id: str) -> None:
        ...

    @abstractmethod
    def get_history(self, thread_id: str) -> List[MessageRecord]:
        ...

    @abstractmethod
    def health_check(self) -> Dict[str, Any]:
        """Return the backend identity and whether it is reachable."""


def create_storage(settings: Settings) -> StorageBackend:
    """Build the storage backend selected by configuration."""
    kind = settings.db_kind

    if kind == "mem":
        from services.memory_storage import MemoryStorage
        storage: StorageBackend = MemoryStorage()
    elif kind == "pg":
        from services.sql_storage import PostgresStorage
        storage = PostgresStorage(settings.database_url, ssl=settings.pg_ssl)
    elif kind == "sqlite":
        from services.sql_storage import SQLiteStorage
        storage = SQLiteStorage(settings.sqlite_path)
    else:
        raise ConfigurationError(f"unsupported DB_KIND: {kind}")

    logger.info(f"Using {storage.kind} storage backend")
    return storage
