"""Thread service: ownership rules and the chat exchange."""
from typing import Optional, List
from uuid import uuid4
import logging

from errors import ConfigurationError, NotFoundError, ValidationError, require_param
from models.messages import MessageRole
from schemas.threads import ThreadSummary
from schemas.messages import MessageRecord
from services.relay import RelayClient
from services.storage import StorageBackend

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 80


class ThreadService:
    """Service class for thread operations scoped to an anonymous identifier."""

    @staticmethod
    def ensure_owned(storage: StorageBackend, thread_id: str, anon_user_id: str) -> None:
        """
        Raise NotFoundError unless the thread exists and belongs to the caller.

        A missing thread and another user's thread look the same to the caller.
        """
        if not storage.thread_owned_by(thread_id, anon_user_id):
            raise NotFoundError("thread not found")

    @staticmethod
    def clean_title(title: str) -> str:
        """Trim and truncate a thread title; reject it if nothing is left."""
        cleaned = str(title).strip()[:MAX_TITLE_LENGTH]
        if not cleaned:
            raise ValidationError("title empty")
        return cleaned

    @staticmethod
    def list_threads(storage: StorageBackend, anon_user_id: Optional[str]) -> List[ThreadSummary]:
        """Retrieve the caller's threads, most recently updated first."""
        require_param(anon_user_id, "anonUserId")
        return storage.list_threads(anon_user_id)

    @staticmethod
    def create_thread(storage: StorageBackend, anon_user_id: Optional[str], title: Optional[str] = None) -> str:
        """Create a new thread for a user and return its generated id."""
        require_param(anon_user_id, "anonUserId")

        thread_id = str(uuid4())
        storage.create_thread(thread_id, anon_user_id, title)
        logger.info(f"Created thread {thread_id}")

        return thread_id

    @staticmethod
    def rename_thread(
        storage: StorageBackend,
        anon_user_id: Optional[str],
        thread_id: Optional[str],
        title: Optional[str]
    ) -> None:
        """Rename a thread the caller owns."""
        require_param(anon_user_id, "anonUserId")
        require_param(thread_id, "threadId")
        require_param(title, "title")

        storage.rename_thread(thread_id, anon_user_id, ThreadService.clean_title(title))

    @staticmethod
    def get_history(
        storage: StorageBackend,
        anon_user_id: Optional[str],
        thread_id: Optional[str]
    ) -> List[MessageRecord]:
        """Retrieve a thread's messages, oldest first."""
        require_param(anon_user_id, "anonUserId")
        require_param(thread_id, "threadId")

        ThreadService.ensure_owned(storage, thread_id, anon_user_id)
        return storage.get_history(thread_id)

    @staticmethod
    def chat(
        storage: StorageBackend,
        relay: Optional[RelayClient],
        anon_user_id: Optional[str],
        thread_id: Optional[str],
        text: Optional[str]
    ) -> Optional[str]:
        """
        Run one chat exchange.

        The user's message is stored before the relay is called and is kept
        if the relay fails. The reply is stored exactly as received.

        Returns:
            The agent reply
        """
        require_param(anon_user_id, "anonUserId")
        require_param(thread_id, "threadId")
        require_param(text, "text")

        if relay is None:
            raise ConfigurationError(
                "server not configured: missing DANTE_BOT_URL or DANTE_SHARED_SECRET"
            )

        ThreadService.ensure_owned(storage, thread_id, anon_user_id)

        storage.insert_message(str(uuid4()), thread_id, MessageRole.USER, text)
        storage.touch_thread(thread_id)

        reply = relay.send(anon_user_id, thread_id, text)

        storage.insert_message(str(uuid4()), thread_id, MessageRole.ASSISTANT, reply)
        storage.touch_thread(thread_id)

        return reply
