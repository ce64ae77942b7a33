"""Transient in-memory storage backend for local development and tests."""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Set

from errors import NotFoundError
from models import DEFAULT_THREAD_TITLE, MessageRole, utcnow
from schemas.threads import ThreadSummary
from schemas.messages import MessageRecord
from services.storage import StorageBackend, THREAD_LIST_LIMIT, HISTORY_LIMIT


class MemoryStorage(StorageBackend):
    """Keeps everything in process memory; all data is lost on exit."""

    kind = "mem"

    def __init__(self):
        self.users: Set[str] = set()
        self.threads: Dict[str, Dict[str, Any]] = {}
        self.messages: Dict[str, List[Dict[str, Any]]] = {}
        self._last_ts: Optional[datetime] = None

    def _now(self) -> datetime:
        # Strictly increasing so back-to-back writes never tie on updated_at.
        ts = utcnow()
        if self._last_ts is not None and ts <= self._last_ts:
            ts = self._last_ts + timedelta(microseconds=1)
        self._last_ts = ts
        return ts

    def ensure_user(self, anon_user_id: str) -> None:
        self.users.add(anon_user_id)

    def create_thread(self, thread_id: str, anon_user_id: str, title: Optional[str] = None) -> None:
        self.ensure_user(anon_user_id)
        ts = self._now()
        self.threads[thread_id] = {
            "thread_id": thread_id,
            "anon_user_id": anon_user_id,
            "title": title or DEFAULT_THREAD_TITLE,
            "created_at": ts,
            "updated_at": ts,
        }
        self.messages[thread_id] = []

    def list_threads(self, anon_user_id: str) -> List[ThreadSummary]:
        owned = [t for t in self.threads.values() if t["anon_user_id"] == anon_user_id]
        owned.sort(key=lambda t: t["updated_at"], reverse=True)
        return [ThreadSummary(**t) for t in owned[:THREAD_LIST_LIMIT]]

    def _owned_thread(self, thread_id: str, anon_user_id: str) -> Optional[Dict[str, Any]]:
        thread = self.threads.get(thread_id)
        if thread is None or thread["anon_user_id"] != anon_user_id:
            return None
        return thread

    def thread_owned_by(self, thread_id: str, anon_user_id: str) -> bool:
        return self._owned_thread(thread_id, anon_user_id) is not None

    def rename_thread(self, thread_id: str, anon_user_id: str, title: str) -> None:
        thread = self._owned_thread(thread_id, anon_user_id)
        if thread is None:
            raise NotFoundError("thread not found")
        thread["title"] = title
        thread["updated_at"] = self._now()

    def insert_message(self, msg_id: str, thread_id: str, role: MessageRole, content: Optional[str]) -> None:
        role = MessageRole(role)
        if thread_id not in self.threads:
            raise NotFoundError("thread not found")
        self.messages[thread_id].append({
            "msg_id": msg_id,
            "role": role,
            "content": content,
            "created_at": self._now(),
        })

    def touch_thread(self, thread_id: str) -> None:
        thread = self.threads.get(thread_id)
        if thread is not None:
            thread["updated_at"] = self._now()

    def get_history(self, thread_id: str) -> List[MessageRecord]:
        # Append order is creation order.
        msgs = self.messages.get(thread_id, [])
        return [MessageRecord(**m) for m in msgs[:HISTORY_LIMIT]]

    def health_check(self) -> Dict[str, Any]:
        return {"db": False, "devNoDb": True, "kind": self.kind}
