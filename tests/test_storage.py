"""Contract tests run against every storage backend."""
from datetime import timezone
from uuid import uuid4

import pytest

from config import Settings
from errors import ConfigurationError, NotFoundError
from models import DEFAULT_THREAD_TITLE, MessageRole
from services.memory_storage import MemoryStorage
from services.sql_storage import SQLiteStorage
from services.storage import create_storage


def new_id() -> str:
    return str(uuid4())


def test_create_thread_defaults_title(storage):
    thread_id = new_id()
    storage.create_thread(thread_id, "u1", None)

    threads = storage.list_threads("u1")
    assert [t.thread_id for t in threads] == [thread_id]
    assert threads[0].title == DEFAULT_THREAD_TITLE


def test_create_thread_empty_title_uses_default(storage):
    storage.create_thread(new_id(), "u1", "")
    assert storage.list_threads("u1")[0].title == "New chat"


def test_create_thread_keeps_given_title(storage):
    storage.create_thread(new_id(), "u1", "Groceries")
    assert storage.list_threads("u1")[0].title == "Groceries"


def test_ensure_user_is_idempotent(storage):
    storage.ensure_user("u1")
    storage.ensure_user("u1")
    storage.create_thread(new_id(), "u1")
    assert len(storage.list_threads("u1")) == 1


def test_list_threads_scoped_to_user(storage):
    storage.create_thread(new_id(), "u1", "mine")
    storage.create_thread(new_id(), "u2", "theirs")

    assert [t.title for t in storage.list_threads("u1")] == ["mine"]
    assert [t.title for t in storage.list_threads("u2")] == ["theirs"]
    assert storage.list_threads("nobody") == []


def test_list_threads_newest_updated_first(storage):
    first, second = new_id(), new_id()
    storage.create_thread(first, "u1", "first")
    storage.create_thread(second, "u1", "second")
    assert [t.thread_id for t in storage.list_threads("u1")] == [second, first]

    storage.touch_thread(first)
    assert [t.thread_id for t in storage.list_threads("u1")] == [first, second]


def test_list_threads_capped_at_100(storage):
    for _ in range(105):
        storage.create_thread(new_id(), "u1")

    threads = storage.list_threads("u1")
    assert len(threads) == 100
    updated = [t.updated_at for t in threads]
    assert updated == sorted(updated, reverse=True)


def test_timestamps_are_utc_aware(storage):
    thread_id = new_id()
    storage.create_thread(thread_id, "u1")
    storage.insert_message(new_id(), thread_id, MessageRole.USER, "hello")

    thread = storage.list_threads("u1")[0]
    message = storage.get_history(thread_id)[0]
    for value in (thread.created_at, thread.updated_at, message.created_at):
        assert value.tzinfo is not None
        assert value.utcoffset() == timezone.utc.utcoffset(None)


def test_thread_owned_by(storage):
    thread_id = new_id()
    storage.create_thread(thread_id, "u1")

    assert storage.thread_owned_by(thread_id, "u1") is True
    assert storage.thread_owned_by(thread_id, "u2") is False
    assert storage.thread_owned_by(new_id(), "u1") is False


def test_rename_thread_bumps_updated_at(storage):
    thread_id = new_id()
    storage.create_thread(thread_id, "u1")
    before = storage.list_threads("u1")[0]

    storage.rename_thread(thread_id, "u1", "Renamed")

    after = storage.list_threads("u1")[0]
    assert after.title == "Renamed"
    assert after.created_at == before.created_at
    assert after.updated_at >= before.updated_at


@pytest.mark.parametrize("owner", ["u2", ""])
def test_rename_thread_requires_ownership(storage, owner):
    thread_id = new_id()
    storage.create_thread(thread_id, "u1", "Original")

    with pytest.raises(NotFoundError):
        storage.rename_thread(thread_id, owner, "Hijacked")

    assert storage.list_threads("u1")[0].title == "Original"


def test_rename_missing_thread_is_not_found(storage):
    with pytest.raises(NotFoundError, match="thread not found"):
        storage.rename_thread(new_id(), "u1", "Anything")


def test_history_in_creation_order(storage):
    thread_id = new_id()
    storage.create_thread(thread_id, "u1")
    storage.insert_message("m1", thread_id, MessageRole.USER, "hello")
    storage.insert_message("m2", thread_id, MessageRole.ASSISTANT, "hi there")
    storage.insert_message("m3", thread_id, MessageRole.USER, "how are you")

    history = storage.get_history(thread_id)
    assert [m.msg_id for m in history] == ["m1", "m2", "m3"]
    assert [m.role for m in history] == ["user", "assistant", "user"]
    assert history[1].content == "hi there"


def test_history_is_per_thread(storage):
    a, b = new_id(), new_id()
    storage.create_thread(a, "u1")
    storage.create_thread(b, "u1")
    storage.insert_message(new_id(), a, MessageRole.USER, "in a")

    assert [m.content for m in storage.get_history(a)] == ["in a"]
    assert storage.get_history(b) == []


def test_history_capped_at_500(storage):
    thread_id = new_id()
    storage.create_thread(thread_id, "u1")
    for i in range(505):
        storage.insert_message(f"m{i:04d}", thread_id, MessageRole.USER, str(i))

    history = storage.get_history(thread_id)
    assert len(history) == 500
    assert history[0].content == "0"
    assert history[-1].content == "499"


def test_insert_message_accepts_role_strings(storage):
    thread_id = new_id()
    storage.create_thread(thread_id, "u1")
    storage.insert_message(new_id(), thread_id, "system", "be brief")

    assert storage.get_history(thread_id)[0].role == MessageRole.SYSTEM


def test_insert_message_rejects_unknown_role(storage):
    thread_id = new_id()
    storage.create_thread(thread_id, "u1")

    with pytest.raises(ValueError):
        storage.insert_message(new_id(), thread_id, "moderator", "nope")

    assert storage.get_history(thread_id) == []


def test_null_content_is_stored(storage):
    thread_id = new_id()
    storage.create_thread(thread_id, "u1")
    storage.insert_message(new_id(), thread_id, MessageRole.ASSISTANT, None)

    assert storage.get_history(thread_id)[0].content is None


def test_touch_thread_bumps_updated_at(storage):
    thread_id = new_id()
    storage.create_thread(thread_id, "u1")
    before = storage.list_threads("u1")[0].updated_at

    storage.touch_thread(thread_id)

    assert storage.list_threads("u1")[0].updated_at >= before


def test_memory_health_check(memory_storage):
    assert memory_storage.health_check() == {"db": False, "devNoDb": True, "kind": "mem"}


def test_sqlite_health_check(sqlite_storage):
    health = sqlite_storage.health_check()
    assert health["db"] is True
    assert health["kind"] == "sqlite"
    assert health["path"] == sqlite_storage.path


def test_sqlite_migrate_is_idempotent(sqlite_storage):
    thread_id = new_id()
    sqlite_storage.create_thread(thread_id, "u1", "kept")

    sqlite_storage.migrate()

    assert sqlite_storage.list_threads("u1")[0].title == "kept"


def test_sqlite_data_survives_reopen(tmp_path):
    path = str(tmp_path / "reopen.sqlite")
    storage = SQLiteStorage(path)
    storage.migrate()
    storage.create_thread("t1", "u1", "durable")
    storage.close()

    reopened = SQLiteStorage(path)
    try:
        assert [t.title for t in reopened.list_threads("u1")] == ["durable"]
    finally:
        reopened.close()


def test_create_storage_selects_backend(monkeypatch, tmp_path):
    monkeypatch.setenv("DANTE_DEV_NODB", "1")
    assert isinstance(create_storage(Settings()), MemoryStorage)

    monkeypatch.delenv("DANTE_DEV_NODB")
    monkeypatch.setenv("DANTE_DB", "sqlite")
    monkeypatch.setenv("DANTE_SQLITE_PATH", str(tmp_path / "x.sqlite"))
    storage = create_storage(Settings())
    try:
        assert isinstance(storage, SQLiteStorage)
        assert storage.path == str(tmp_path / "x.sqlite")
    finally:
        storage.close()


def test_create_storage_rejects_unknown_kind(monkeypatch):
    monkeypatch.delenv("DANTE_DEV_NODB", raising=False)
    monkeypatch.setenv("DANTE_DB", "mongo")

    with pytest.raises(ConfigurationError, match="unsupported DB_KIND: mongo"):
        create_storage(Settings())
