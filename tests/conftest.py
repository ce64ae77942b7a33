from typing import List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from config import get_settings
from errors import RelayError
from main import app
from services.memory_storage import MemoryStorage
from services.relay import get_relay_client
from services.sql_storage import SQLiteStorage


class FakeRelay:
    """Stands in for the agent; records what it was sent."""

    def __init__(self, reply: Optional[str] = "hi there", error: Optional[str] = None):
        self.reply = reply
        self.error = error
        self.calls: List[Tuple[str, str, str]] = []

    def send(self, anon_user_id: str, thread_id: str, text: str) -> Optional[str]:
        self.calls.append((anon_user_id, thread_id, text))
        if self.error:
            raise RelayError(f"bot error: {self.error}")
        return self.reply


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def sqlite_storage(tmp_path):
    storage = SQLiteStorage(str(tmp_path / "dante.sqlite"))
    storage.migrate()
    yield storage
    storage.close()


@pytest.fixture(params=["memory", "sqlite"])
def storage(request):
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture
def relay():
    return FakeRelay()


@pytest.fixture
def unconfigured_client(monkeypatch):
    monkeypatch.setenv("DANTE_DEV_NODB", "1")
    monkeypatch.delenv("DANTE_BOT_URL", raising=False)
    monkeypatch.delenv("DANTE_SHARED_SECRET", raising=False)
    get_settings.cache_clear()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    get_settings.cache_clear()


@pytest.fixture
def client(unconfigured_client, relay):
    app.dependency_overrides[get_relay_client] = lambda: relay
    return unconfigured_client


@pytest.fixture
def make_thread(client):
    def _make(anon_user_id: str = "u1", title: Optional[str] = None) -> str:
        body = {"anonUserId": anon_user_id}
        if title is not None:
            body["title"] = title
        response = client.post("/api/threads", json=body)
        assert response.status_code == 200
        return response.json()["threadId"]

    return _make
