import asyncio
import sys
import uuid
from pathlib import Path

import pytest
from cachetools import TTLCache

ROOT = Path(__file__).resolve().parent.parent
sys.path.append(str(ROOT))

import services.storage as storage_module
from services.session import SessionManager, is_valid_session_id
from services.storage import MemoryStorage, create_storage
from services.wizard_models import Phase, SubmissionResult, TextAnswer


class FakeClient:
    """Collector client that records submissions."""

    def __init__(self, error=None):
        self.error = error
        self.calls = []
        self.closed = False

    async def submit(self, answers):
        self.calls.append(dict(answers))
        if self.error is not None:
            raise self.error
        return SubmissionResult(success=True, file_urls=["u1"], file_count=1)

    async def close(self):
        self.closed = True


class StorageFactory:
    def __init__(self):
        self.storages = {}

    def __call__(self, session_id):
        return self.storages.setdefault(session_id, MemoryStorage())


def test_session_id_format():
    assert is_valid_session_id(str(uuid.uuid4()))
    assert not is_valid_session_id("../etc/passwd")
    assert not is_valid_session_id("")
    assert not is_valid_session_id(None)
    assert not is_valid_session_id(str(uuid.uuid4()).upper())


@pytest.mark.asyncio
async def test_get_or_create_mints_new_ids():
    manager = SessionManager(storage_factory=StorageFactory(), client=FakeClient())
    session_id, controller = await manager.get_or_create()
    assert is_valid_session_id(session_id)
    assert controller.session_id == session_id

    same_id, same = await manager.get_or_create(session_id)
    assert same_id == session_id
    assert same is controller

    other_id, _ = await manager.get_or_create("not-a-session")
    assert other_id != "not-a-session"


@pytest.mark.asyncio
async def test_dropped_session_restores_from_snapshot():
    factory = StorageFactory()
    manager = SessionManager(storage_factory=factory, client=FakeClient())
    session_id, controller = await manager.get_or_create()
    await controller.start()
    await controller.on_answer_change("name", "Asha")
    await controller.next()

    await manager.drop(session_id)
    restored = await manager.get(session_id)

    assert restored is not controller
    assert restored.phase is Phase.ANSWERING
    assert restored.current_index == 1
    assert restored.answers["name"] == TextAnswer("Asha")


@pytest.mark.asyncio
async def test_malformed_id_is_not_loaded():
    factory = StorageFactory()
    manager = SessionManager(storage_factory=factory, client=FakeClient())
    assert await manager.get("nope") is None
    assert factory.storages == {}


@pytest.mark.asyncio
async def test_close_closes_client():
    client = FakeClient()
    manager = SessionManager(storage_factory=StorageFactory(), client=client)
    await manager.get_or_create()
    await manager.close()
    assert client.closed
    assert len(manager.sessions) == 0


class SlowStorage(MemoryStorage):
    async def get(self, key):
        await asyncio.sleep(0.01)
        return await super().get(key)


@pytest.mark.asyncio
async def test_concurrent_loads_share_one_controller():
    manager = SessionManager(storage_factory=lambda sid: SlowStorage(), client=FakeClient())
    session_id = str(uuid.uuid4())

    first, second = await asyncio.gather(manager.get(session_id), manager.get(session_id))

    assert first is second
    assert manager.sessions[session_id] is first


@pytest.mark.asyncio
async def test_dropped_sessions_leave_no_memory_snapshots(monkeypatch):
    snapshots = TTLCache(maxsize=64, ttl=60)
    monkeypatch.setattr(storage_module, "_memory_snapshots", snapshots)
    manager = SessionManager(
        storage_factory=lambda sid: create_storage(sid, "memory"),
        client=FakeClient(),
    )

    for _ in range(50):
        session_id, _ = await manager.get_or_create()
        await manager.drop(session_id)
    assert len(snapshots) == 0

    session_id, controller = await manager.get_or_create()
    await controller.start()
    assert session_id in snapshots
    await controller.store.clear_all()
    assert session_id not in snapshots
