import time
from unittest.mock import AsyncMock, patch

import pytest

from src.identity.core.models import LoginState, SavedRedirect
from src.identity.core.storage import session_storage as storage_module
from src.identity.core.storage.session_storage import (
    InMemorySessionStorage,
    RedisSessionStorage,
)
from src.identity.runtime.context import use_config
from tests.fixtures.core import make_config


class TestInMemorySessionStorage:
    @pytest.mark.asyncio
    async def test_set_get_delete(self, session_storage: InMemorySessionStorage):
        await session_storage.set("k", SavedRedirect(url="/app/"), 60)
        assert (await session_storage.get("k", SavedRedirect)).url == "/app/"

        await session_storage.delete("k")
        assert await session_storage.get("k", SavedRedirect) is None

    @pytest.mark.asyncio
    async def test_pop_removes_the_value(self, session_storage: InMemorySessionStorage):
        state = LoginState(state="s", provider="acme", code_verifier="v")
        await session_storage.set("k", state, 60)

        assert await session_storage.pop("k", LoginState) == state
        assert await session_storage.pop("k", LoginState) is None

    @pytest.mark.asyncio
    async def test_expired_entries(self, session_storage: InMemorySessionStorage):
        await session_storage.set("old", SavedRedirect(url="/a"), 10)
        await session_storage.set("new", SavedRedirect(url="/b"), 1000)

        with patch("time.time", return_value=time.time() + 100):
            assert await session_storage.get("old", SavedRedirect) is None
            await session_storage.set("old2", SavedRedirect(url="/c"), -1)
            assert await session_storage.cleanup_expired() == 1
        assert (await session_storage.get("new", SavedRedirect)).url == "/b"

    @pytest.mark.asyncio
    async def test_wrong_model_drops_entry(self, session_storage: InMemorySessionStorage):
        await session_storage.set("k", SavedRedirect(url="/a"), 60)
        assert await session_storage.get("k", LoginState) is None
        assert await session_storage.get("k", SavedRedirect) is None


class TestRedisSessionStorage:
    @pytest.mark.asyncio
    async def test_round_trip_through_client(self):
        client = AsyncMock()
        client.get.return_value = SavedRedirect(url="/app/", created_at=1).model_dump_json()
        storage = RedisSessionStorage(client)

        await storage.set("k", SavedRedirect(url="/app/", created_at=1), 60)
        client.setex.assert_awaited_once()
        assert (await storage.get("k", SavedRedirect)).url == "/app/"

    @pytest.mark.asyncio
    async def test_failures_mark_storage_unavailable(self):
        client = AsyncMock()
        client.get.side_effect = ConnectionError("down")
        storage = RedisSessionStorage(client)

        with pytest.raises(RuntimeError):
            await storage.get("k", SavedRedirect)
        assert storage.is_available() is False


@pytest.mark.asyncio
async def test_falls_back_to_memory_without_redis():
    storage_module._reset_storage()
    try:
        with use_config(make_config()):
            storage = await storage_module.get_session_storage()
            assert isinstance(storage, InMemorySessionStorage)
            assert await storage_module.get_session_storage() is storage
    finally:
        storage_module._reset_storage()
