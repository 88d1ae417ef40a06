"""Tests for the in-memory import session store."""

from unittest.mock import patch

import pytest

from src.telroute.bulk_import.adapters.session_store import InMemoryImportSessionStore
from src.telroute.bulk_import.domain.entities import (
    ImportKind,
    ImportSession,
    PersistedKeySnapshot,
    ReferenceCatalog,
)

CLOCK = "src.telroute.bulk_import.adapters.session_store.time"


def _session(session_id):
    return ImportSession(
        id=session_id,
        kind=ImportKind.PHONE_LINES,
        rows=[],
        snapshot=PersistedKeySnapshot(),
        catalog=ReferenceCatalog(),
    )


class TestInMemoryImportSessionStore:
    """Tests for expiry and eviction."""

    @pytest.mark.asyncio
    async def test_save_get_discard(self):
        store = InMemoryImportSessionStore()
        session = _session("a")
        await store.save(session)

        assert await store.get("a") is session
        await store.discard("a")
        assert await store.get("a") is None

    @pytest.mark.asyncio
    async def test_expired_session(self):
        store = InMemoryImportSessionStore(ttl_seconds=60)
        with patch(CLOCK) as clock:
            clock.monotonic.return_value = 1000.0
            await store.save(_session("a"))
            clock.monotonic.return_value = 1061.0
            assert await store.get("a") is None

    @pytest.mark.asyncio
    async def test_get_refreshes_lifetime(self):
        store = InMemoryImportSessionStore(ttl_seconds=60)
        with patch(CLOCK) as clock:
            clock.monotonic.return_value = 1000.0
            await store.save(_session("a"))
            clock.monotonic.return_value = 1050.0
            assert await store.get("a") is not None
            clock.monotonic.return_value = 1100.0
            assert await store.get("a") is not None

    @pytest.mark.asyncio
    async def test_oldest_evicted_when_full(self):
        store = InMemoryImportSessionStore(max_sessions=2)
        with patch(CLOCK) as clock:
            for tick, session_id in enumerate(["a", "b", "c"]):
                clock.monotonic.return_value = float(tick)
                await store.save(_session(session_id))

            assert await store.get("a") is None
            assert await store.get("b") is not None
            assert await store.get("c") is not None
