"""Tests for consumer label lookup and debouncing."""

import asyncio
import sys

import pytest

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])

from src.telroute.topology.use_cases import ConsumerLookupUseCase, DebouncedLookup, LookupDebouncers


class TestConsumerLookup:
    """Tests for looking up a label by number."""

    @pytest.mark.asyncio
    async def test_known_number(self, store):
        await store.upsert_by_number("1234", "Reception")
        use_case = ConsumerLookupUseCase(store)
        assert await use_case.lookup(" 1234 ") == "Reception"

    @pytest.mark.asyncio
    async def test_unknown_or_blank(self, store):
        use_case = ConsumerLookupUseCase(store)
        assert await use_case.lookup("9999") is None
        assert await use_case.lookup("   ") is None


class TestDebouncedLookup:
    """Tests for superseding and cancelling lookups."""

    @pytest.mark.asyncio
    async def test_latest_request_wins(self):
        calls = []

        async def fetch(key):
            calls.append(key)
            return key.upper()

        lookup = DebouncedLookup(fetch, delay=0.05)
        first = asyncio.ensure_future(lookup.request("a"))
        await asyncio.sleep(0.01)
        second = asyncio.ensure_future(lookup.request("ab"))

        first_outcome, second_outcome = await asyncio.gather(first, second)

        assert first_outcome.superseded
        assert second_outcome.value == "AB"
        assert calls == ["ab"]

    @pytest.mark.asyncio
    async def test_slow_result_is_stale(self):
        release = asyncio.Event()

        async def fetch(key):
            if key == "slow":
                await release.wait()
            return key

        lookup = DebouncedLookup(fetch, delay=0)
        slow = asyncio.ensure_future(lookup.request("slow"))
        await asyncio.sleep(0.01)
        fast = await lookup.request("fast")
        release.set()

        assert fast.value == "fast"
        assert (await slow).superseded

    @pytest.mark.asyncio
    async def test_cancel(self):
        async def fetch(key):
            return key

        lookup = DebouncedLookup(fetch, delay=0.05)
        pending = asyncio.ensure_future(lookup.request("x"))
        await asyncio.sleep(0.01)
        lookup.cancel()

        assert (await pending).superseded

    @pytest.mark.asyncio
    async def test_use_case_debounced(self, store):
        await store.upsert_by_number("1234", "Reception")
        lookup = ConsumerLookupUseCase(store).debounced(delay=0)
        outcome = await lookup.request("1234")
        assert outcome.value == "Reception"

    @pytest.mark.asyncio
    async def test_fetch_passed_per_request(self, store):
        await store.upsert_by_number("1234", "Reception")
        use_case = ConsumerLookupUseCase(store)

        outcome = await use_case.lookup_as_typed(DebouncedLookup(delay=0), " 1234 ")

        assert outcome.value == "Reception"
        assert not outcome.superseded

    @pytest.mark.asyncio
    async def test_request_without_fetch(self):
        with pytest.raises(TypeError):
            await DebouncedLookup(delay=0).request("1234")


class TestLookupDebouncers:
    """Tests for the per-client registry."""

    def test_same_client_reuses_instance(self):
        debouncers = LookupDebouncers(delay=0.2)
        first = debouncers.for_client("form-a")
        assert debouncers.for_client("form-a") is first
        assert first.delay == 0.2
        assert debouncers.for_client("form-b") is not first

    @pytest.mark.asyncio
    async def test_least_recent_client_evicted_and_cancelled(self):
        async def fetch(key):
            return key

        debouncers = LookupDebouncers(delay=0.05, max_clients=2)
        oldest = debouncers.for_client("a")
        pending = asyncio.ensure_future(oldest.request("x", fetch=fetch))
        await asyncio.sleep(0.01)

        debouncers.for_client("b")
        debouncers.for_client("c")

        assert len(debouncers) == 2
        assert (await pending).superseded
        assert debouncers.for_client("a") is not oldest
