"""Consumer label lookup for auto-filling a port form.

As an operator types a phone number, the consumer label of an existing
line with that number is looked up. Keystrokes arrive faster than the
store answers, so lookups are debounced: each request waits for a quiet
period, cancels the request it supersedes, and a result that arrives
after a newer request started is reported as superseded instead of
overwriting fresher input.
"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from ..domain.ports import IPhoneLineRepository

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5

K = TypeVar("K")
V = TypeVar("V")


@dataclass
class LookupOutcome(Generic[K, V]):
    key: K
    value: Optional[V] = None
    superseded: bool = False


class DebouncedLookup(Generic[K, V]):
    """Debounce an async lookup and discard stale results.

    ``fetch`` may be fixed at construction or passed with each request;
    the server passes it per request so a long-lived instance never holds
    on to a request-scoped repository.
    """

    def __init__(
        self,
        fetch: Optional[Callable[[K], Awaitable[V]]] = None,
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        self._fetch = fetch
        self.delay = delay
        self._generation = 0
        self._pending: Optional[asyncio.Task] = None

    async def request(
        self,
        key: K,
        fetch: Optional[Callable[[K], Awaitable[V]]] = None,
    ) -> LookupOutcome[K, V]:
        """Look up ``key`` once no newer request arrives within ``delay``.

        Returns:
            LookupOutcome with the value, or ``superseded=True`` when a
            newer request replaced this one
        """
        fetch = fetch or self._fetch
        if fetch is None:
            raise TypeError("DebouncedLookup.request needs a fetch function")

        self._generation += 1
        generation = self._generation

        if self._pending is not None and not self._pending.done():
            self._pending.cancel()

        task = asyncio.ensure_future(self._delayed_fetch(key, fetch))
        self._pending = task
        try:
            value = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                return LookupOutcome(key=key, superseded=True)
            raise

        if generation != self._generation:
            logger.debug(f"Discarding stale lookup result for {key!r}")
            return LookupOutcome(key=key, superseded=True)
        return LookupOutcome(key=key, value=value)

    async def _delayed_fetch(self, key: K, fetch: Callable[[K], Awaitable[V]]) -> V:
        await asyncio.sleep(self.delay)
        return await fetch(key)

    def cancel(self) -> None:
        """Drop any pending lookup."""
        self._generation += 1
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()


class LookupDebouncers:
    """One DebouncedLookup per client form.

    Keying by client keeps one operator's keystrokes from superseding
    another's. Past ``max_clients`` the least recently used entry is
    cancelled and dropped.
    """

    def __init__(self, delay: float = DEFAULT_DEBOUNCE_SECONDS, max_clients: int = 256):
        self.delay = delay
        self.max_clients = max_clients
        self._by_client: OrderedDict[str, DebouncedLookup] = OrderedDict()

    def for_client(self, client_key: str) -> DebouncedLookup:
        lookup = self._by_client.pop(client_key, None)
        if lookup is None:
            lookup = DebouncedLookup(delay=self.delay)
        self._by_client[client_key] = lookup

        while len(self._by_client) > self.max_clients:
            _, dropped = self._by_client.popitem(last=False)
            dropped.cancel()
        return lookup

    def __len__(self) -> int:
        return len(self._by_client)


class ConsumerLookupUseCase:
    """Find the consumer label of an existing line by number."""

    def __init__(
        self,
        line_repo: IPhoneLineRepository,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        self.lines = line_repo
        self.debounce_seconds = debounce_seconds

    async def lookup(self, number: str) -> Optional[str]:
        number = (number or "").strip()
        if not number:
            return None
        line = await self.lines.find_by_number(number)
        return line.consumer_label if line else None

    async def lookup_as_typed(
        self, debouncer: DebouncedLookup[str, Optional[str]], number: str
    ) -> LookupOutcome[str, Optional[str]]:
        """Debounced lookup for a form that sends one request per keystroke."""
        return await debouncer.request(number, fetch=self.lookup)

    def debounced(self, delay: Optional[float] = None) -> DebouncedLookup[str, Optional[str]]:
        """A debounced lookup bound to this use case."""
        return DebouncedLookup(self.lookup, delay=self.debounce_seconds if delay is None else delay)
