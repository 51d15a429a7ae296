from __future__ import annotations

import logging
import time
from typing import Callable, Protocol

from ..ldap.handle import DirectoryHandle

log = logging.getLogger(__name__)


class SessionStore(Protocol):
    async def get(self, sid: str) -> DirectoryHandle | None: ...

    async def put(self, sid: str, handle: DirectoryHandle) -> None: ...

    async def remove(self, sid: str) -> None: ...


class InMemorySessionStore:
    """Process-local session map: session id -> directory handle.

    Entries older than `max_age` seconds are dropped, and their handles
    closed, when looked up and on every `put`. A handle whose connection was
    abandoned is dropped on lookup. `clock` is injectable for tests.
    """

    def __init__(self, max_age: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.max_age = max_age
        self._clock = clock
        self._items: dict[str, tuple[DirectoryHandle, float]] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, sid: object) -> bool:
        return sid in self._items

    async def get(self, sid: str) -> DirectoryHandle | None:
        item = self._items.get(sid)
        if item is None:
            return None
        handle, created = item
        if self.max_age and self._clock() - created > self.max_age:
            log.info("Session expired, closing its directory connection")
            await self.remove(sid)
            return None
        if not handle.usable:
            log.info("Session connection no longer usable, dropping it")
            await self.remove(sid)
            return None
        return handle

    async def put(self, sid: str, handle: DirectoryHandle) -> None:
        # Expired cookies are never presented again, so their entries go here.
        await self.purge_expired()
        previous = self._items.get(sid)
        self._items[sid] = (handle, self._clock())
        if previous is not None and previous[0] is not handle:
            await previous[0].close()

    async def remove(self, sid: str) -> None:
        item = self._items.pop(sid, None)
        if item is not None:
            await item[0].close()

    async def purge_expired(self) -> int:
        now = self._clock()
        expired = [sid for sid, (_, created) in self._items.items() if self.max_age and now - created > self.max_age]
        for sid in expired:
            await self.remove(sid)
        return len(expired)

    async def close_all(self) -> None:
        items, self._items = self._items, {}
        for handle, _ in items.values():
            await handle.close()
        if items:
            log.info("Closed %d session connection(s)", len(items))
