from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, Tuple, TypeVar

from utils.logger import get_logger

_logger = get_logger(__name__)

T = TypeVar("T")
QueryKey = Tuple[Hashable, ...]

FOREVER = math.inf


@dataclass
class _Entry:
    value: Any
    fetched_at: float


class QueryCache:
    """
    Keyed cache of server data.

    - ``fetch`` returns a cached value younger than ``stale_time`` seconds,
      otherwise loads it. Concurrent fetches of the same key share one load.
    - ``invalidate(prefix)`` drops every key starting with ``prefix``, so
      ``("orders",)`` covers every order list and detail.
    - ``clear`` drops everything (logout).
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[QueryKey, _Entry] = {}
        self._inflight: Dict[QueryKey, asyncio.Task] = {}

    async def fetch(
        self,
        key: QueryKey,
        loader: Callable[[], Awaitable[T]],
        stale_time: float = 0.0,
    ) -> T:
        entry = self._entries.get(key)
        if entry is not None and self._clock() - entry.fetched_at < stale_time:
            return entry.value

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(loader())
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._settle(k, t))
        else:
            _logger.debug(f"joining in-flight load of {key}")

        # one caller being cancelled must not cancel the shared load
        return await asyncio.shield(task)

    def _settle(self, key: QueryKey, task: asyncio.Task) -> None:
        if self._inflight.get(key) is not task:
            # invalidated while loading, the result is already stale
            return
        del self._inflight[key]
        if task.cancelled() or task.exception() is not None:
            return
        self._entries[key] = _Entry(task.result(), self._clock())

    def get_data(self, key: QueryKey) -> Optional[Any]:
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def set_data(self, key: QueryKey, value: Any) -> None:
        self._entries[key] = _Entry(value, self._clock())

    def invalidate(self, prefix: QueryKey) -> int:
        n = len(prefix)
        stale = [k for k in self._entries if k[:n] == prefix]
        for k in stale:
            del self._entries[k]
        for k in [k for k in self._inflight if k[:n] == prefix]:
            del self._inflight[k]
        if stale:
            _logger.debug(f"invalidated {len(stale)} entries under {prefix}")
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
        self._inflight.clear()

    def __contains__(self, key: QueryKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
