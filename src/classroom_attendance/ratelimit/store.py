from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Hashable, Optional, Protocol


@dataclass
class RateLimitCounter:
    count: int
    window_started_at: datetime
    last_attempt_at: datetime


class CounterStore(Protocol):
    def get(self, key: Hashable) -> Optional[RateLimitCounter]:
        raise NotImplementedError

    def put(self, key: Hashable, counter: RateLimitCounter) -> None:
        raise NotImplementedError

    def delete(self, key: Hashable) -> None:
        raise NotImplementedError

    def sweep(self, predicate: Callable[[RateLimitCounter], bool]) -> int:
        """Delete every counter matching ``predicate``; returns how many."""

        raise NotImplementedError


class InMemoryCounterStore(CounterStore):
    def __init__(self):
        self._counters: dict[Hashable, RateLimitCounter] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[RateLimitCounter]:
        with self._lock:
            return self._counters.get(key)

    def put(self, key: Hashable, counter: RateLimitCounter) -> None:
        with self._lock:
            self._counters[key] = counter

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._counters.pop(key, None)

    def sweep(self, predicate: Callable[[RateLimitCounter], bool]) -> int:
        with self._lock:
            stale = [k for k, c in self._counters.items() if predicate(c)]
            for k in stale:
                del self._counters[k]
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)
