"""TTL cache for loaded payloads.

Concurrent ``get_or_load`` calls for the same key share one loader call: the
first caller runs the loader, later callers wait on its future. A failed load
is forgotten so the next call retries.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TypeVar

T = TypeVar("T")

_MISSING = object()


@dataclass
class CacheEntry:
    value: Any = _MISSING
    expires_at: float = 0.0
    pending: Optional[Future] = None

    @property
    def has_value(self) -> bool:
        return self.value is not _MISSING


class TTLCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get_or_load(
        self,
        key: str,
        loader: Callable[[], T],
        ttl_seconds: float,
        *,
        force_refresh: bool = False,
    ) -> T:
        with self._lock:
            entry = self._entries.get(key)
            if not force_refresh and entry is not None:
                if entry.has_value and entry.expires_at > self._clock():
                    return entry.value
                if entry.pending is not None:
                    pending = entry.pending
                    owner = False
                else:
                    pending, owner = None, True
            else:
                pending, owner = None, True

            if owner:
                pending = Future()
                self._entries[key] = CacheEntry(
                    value=entry.value if entry is not None else _MISSING,
                    expires_at=entry.expires_at if entry is not None else 0.0,
                    pending=pending,
                )

        if not owner:
            return pending.result()

        try:
            value = loader()
        except Exception as exc:
            with self._lock:
                current = self._entries.get(key)
                if current is not None and current.pending is pending:
                    del self._entries[key]
            pending.set_exception(exc)
            raise

        with self._lock:
            current = self._entries.get(key)
            # Skip the store if the key was invalidated or refreshed mid-load.
            if current is not None and current.pending is pending:
                self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)
        pending.set_result(value)
        return value

    def peek(self, key: str) -> Any:
        """Return the stored value (fresh or stale) without loading, or None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.has_value:
                return None
            return entry.value

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            for k in keys:
                del self._entries[k]
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries
