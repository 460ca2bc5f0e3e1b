import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    acquired_at: float
    expires_at: Optional[float] = None

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and now > self.expires_at


class TokenCache:
    """Namespaced in-memory store for short-lived credentials.

    Lookups and writes are individually serialized, but a miss followed by a
    populate is not transactional: two callers may both authenticate and both
    write, in which case the last write wins. Entries only expire when the
    writer passes a ttl; otherwise staleness is detected by the caller when
    the upstream rejects the credential.
    """

    def __init__(self) -> None:
        self._entries: Dict[Tuple[str, str], CacheEntry] = {}
        self._lock = asyncio.Lock()

    async def get(self, namespace: str, key: str) -> Tuple[Any, bool]:
        async with self._lock:
            entry = self._entries.get((namespace, key))
            if entry is None:
                return None, False
            if entry.expired(time.time()):
                del self._entries[(namespace, key)]
                return None, False
            return entry.value, True

    async def put(self, namespace: str, key: str, value: Any, ttl: Optional[float] = None) -> None:
        async with self._lock:
            now = time.time()
            expires_at = now + ttl if ttl else None
            self._entries[(namespace, key)] = CacheEntry(
                value=value, acquired_at=now, expires_at=expires_at
            )

    async def invalidate(self, namespace: str, key: str) -> None:
        async with self._lock:
            self._entries.pop((namespace, key), None)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def size(self) -> int:
        return len(self._entries)


# Global cache instance
token_cache = TokenCache()
