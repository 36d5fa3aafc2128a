"""Per-client fixed-window request limiter"""
import logging
from dataclasses import dataclass
from typing import Optional

from .errors import RateLimited
from .store import Clock, KeyValueStore, MemoryStore, monotonic_clock

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


class RateLimiter:
    """At most max_requests per window_seconds for each client key"""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        name: str = "default",
        store: Optional[KeyValueStore] = None,
        clock: Clock = monotonic_clock,
        message: Optional[str] = None,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.name = name
        self.store = store if store is not None else MemoryStore()
        self.clock = clock
        self.message = message

    def _key(self, client_id: str):
        return ("ratelimit", self.name, client_id or UNKNOWN_CLIENT)

    def check(self, client_id: str) -> RateLimitEntry:
        """Count one request, raising RateLimited once the ceiling is hit"""
        now = self.clock()
        key = self._key(client_id)
        entry = self.store.get(key)
        if entry is None or now >= entry.reset_at:
            entry = RateLimitEntry(count=1, reset_at=now + self.window_seconds)
            self.store.set(key, entry)
            return entry
        if entry.count >= self.max_requests:
            logger.info("Rate limit hit for %s on %s", client_id, self.name)
            raise RateLimited(self.message)
        entry.count += 1
        return entry

    def sweep(self) -> int:
        now = self.clock()
        return self.store.sweep(
            lambda value: isinstance(value, RateLimitEntry) and now > value.reset_at
        )


def client_id_from_headers(headers) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, else the shared bucket"""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    return UNKNOWN_CLIENT
