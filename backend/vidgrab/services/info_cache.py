"""TTL cache for extracted video metadata, keyed by source URL"""
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from ..models.schemas import VideoInfo
from .store import Clock, KeyValueStore, MemoryStore, monotonic_clock

logger = logging.getLogger(__name__)


@dataclass
class VideoInfoCacheEntry:
    info: VideoInfo
    cached_at: float


class VideoInfoCache:
    def __init__(
        self,
        ttl_seconds: float,
        store: Optional[KeyValueStore] = None,
        clock: Clock = monotonic_clock,
    ):
        self.ttl_seconds = ttl_seconds
        self.store = store if store is not None else MemoryStore()
        self.clock = clock

    @staticmethod
    def _key(url: str):
        return ("videoinfo", url)

    def _expired(self, entry: VideoInfoCacheEntry, now: float) -> bool:
        return now - entry.cached_at >= self.ttl_seconds

    def get(self, url: str) -> Optional[VideoInfo]:
        entry = self.store.get(self._key(url))
        if entry is None:
            return None
        if self._expired(entry, self.clock()):
            self.store.delete(self._key(url))
            return None
        return entry.info

    def set(self, url: str, info: VideoInfo) -> None:
        self.store.set(self._key(url), VideoInfoCacheEntry(info=info, cached_at=self.clock()))

    async def get_or_fetch(self, url: str, fetch: Callable[[str], Awaitable[VideoInfo]]) -> VideoInfo:
        cached = self.get(url)
        if cached is not None:
            logger.debug("Using cached video info for %s", url)
            return cached
        info = await fetch(url)
        self.set(url, info)
        return info

    def sweep(self) -> int:
        now = self.clock()
        return self.store.sweep(
            lambda value: isinstance(value, VideoInfoCacheEntry) and self._expired(value, now)
        )
