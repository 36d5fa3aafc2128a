from __future__ import annotations

import asyncio

from vidgrab.models.schemas import VideoInfo
from vidgrab.services.info_cache import VideoInfoCache
from vidgrab.services.store import MemoryStore
from vidgrab.utils.platform_detector import Platform

URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


class CountingFetch:
    def __init__(self) -> None:
        self.calls = 0

    async def __call__(self, url: str) -> VideoInfo:
        self.calls += 1
        return VideoInfo(title=f"fetch {self.calls}", platform=Platform.YOUTUBE)


def test_repeat_lookups_within_ttl_hit_the_cache(clock) -> None:
    cache = VideoInfoCache(300, clock=clock)
    fetch = CountingFetch()

    first = asyncio.run(cache.get_or_fetch(URL, fetch))
    clock.advance(299)
    second = asyncio.run(cache.get_or_fetch(URL, fetch))

    assert fetch.calls == 1
    assert first == second


def test_lookup_after_ttl_fetches_again(clock) -> None:
    cache = VideoInfoCache(300, clock=clock)
    fetch = CountingFetch()

    asyncio.run(cache.get_or_fetch(URL, fetch))
    clock.advance(300)
    info = asyncio.run(cache.get_or_fetch(URL, fetch))

    assert fetch.calls == 2
    assert info.title == "fetch 2"


def test_expired_entry_is_evicted_on_read(clock) -> None:
    store = MemoryStore()
    cache = VideoInfoCache(10, store=store, clock=clock)
    cache.set(URL, VideoInfo(title="t", platform=Platform.YOUTUBE))

    clock.advance(10)

    assert cache.get(URL) is None
    assert len(store) == 0


def test_failed_fetch_is_not_cached(clock) -> None:
    cache = VideoInfoCache(300, clock=clock)

    async def failing(url: str) -> VideoInfo:
        raise RuntimeError("boom")

    try:
        asyncio.run(cache.get_or_fetch(URL, failing))
    except RuntimeError:
        pass
    assert cache.get(URL) is None


def test_sweep_removes_expired_entries(clock) -> None:
    store = MemoryStore()
    cache = VideoInfoCache(10, store=store, clock=clock)
    cache.set("https://youtu.be/aaaaaaaaaaa", VideoInfo(title="a", platform=Platform.YOUTUBE))
    clock.advance(5)
    cache.set("https://youtu.be/bbbbbbbbbbb", VideoInfo(title="b", platform=Platform.YOUTUBE))
    clock.advance(6)

    assert cache.sweep() == 1
    assert cache.get("https://youtu.be/bbbbbbbbbbb").title == "b"
