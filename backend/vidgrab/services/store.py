"""Key-value store shared by the rate limiter and the video info cache"""
import time
from typing import Any, Callable, Dict, Hashable, Iterator, Optional, Protocol, Tuple

Clock = Callable[[], float]


class KeyValueStore(Protocol):
    def get(self, key: Hashable) -> Optional[Any]: ...

    def set(self, key: Hashable, value: Any) -> None: ...

    def delete(self, key: Hashable) -> None: ...

    def sweep(self, is_expired: Callable[[Any], bool]) -> int: ...


class MemoryStore:
    """Single-process dict store.

    Mutations happen synchronously between awaits on the event loop, so no
    locking is needed. Multiple server instances do not share state.
    """

    def __init__(self):
        self._data: Dict[Hashable, Any] = {}

    def get(self, key: Hashable) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: Hashable, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: Hashable) -> None:
        self._data.pop(key, None)

    def sweep(self, is_expired: Callable[[Any], bool]) -> int:
        expired = [key for key, value in self._data.items() if is_expired(value)]
        for key in expired:
            del self._data[key]
        return len(expired)

    def items(self) -> Iterator[Tuple[Hashable, Any]]:
        return iter(list(self._data.items()))

    def __len__(self) -> int:
        return len(self._data)


def monotonic_clock() -> float:
    return time.monotonic()
