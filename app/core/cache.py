from collections import OrderedDict
from time import monotonic
from typing import Generic, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Small read cache for profile lookups. A ttl of 0 disables it."""

    def __init__(self, max_size: int, ttl_seconds: float):
        self.max_size = max(1, max_size)
        self.ttl_seconds = ttl_seconds
        self._items: OrderedDict[str, tuple[float, V]] = OrderedDict()

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get(self, key: str) -> V | None:
        if not self.enabled:
            return None
        item = self._items.get(key)
        if item is None:
            return None
        stored_at, value = item
        if monotonic() - stored_at > self.ttl_seconds:
            self._items.pop(key, None)
            return None
        return value

    def set(self, key: str, value: V) -> None:
        if not self.enabled:
            return
        self._items.pop(key, None)
        while len(self._items) >= self.max_size:
            self._items.popitem(last=False)
        self._items[key] = (monotonic(), value)

    def invalidate(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)
