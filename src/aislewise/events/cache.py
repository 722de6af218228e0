"""Read cache cleared by change notifications."""
from typing import Any, Callable, Dict, Hashable, Optional, Tuple, TypeVar

from aislewise.utils.logger import get_logger
from .bus import ChangeBus

T = TypeVar('T')

CacheKey = Tuple[Hashable, ...]


class ReadCache:
    """Memoizes read results by tuple key until the next change."""

    def __init__(self, bus: Optional[ChangeBus] = None):
        self._entries: Dict[CacheKey, Any] = {}
        self.logger = get_logger(self.__class__.__name__)
        self._unsubscribe = bus.subscribe(self.clear) if bus else None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def get(self, key: CacheKey, loader: Callable[[], T]) -> T:
        """Return the cached value for ``key``, loading it on a miss."""
        if key in self._entries:
            return self._entries[key]
        value = loader()
        self._entries[key] = value
        return value

    def invalidate(self, prefix: Optional[CacheKey] = None) -> int:
        """
        Drop cached entries.

        Args:
            prefix: Only drop keys starting with this tuple; all when None

        Returns:
            Number of dropped entries
        """
        if prefix is None:
            return self.clear()
        stale = [k for k in self._entries if k[:len(prefix)] == prefix]
        for key in stale:
            del self._entries[key]
        if stale:
            self.logger.debug("Cache invalidated", prefix=prefix, dropped=len(stale))
        return len(stale)

    def clear(self) -> int:
        dropped = len(self._entries)
        self._entries.clear()
        return dropped

    def detach(self) -> None:
        """Stop listening to the bus."""
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
