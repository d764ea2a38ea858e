import logging
import threading
import time
from typing import Any, Callable, Iterable, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------
# TTL CACHE
# ---------------------------------------------------

class TTLCache:
    """Process-wide key/value store with a freshness window and a schema guard.

    Entries are stored as (value, cached_at, schema_version). A get only
    returns an entry that is fresh, stamped with the current schema version
    and, for dict values, carries every field in `required_fields`. Anything
    else reads as a miss and is left in place for the next set to overwrite.
    """

    def __init__(self, ttl: float, schema_version: Any = 1,
                 required_fields: Iterable[str] = (),
                 clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self.schema_version = schema_version
        self.required_fields = tuple(required_fields)
        self._clock = clock
        self._data = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            rec = self._data.get(key)
        if rec is None:
            logger.debug("cache miss: %s", key)
            return None
        val, cached_at, version = rec
        if self._clock() - cached_at > self.ttl:
            logger.debug("cache expired: %s", key)
            return None
        if version != self.schema_version or not self._has_shape(val):
            logger.debug("cache shape mismatch: %s (version %r)", key, version)
            return None
        logger.debug("cache hit: %s", key)
        return val

    def set(self, key: str, val: Any):
        with self._lock:
            self._data[key] = (val, self._clock(), self.schema_version)

    def get_stale(self, key: str) -> Optional[Any]:
        """Last stored value regardless of age; schema and shape still apply."""
        with self._lock:
            rec = self._data.get(key)
        if rec is None:
            return None
        val, _, version = rec
        if version != self.schema_version or not self._has_shape(val):
            return None
        return val

    def invalidate(self, key: str):
        with self._lock:
            self._data.pop(key, None)

    def clear(self):
        with self._lock:
            self._data.clear()

    def _has_shape(self, val: Any) -> bool:
        if not self.required_fields:
            return True
        if not isinstance(val, dict):
            return False
        return all(val.get(f) is not None for f in self.required_fields)


class NullCache:
    """Same interface as TTLCache, never stores anything."""

    def get(self, key: str):
        return None

    def get_stale(self, key: str):
        return None

    def set(self, key: str, val: Any):
        pass

    def invalidate(self, key: str):
        pass

    def clear(self):
        pass


def cache_key(*handles: str) -> str:
    """Key for one or more normalized handles, order preserved."""
    return "|".join(handles)
