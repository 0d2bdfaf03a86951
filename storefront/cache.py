# storefront/cache.py
import copy
import threading
import time

import structlog

logger = structlog.get_logger(component="view_cache")

# region names shared by the services
ORDERS = "orders"
ORDER_BY_ID = "orderById"
PAYMENTS = "payments"
CARTS = "carts"
PRODUCTS_BY_ID = "productsById"
PRODUCTS_ALL = "productsAll"


def cache_key(*parts) -> str:
    """``cache_key("a@b.c", 7) -> "a@b.c:7"``"""
    return ":".join(str(p) for p in parts)


class ViewCache:
    """In-process cache of rendered views, split into named regions.

    Values are deep-copied on the way in and out so a cached view can never
    be mutated through a reference a caller still holds.
    """

    def __init__(self, default_ttl: float | None = None):
        self._default_ttl = default_ttl
        self._regions: dict[str, dict[str, tuple[object, float | None]]] = {}
        self._lock = threading.RLock()

    def get(self, region: str, key: str):
        with self._lock:
            entry = self._regions.get(region, {}).get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at <= time.monotonic():
                del self._regions[region][key]
                return None
            return copy.deepcopy(value)

    def put(self, region: str, key: str, value, ttl: float | None = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        expires_at = time.monotonic() + ttl if ttl else None
        with self._lock:
            self._regions.setdefault(region, {})[key] = (copy.deepcopy(value), expires_at)

    def evict(self, region: str, key: str) -> None:
        with self._lock:
            self._regions.get(region, {}).pop(key, None)

    def evict_all(self, *regions: str) -> None:
        with self._lock:
            for region in regions:
                dropped = len(self._regions.pop(region, {}))
                if dropped:
                    logger.debug("cache_region_evicted", region=region, entries=dropped)

    def clear(self) -> None:
        with self._lock:
            self._regions.clear()

    def get_or_load(self, region: str, key: str, loader):
        cached = self.get(region, key)
        if cached is not None:
            return cached
        value = loader()
        self.put(region, key, value)
        return value
