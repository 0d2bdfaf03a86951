"""Tests for the in-process view cache."""

from types import SimpleNamespace

import pytest

from storefront.cache import ORDERS, PAYMENTS, ViewCache, cache_key


@pytest.fixture
def cache():
    return ViewCache()


def test_cache_key():
    assert cache_key("a@example.com", 7) == "a@example.com:7"


def test_put_get_evict(cache):
    cache.put(ORDERS, "a@example.com", {"total": 1})
    assert cache.get(ORDERS, "a@example.com") == {"total": 1}

    cache.evict(ORDERS, "a@example.com")
    assert cache.get(ORDERS, "a@example.com") is None


def test_regions_are_separate(cache):
    cache.put(ORDERS, "k", "orders")
    cache.put(PAYMENTS, "k", "payments")

    cache.evict_all(ORDERS)

    assert cache.get(ORDERS, "k") is None
    assert cache.get(PAYMENTS, "k") == "payments"


def test_values_are_copied(cache):
    view = {"items": [1, 2]}
    cache.put(ORDERS, "k", view)
    view["items"].append(3)

    cached = cache.get(ORDERS, "k")
    cached["items"].append(4)

    assert cache.get(ORDERS, "k") == {"items": [1, 2]}


def test_get_or_load_calls_loader_once(cache):
    calls = []

    def loader():
        calls.append(1)
        return {"id": 1}

    assert cache.get_or_load(PAYMENTS, "k", loader) == {"id": 1}
    assert cache.get_or_load(PAYMENTS, "k", loader) == {"id": 1}
    assert len(calls) == 1


def test_loader_errors_are_not_cached(cache):
    def loader():
        raise LookupError("missing")

    with pytest.raises(LookupError):
        cache.get_or_load(PAYMENTS, "k", loader)
    assert cache.get(PAYMENTS, "k") is None


def test_ttl_expiry(cache, monkeypatch):
    clock = SimpleNamespace(now=100.0)
    monkeypatch.setattr("storefront.cache.time", SimpleNamespace(monotonic=lambda: clock.now))

    cache.put(ORDERS, "k", "v", ttl=10)
    clock.now = 109.0
    assert cache.get(ORDERS, "k") == "v"

    clock.now = 110.0
    assert cache.get(ORDERS, "k") is None


def test_clear(cache):
    cache.put(ORDERS, "a", 1)
    cache.put(PAYMENTS, "b", 2)

    cache.clear()

    assert cache.get(ORDERS, "a") is None
    assert cache.get(PAYMENTS, "b") is None
