"""
Tests for the resource node cache.
"""

import pytest

from rdflpg.mapping.resource_cache import ResourceCache


@pytest.mark.unit
class TestResourceCache:
    """Tests for LRU behaviour."""

    def test_put_and_get(self):
        cache = ResourceCache(max_size=2)
        cache.put(("http://example.org/a", None), 1)
        assert cache.get(("http://example.org/a", None)) == 1
        assert cache.get(("http://example.org/a", "http://example.org/g")) is None

    def test_evicts_least_recently_used(self):
        """Test that the oldest untouched key is evicted first."""
        cache = ResourceCache(max_size=2)
        cache.put(("a", None), 1)
        cache.put(("b", None), 2)
        cache.get(("a", None))
        cache.put(("c", None), 3)
        assert ("a", None) in cache
        assert ("b", None) not in cache
        assert len(cache) == 2

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            ResourceCache(max_size=0)
        with pytest.raises(ValueError):
            ResourceCache(max_size=1).resize(-1)

    def test_resize_evicts(self):
        """Test that shrinking drops the oldest entries."""
        cache = ResourceCache(max_size=3)
        for i, key in enumerate("abc"):
            cache.put((key, None), i)
        cache.resize(1)
        assert len(cache) == 1
        assert ("c", None) in cache

    def test_discard(self):
        """Test that discard reports how many keys were cached."""
        cache = ResourceCache(max_size=3)
        cache.put(("a", None), 1)
        cache.put(("b", None), 2)
        assert cache.discard([("a", None), ("z", None)]) == 1
        assert ("a", None) not in cache
        cache.invalidate(("b", None))
        assert len(cache) == 0

    def test_stats(self):
        """Test hit and miss counting."""
        cache = ResourceCache(max_size=3)
        cache.put(("a", None), 1)
        cache.get(("a", None))
        cache.get(("b", None))
        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5
        assert stats["size"] == 1
        assert stats["max_size"] == 3
        cache.clear()
        assert cache.stats()["hits"] == 0


@pytest.mark.unit
class TestResolveOrCreate:
    """Tests for find-or-create through the cache."""

    def test_miss_creates_then_hits(self, store):
        """Test that the first resolve creates and the second hits the cache."""
        cache = ResourceCache(max_size=10)
        key = ("http://example.org/a", None)
        with store.transaction() as tx:
            node_id, created = cache.resolve_or_create(tx, key)
            again, created_again = cache.resolve_or_create(tx, key)
        assert created and not created_again
        assert node_id == again
        assert cache.stats()["hits"] == 1

    def test_evicted_key_finds_existing_node(self, store):
        """Test that an evicted key resolves to the node without a duplicate."""
        cache = ResourceCache(max_size=1)
        with store.transaction() as tx:
            a, _ = cache.resolve_or_create(tx, ("http://example.org/a", None))
            cache.resolve_or_create(tx, ("http://example.org/b", None))
            again, created = cache.resolve_or_create(tx, ("http://example.org/a", None))
        assert again == a
        assert not created
        assert store.node_count("Resource") == 2
