"""
Resource cache: IRI (plus graph context) -> node id.

An LRU front for the store's find-or-create of resource nodes. Bounded
by the configured node cache size; evicts the least recently used key.
Entries can go stale if nodes are deleted behind the cache's back, which
is why the delete engine evicts the keys of nodes it removes.
"""

import logging
import threading
from collections import OrderedDict
from typing import Any, Dict, Iterable, Optional, Tuple

from ..constants import ImportDefaults
from ..store.base import GraphTransaction

logger = logging.getLogger(__name__)

# (uri, graph uri or None)
ResourceKey = Tuple[str, Optional[str]]


class ResourceCache:
    """In-process LRU of resource node ids."""

    def __init__(self, max_size: int = ImportDefaults.NODE_CACHE_SIZE):
        if max_size <= 0:
            raise ValueError(f"Cache size must be positive, got {max_size}")
        self.max_size = max_size
        self._cache: "OrderedDict[ResourceKey, int]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: ResourceKey) -> bool:
        return key in self._cache

    def get(self, key: ResourceKey) -> Optional[int]:
        """Return the cached node id, marking the key most recently used."""
        with self._lock:
            node_id = self._cache.get(key)
            if node_id is None:
                self._misses += 1
                return None
            self._cache.move_to_end(key)
            self._hits += 1
            return node_id

    def put(self, key: ResourceKey, node_id: int) -> None:
        with self._lock:
            if key in self._cache:
                self._cache[key] = node_id
                self._cache.move_to_end(key)
                return
            if len(self._cache) >= self.max_size:
                self._cache.popitem(last=False)
            self._cache[key] = node_id

    def resolve_or_create(self, tx: GraphTransaction, key: ResourceKey) -> Tuple[int, bool]:
        """
        Return the node id for ``key``, finding or creating the resource.

        A hit skips the store. A miss calls ``merge_resource`` (find by
        key, else create with the key) inside ``tx`` and caches the result.

        Args:
            tx: Open store transaction.
            key: (uri, graph uri) of the resource.

        Returns:
            Tuple of (node id, created flag).
        """
        node_id = self.get(key)
        if node_id is not None:
            return node_id, False
        uri, graph_uri = key
        node_id, created = tx.merge_resource(uri, graph_uri)
        self.put(key, node_id)
        return node_id, created

    def invalidate(self, key: ResourceKey) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def discard(self, keys: Iterable[ResourceKey]) -> int:
        """Evict several keys; return how many were cached."""
        removed = 0
        with self._lock:
            for key in keys:
                if self._cache.pop(key, None) is not None:
                    removed += 1
        if removed:
            logger.debug(f"Evicted {removed} resource cache entries")
        return removed

    def resize(self, max_size: int) -> None:
        """Change the capacity, evicting least recently used keys if needed."""
        if max_size <= 0:
            raise ValueError(f"Cache size must be positive, got {max_size}")
        with self._lock:
            if max_size < len(self._cache):
                logger.warning(
                    f"Shrinking resource cache from {len(self._cache)} to {max_size} entries"
                )
            self.max_size = max_size
            while len(self._cache) > max_size:
                self._cache.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / total if total > 0 else 0.0,
            "size": len(self._cache),
            "max_size": self.max_size,
        }
