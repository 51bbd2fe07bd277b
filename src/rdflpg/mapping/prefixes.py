"""
Namespace prefix registry.

Keeps the bidirectional namespace <-> prefix bindings used to shorten
vocabulary IRIs into ``prefix__localName`` keys and to expand them back.
The authoritative copy lives in a single ``NamespacePrefixDefinition``
node in the graph store (properties: namespace IRI -> prefix); this class
caches it and re-reads the record on every cache miss so that bindings
added by other sessions are picked up.
"""

import logging
import re
import threading
from typing import Dict, Optional

from ..constants import AUTO_PREFIX_STEM, NAMESPACE_RECORD_LABEL, PREFIX_SEPARATOR
from ..converters.uri_utils import URIUtils
from ..exceptions import PrefixConflictError, UnknownPrefixError
from ..store.base import GraphStore, GraphTransaction

logger = logging.getLogger(__name__)

_AUTO_PREFIX = re.compile(rf"^{AUTO_PREFIX_STEM}(\d+)$")
_VALID_PREFIX = re.compile(r"^[A-Za-z][A-Za-z0-9\-]*(?:_[A-Za-z0-9\-]+)*$")


def _read_record(tx: GraphTransaction) -> Dict[str, str]:
    """Return namespace -> prefix from the persisted record(s)."""
    bindings: Dict[str, str] = {}
    for node in tx.nodes_with_label(NAMESPACE_RECORD_LABEL):
        for namespace, prefix in node.properties.items():
            bindings[namespace] = str(prefix)
    return bindings


def _write_binding(tx: GraphTransaction, namespace: str, prefix: str) -> None:
    records = tx.nodes_with_label(NAMESPACE_RECORD_LABEL)
    if records:
        tx.set_property(records[0].id, namespace, prefix)
    else:
        tx.create_node([NAMESPACE_RECORD_LABEL], {namespace: prefix})


def next_auto_prefix(in_use) -> str:
    """
    Choose the next ``nsN`` token.

    N is one more than the highest index among existing ``nsN`` tokens
    (0 when there are none), advanced past any token already taken.

    Args:
        in_use: Collection of prefix tokens already bound.

    Returns:
        An unused prefix token.
    """
    indices = [int(m.group(1)) for m in (_AUTO_PREFIX.match(p) for p in in_use) if m]
    index = max(indices) + 1 if indices else 0
    while f"{AUTO_PREFIX_STEM}{index}" in in_use:
        index += 1
    return f"{AUTO_PREFIX_STEM}{index}"


class PrefixRegistry:
    """
    Namespace <-> prefix bindings backed by the store.

    A registry created without a store is transient: it allocates and
    resolves bindings in memory only (used by previews).

    Example:
        >>> registry = PrefixRegistry(store)
        >>> registry.shorten("http://schema.org/name")
        'ns0__name'
        >>> registry.expand("ns0__name")
        'http://schema.org/name'
    """

    def __init__(self, store: Optional[GraphStore] = None,
                 initial: Optional[Dict[str, str]] = None):
        """
        Args:
            store: Store holding the persisted record, or None for a
                transient registry.
            initial: Bindings (prefix -> namespace) to seed a transient
                registry with.
        """
        self._store = store
        self._lock = threading.Lock()
        self._ns_to_prefix: Dict[str, str] = {}
        self._prefix_to_ns: Dict[str, str] = {}
        self._loaded = store is None
        for prefix, namespace in (initial or {}).items():
            self._cache(namespace, prefix)

    @property
    def is_transient(self) -> bool:
        return self._store is None

    def _cache(self, namespace: str, prefix: str) -> None:
        old_prefix = self._ns_to_prefix.get(namespace)
        if old_prefix is not None and old_prefix != prefix:
            self._prefix_to_ns.pop(old_prefix, None)
        self._ns_to_prefix[namespace] = prefix
        self._prefix_to_ns[prefix] = namespace

    def _replace(self, persisted: Dict[str, str]) -> None:
        self._ns_to_prefix = {}
        self._prefix_to_ns = {}
        for namespace, prefix in persisted.items():
            self._cache(namespace, prefix)

    def refresh(self) -> None:
        """
        Rebuild the cache from the persisted record.

        Bindings removed from the record since the last read are dropped.
        """
        if self._store is None:
            return
        with self._store.transaction() as tx:
            persisted = _read_record(tx)
        with self._lock:
            self._replace(persisted)
            self._loaded = True
        logger.debug(f"Loaded {len(persisted)} namespace bindings")

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.refresh()

    def bindings(self) -> Dict[str, str]:
        """Return a snapshot of the bindings as prefix -> namespace."""
        self._ensure_loaded()
        with self._lock:
            return dict(self._prefix_to_ns)

    def prefix_for(self, namespace: str) -> Optional[str]:
        """
        Return the prefix bound to ``namespace`` without allocating one.

        A cache miss triggers one re-read of the persisted record.
        """
        self._ensure_loaded()
        with self._lock:
            prefix = self._ns_to_prefix.get(namespace)
        if prefix is None and self._store is not None:
            self.refresh()
            with self._lock:
                prefix = self._ns_to_prefix.get(namespace)
        return prefix

    def namespace_for(self, prefix: str) -> Optional[str]:
        """Return the namespace bound to ``prefix``, re-reading on a miss."""
        self._ensure_loaded()
        with self._lock:
            namespace = self._prefix_to_ns.get(prefix)
        if namespace is None and self._store is not None:
            self.refresh()
            with self._lock:
                namespace = self._prefix_to_ns.get(prefix)
        return namespace

    def ensure_binding(self, namespace: str) -> str:
        """
        Return the prefix for ``namespace``, allocating ``nsN`` if needed.

        A newly allocated binding is persisted before it is returned.
        Calling this twice with the same namespace returns the same prefix.

        Args:
            namespace: Namespace IRI (separator included).

        Returns:
            The bound prefix token.
        """
        existing = self.prefix_for(namespace)
        if existing is not None:
            return existing

        if self._store is None:
            with self._lock:
                prefix = self._ns_to_prefix.get(namespace)
                if prefix is None:
                    prefix = next_auto_prefix(set(self._prefix_to_ns))
                    self._cache(namespace, prefix)
            return prefix

        with self._store.transaction() as tx:
            persisted = _read_record(tx)
            prefix = persisted.get(namespace)
            if prefix is None:
                with self._lock:
                    in_use = set(persisted.values()) | set(self._prefix_to_ns)
                prefix = next_auto_prefix(in_use)
                _write_binding(tx, namespace, prefix)
                logger.info(f"Bound prefix '{prefix}' to <{namespace}>")
        with self._lock:
            self._replace(persisted)
            self._cache(namespace, prefix)
        return prefix

    def add_binding(self, namespace: str, prefix: str) -> str:
        """
        Define a binding explicitly (before data using it is imported).

        Args:
            namespace: Namespace IRI.
            prefix: Prefix token; letters, digits, '-' and single '_'.

        Returns:
            The prefix.

        Raises:
            PrefixConflictError: If the prefix is invalid or either side is
                already bound differently.
        """
        if not _VALID_PREFIX.match(prefix) or PREFIX_SEPARATOR in prefix:
            raise PrefixConflictError(prefix, namespace, "an invalid prefix token")
        if not URIUtils.is_absolute_iri(namespace):
            raise PrefixConflictError(prefix, namespace, "a namespace that is not an IRI")
        self._ensure_loaded()

        def check(bindings: Dict[str, str]) -> bool:
            current_prefix = bindings.get(namespace)
            if current_prefix == prefix:
                return False
            if current_prefix is not None:
                raise PrefixConflictError(prefix, namespace, current_prefix)
            for ns, p in bindings.items():
                if p == prefix:
                    raise PrefixConflictError(prefix, namespace, ns)
            return True

        if self._store is None:
            with self._lock:
                if check(dict(self._ns_to_prefix)):
                    self._cache(namespace, prefix)
            return prefix

        with self._store.transaction() as tx:
            persisted = _read_record(tx)
            if check(persisted):
                _write_binding(tx, namespace, prefix)
                logger.info(f"Added prefix '{prefix}' for <{namespace}>")
        with self._lock:
            self._cache(namespace, prefix)
        return prefix

    def remove_binding(self, prefix: str) -> bool:
        """
        Remove a binding. Keys already using the prefix become unresolvable.

        Returns:
            True if the prefix was bound.
        """
        namespace = self.namespace_for(prefix)
        if namespace is None:
            return False
        if self._store is not None:
            with self._store.transaction() as tx:
                for record in tx.nodes_with_label(NAMESPACE_RECORD_LABEL):
                    tx.remove_property(record.id, namespace)
        with self._lock:
            self._ns_to_prefix.pop(namespace, None)
            self._prefix_to_ns.pop(prefix, None)
        logger.warning(f"Removed prefix '{prefix}' for <{namespace}>")
        return True

    def shorten(self, uri: str) -> str:
        """
        Turn an IRI into ``prefix__localName``, allocating a prefix if needed.
        """
        namespace, local = URIUtils.split_uri(uri)
        return f"{self.ensure_binding(namespace)}{PREFIX_SEPARATOR}{local}"

    def try_shorten(self, uri: str) -> Optional[str]:
        """Like ``shorten`` but return None instead of allocating a prefix."""
        namespace, local = URIUtils.split_uri(uri)
        prefix = self.prefix_for(namespace)
        if prefix is None:
            return None
        return f"{prefix}{PREFIX_SEPARATOR}{local}"

    def expand(self, key: str) -> str:
        """
        Turn ``prefix__localName`` back into the full IRI.

        Raises:
            UnknownPrefixError: If the prefix has no binding, even after a
                re-read of the persisted record.
            ValueError: If ``key`` is not a shortened key.
        """
        prefix, local = URIUtils.split_shortened_key(key)
        namespace = self.namespace_for(prefix)
        if namespace is None:
            raise UnknownPrefixError(prefix)
        return f"{namespace}{local}"

    def detached(self) -> "PrefixRegistry":
        """Return a transient copy seeded with the current bindings."""
        return PrefixRegistry(store=None, initial=self.bindings())
