"""
Batches of pending graph mutations and the writers that commit them.

The ingest engine accumulates classified statements into a
``MutationBatch``; every ``commitSize`` statements a ``BatchWriter``
applies the batch in one store transaction. A batch that fails is rolled
back as a whole while batches committed before it stay.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from rdflib import BNode

from ..constants import BLANK_NODE_MARKER
from ..mapping.resource_cache import ResourceCache, ResourceKey
from ..store.base import GraphStore, GraphTransaction

logger = logging.getLogger(__name__)


class BlankNodeArena:
    """
    Per-call identities for blank nodes.

    The first time a blank node label is seen in a call it gets the next
    index of the arena; later sightings in the same call reuse it. The
    minted uri embeds a call id so two calls never share a blank node.

    Example:
        >>> arena = BlankNodeArena()
        >>> arena.key_for(BNode("b0"))
        ('_:3f2a9c1eb0', None)
    """

    def __init__(self, call_id: Optional[str] = None):
        self.call_id = call_id or uuid.uuid4().hex[:8]
        self._indices: Dict[str, int] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._indices)

    def index_for(self, bnode: BNode) -> int:
        label = str(bnode)
        with self._lock:
            index = self._indices.get(label)
            if index is None:
                index = len(self._indices)
                self._indices[label] = index
            return index

    def key_for(self, bnode: BNode, graph_uri: Optional[str] = None) -> ResourceKey:
        return f"{BLANK_NODE_MARKER}{self.call_id}b{self.index_for(bnode)}", graph_uri


@dataclass
class NodeUpdate:
    """Pending writes for one resource."""
    labels: Set[str] = field(default_factory=set)
    scalars: Dict[str, Any] = field(default_factory=dict)
    arrays: Dict[str, List[Any]] = field(default_factory=dict)


@dataclass
class MutationBatch:
    """
    Mutations collected from up to ``commitSize`` statements.

    Attributes:
        nodes: Pending writes per resource key, in first-seen order.
        relationships: Pending (source key, type, target key) edges.
        statements: Number of statements folded into this batch.
    """
    nodes: Dict[ResourceKey, NodeUpdate] = field(default_factory=dict)
    relationships: List[Tuple[ResourceKey, str, ResourceKey]] = field(default_factory=list)
    statements: int = 0

    def node(self, key: ResourceKey) -> NodeUpdate:
        update = self.nodes.get(key)
        if update is None:
            update = NodeUpdate()
            self.nodes[key] = update
        return update

    def add_label(self, key: ResourceKey, label: str) -> None:
        self.node(key).labels.add(label)

    def set_value(self, key: ResourceKey, prop: str, value: Any) -> None:
        update = self.node(key)
        update.arrays.pop(prop, None)
        update.scalars[prop] = value

    def append_value(self, key: ResourceKey, prop: str, value: Any) -> None:
        update = self.node(key)
        update.scalars.pop(prop, None)
        update.arrays.setdefault(prop, []).append(value)

    def add_relationship(self, source: ResourceKey, rel_type: str, target: ResourceKey) -> None:
        self.node(source)
        self.node(target)
        self.relationships.append((source, rel_type, target))

    def is_empty(self) -> bool:
        return self.statements == 0 and not self.nodes


@dataclass
class BatchStats:
    """Counters produced by committing one batch."""
    resources_created: int = 0
    resources_touched: int = 0
    relationships_created: int = 0


class BatchWriter(ABC):
    """Abstract base for batch commit strategies."""

    @abstractmethod
    def write(self, batch: MutationBatch) -> BatchStats:
        """
        Apply a batch atomically.

        Args:
            batch: The pending mutations.

        Returns:
            Counters for the committed batch.

        Raises:
            Exception: Any store failure; nothing of the batch is applied.
        """


class StoreBatchWriter(BatchWriter):
    """
    Commits batches to a graph store, resolving resources through an
    optional ResourceCache. Blank node resources bypass the cache.
    """

    def __init__(self, store: GraphStore, cache: Optional[ResourceCache] = None):
        self.store = store
        self.cache = cache

    def _resolve(self, tx: GraphTransaction, key: ResourceKey,
                 created_keys: List[ResourceKey]) -> Tuple[int, bool]:
        if self.cache is None or key[0].startswith(BLANK_NODE_MARKER):
            return tx.merge_resource(key[0], key[1])
        node_id, created = self.cache.resolve_or_create(tx, key)
        if created:
            created_keys.append(key)
        return node_id, created

    def write(self, batch: MutationBatch) -> BatchStats:
        stats = BatchStats()
        created_keys: List[ResourceKey] = []
        try:
            with self.store.transaction() as tx:
                ids: Dict[ResourceKey, int] = {}
                for key in batch.nodes:
                    node_id, created = self._resolve(tx, key, created_keys)
                    ids[key] = node_id
                    if created:
                        stats.resources_created += 1

                for key, update in batch.nodes.items():
                    node_id = ids[key]
                    if update.labels:
                        tx.add_labels(node_id, update.labels)
                    for prop, value in update.scalars.items():
                        tx.set_property(node_id, prop, value)
                    if update.arrays:
                        current = tx.get_node(node_id).properties
                        for prop, values in update.arrays.items():
                            tx.set_property(node_id, prop, _as_list(current.get(prop)) + values)
                    if update.labels or update.scalars or update.arrays:
                        stats.resources_touched += 1

                for source, rel_type, target in batch.relationships:
                    _, created = tx.merge_relationship(ids[source], rel_type, ids[target])
                    if created:
                        stats.relationships_created += 1
        except Exception:
            if self.cache is not None and created_keys:
                self.cache.discard(created_keys)
            raise
        logger.debug(
            f"Committed batch of {batch.statements} statements: "
            f"{stats.resources_created} resources created, "
            f"{stats.relationships_created} relationships created"
        )
        return stats


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return list(value)
    return [value]
