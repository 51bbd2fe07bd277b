"""
In-memory graph store.

A process-local property graph with uniqueness constraints and
serializable transactions (one writer at a time, guarded by a re-entrant
lock). Each transaction applies writes directly and keeps an undo log so
that ``rollback`` restores the previous state. The whole store can be
saved to and loaded from a JSON snapshot, which is how the CLI keeps a
graph between invocations.
"""

import copy
import datetime
import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple, Union

from ..constants import GRAPH_URI_PROPERTY, RESOURCE_LABEL, URI_PROPERTY
from ..exceptions import ConstraintViolationError, StoreError
from ..models.graph import GraphNode, GraphRelationship, Subgraph
from .base import GraphTransaction, TransactionalStore

logger = logging.getLogger(__name__)

ConstraintKey = Tuple[str, Tuple[str, ...]]


@dataclass
class _NodeRecord:
    labels: Set[str] = field(default_factory=set)
    properties: Dict[str, Any] = field(default_factory=dict)


@dataclass
class _RelRecord:
    type: str
    start: int
    end: int
    properties: Dict[str, Any] = field(default_factory=dict)


class InMemoryGraphStore(TransactionalStore):
    """
    Property graph kept in Python dictionaries.

    Attributes:
        name: Label used in log messages.
    """

    def __init__(self, name: str = "memory"):
        self.name = name
        self._lock = threading.RLock()
        self._nodes: Dict[int, _NodeRecord] = {}
        self._rels: Dict[int, _RelRecord] = {}
        self._outgoing: Dict[int, Set[int]] = {}
        self._incoming: Dict[int, Set[int]] = {}
        # (label, keys) -> {key values -> node id}
        self._constraints: Dict[ConstraintKey, Dict[Tuple, int]] = {}
        self._next_node_id = 0
        self._next_rel_id = 0

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------

    def has_unique_constraint(self, label: str, keys: Tuple[str, ...]) -> bool:
        with self._lock:
            return (label, tuple(keys)) in self._constraints

    def create_unique_constraint(self, label: str, keys: Tuple[str, ...]) -> None:
        """
        Create a uniqueness constraint, indexing existing nodes.

        Raises:
            ConstraintViolationError: If existing nodes already collide.
        """
        constraint = (label, tuple(keys))
        with self._lock:
            if constraint in self._constraints:
                return
            index: Dict[Tuple, int] = {}
            for node_id, record in self._nodes.items():
                values = self._key_values(record, constraint)
                if values is None:
                    continue
                if values in index:
                    raise ConstraintViolationError(label, constraint[1], values)
                index[values] = node_id
            self._constraints[constraint] = index
            logger.info(f"[{self.name}] Created uniqueness constraint on :{label}({', '.join(keys)})")

    def drop_unique_constraint(self, label: str, keys: Tuple[str, ...]) -> bool:
        with self._lock:
            return self._constraints.pop((label, tuple(keys)), None) is not None

    @staticmethod
    def _key_values(record: _NodeRecord, constraint: ConstraintKey) -> Optional[Tuple]:
        label, keys = constraint
        if label not in record.labels:
            return None
        if keys[0] not in record.properties:
            return None
        return tuple(_hashable(record.properties.get(key)) for key in keys)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def begin(self) -> "InMemoryTransaction":
        return InMemoryTransaction(self)

    # ------------------------------------------------------------------
    # Read helpers (each runs in its own short transaction)
    # ------------------------------------------------------------------

    def get_node(self, node_id: int) -> Optional[GraphNode]:
        with self.transaction() as tx:
            return tx.get_node(node_id)

    def find_resource(self, uri: str, graph_uri: Optional[str] = None) -> Optional[GraphNode]:
        with self.transaction() as tx:
            node_id = tx.find_resource(uri, graph_uri)
            return tx.get_node(node_id) if node_id is not None else None

    def nodes_with_label(self, label: str) -> List[GraphNode]:
        with self.transaction() as tx:
            return tx.nodes_with_label(label)

    def find_nodes(self, label: str, key: str, value: Any) -> List[GraphNode]:
        with self.transaction() as tx:
            return tx.find_nodes(label, key, value)

    def relationships_of(self, node_id: int, direction: str = "both") -> List[GraphRelationship]:
        with self.transaction() as tx:
            return tx.relationships_of(node_id, direction)

    def subgraph(self, label: Optional[str] = None) -> Subgraph:
        """
        Return nodes and the relationships among them.

        Args:
            label: When given, only nodes with this label are included and
                only relationships whose both ends are included.
        """
        with self._lock:
            nodes = [
                self._snapshot(node_id)
                for node_id, record in self._nodes.items()
                if label is None or label in record.labels
            ]
            included = {node.id for node in nodes}
            rels = [
                self._rel_snapshot(rel_id)
                for rel_id, rel in self._rels.items()
                if rel.start in included and rel.end in included
            ]
        return Subgraph(nodes=nodes, relationships=rels)

    def node_count(self, label: Optional[str] = None) -> int:
        with self._lock:
            if label is None:
                return len(self._nodes)
            return sum(1 for record in self._nodes.values() if label in record.labels)

    def relationship_count(self, rel_type: Optional[str] = None) -> int:
        with self._lock:
            if rel_type is None:
                return len(self._rels)
            return sum(1 for rel in self._rels.values() if rel.type == rel_type)

    def _snapshot(self, node_id: int) -> GraphNode:
        record = self._nodes[node_id]
        return GraphNode(
            id=node_id,
            labels=frozenset(record.labels),
            properties=copy.deepcopy(record.properties),
        )

    def _rel_snapshot(self, rel_id: int) -> GraphRelationship:
        rel = self._rels[rel_id]
        return GraphRelationship(
            id=rel_id,
            type=rel.type,
            start_node=rel.start,
            end_node=rel.end,
            properties=copy.deepcopy(rel.properties),
        )

    # ------------------------------------------------------------------
    # JSON snapshots
    # ------------------------------------------------------------------

    def save(self, path: Union[str, Path]) -> None:
        """Write the whole store (constraints included) to a JSON file."""
        with self._lock:
            data = {
                "constraints": [
                    {"label": label, "keys": list(keys)}
                    for label, keys in self._constraints
                ],
                "nodes": [
                    {
                        "id": node_id,
                        "labels": sorted(record.labels),
                        "properties": {k: _encode_value(v) for k, v in record.properties.items()},
                    }
                    for node_id, record in self._nodes.items()
                ],
                "relationships": [
                    {
                        "id": rel_id,
                        "type": rel.type,
                        "start": rel.start,
                        "end": rel.end,
                        "properties": {k: _encode_value(v) for k, v in rel.properties.items()},
                    }
                    for rel_id, rel in self._rels.items()
                ],
            }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        logger.info(f"[{self.name}] Saved {len(data['nodes'])} nodes and "
                    f"{len(data['relationships'])} relationships to {path}")

    @classmethod
    def load(cls, path: Union[str, Path], name: Optional[str] = None) -> "InMemoryGraphStore":
        """
        Read a store previously written with ``save``.

        Raises:
            StoreError: If the file is not a valid snapshot.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Cannot read graph snapshot {path}: {e}")

        store = cls(name=name or Path(path).stem)
        try:
            for node in data.get("nodes", []):
                node_id = int(node["id"])
                store._nodes[node_id] = _NodeRecord(
                    labels=set(node.get("labels", [])),
                    properties={k: _decode_value(v) for k, v in node.get("properties", {}).items()},
                )
                store._outgoing[node_id] = set()
                store._incoming[node_id] = set()
                store._next_node_id = max(store._next_node_id, node_id + 1)
            for rel in data.get("relationships", []):
                rel_id = int(rel["id"])
                record = _RelRecord(
                    type=rel["type"],
                    start=int(rel["start"]),
                    end=int(rel["end"]),
                    properties={k: _decode_value(v) for k, v in rel.get("properties", {}).items()},
                )
                store._rels[rel_id] = record
                store._outgoing[record.start].add(rel_id)
                store._incoming[record.end].add(rel_id)
                store._next_rel_id = max(store._next_rel_id, rel_id + 1)
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Malformed graph snapshot {path}: {e}")
        for constraint in data.get("constraints", []):
            store.create_unique_constraint(constraint["label"], tuple(constraint["keys"]))
        logger.info(f"[{store.name}] Loaded {len(store._nodes)} nodes and "
                    f"{len(store._rels)} relationships from {path}")
        return store


class InMemoryTransaction(GraphTransaction):
    """
    Transaction over an InMemoryGraphStore.

    Holds the store lock from creation until commit or rollback.
    """

    def __init__(self, store: InMemoryGraphStore):
        self._store = store
        self._undo: List[Callable[[], None]] = []
        self._open = True
        store._lock.acquire()

    def _check_open(self) -> None:
        if not self._open:
            raise StoreError("Transaction is already closed")

    def _record(self, node_id: int) -> _NodeRecord:
        record = self._store._nodes.get(node_id)
        if record is None:
            raise StoreError(f"Node {node_id} does not exist")
        return record

    # Reads

    def get_node(self, node_id: int) -> Optional[GraphNode]:
        self._check_open()
        if node_id not in self._store._nodes:
            return None
        return self._store._snapshot(node_id)

    def find_resource(self, uri: str, graph_uri: Optional[str] = None) -> Optional[int]:
        self._check_open()
        store = self._store
        quad_index = store._constraints.get((RESOURCE_LABEL, (URI_PROPERTY, GRAPH_URI_PROPERTY)))
        if quad_index is not None:
            # default graph resources are indexed as (uri, None)
            return quad_index.get((uri, graph_uri))
        uri_index = store._constraints.get((RESOURCE_LABEL, (URI_PROPERTY,)))
        if uri_index is not None:
            node_id = uri_index.get((uri,))
            if node_id is not None:
                if store._nodes[node_id].properties.get(GRAPH_URI_PROPERTY) == graph_uri:
                    return node_id
                return None
            if graph_uri is None:
                return None
        for node_id, record in store._nodes.items():
            if (RESOURCE_LABEL in record.labels
                    and record.properties.get(URI_PROPERTY) == uri
                    and record.properties.get(GRAPH_URI_PROPERTY) == graph_uri):
                return node_id
        return None

    def nodes_with_label(self, label: str) -> List[GraphNode]:
        self._check_open()
        return [
            self._store._snapshot(node_id)
            for node_id, record in self._store._nodes.items()
            if label in record.labels
        ]

    def find_nodes(self, label: str, key: str, value: Any) -> List[GraphNode]:
        self._check_open()
        return [
            self._store._snapshot(node_id)
            for node_id, record in self._store._nodes.items()
            if label in record.labels and _matches(record.properties.get(key), value)
        ]

    def relationships_of(self, node_id: int, direction: str = "both") -> List[GraphRelationship]:
        self._check_open()
        if direction not in ("out", "in", "both"):
            raise ValueError(f"Invalid direction '{direction}'")
        rel_ids: List[int] = []
        if direction in ("out", "both"):
            rel_ids.extend(sorted(self._store._outgoing.get(node_id, ())))
        if direction in ("in", "both"):
            rel_ids.extend(
                rel_id for rel_id in sorted(self._store._incoming.get(node_id, ()))
                if rel_id not in rel_ids
            )
        return [self._store._rel_snapshot(rel_id) for rel_id in rel_ids]

    def find_relationship(self, start: int, rel_type: str, end: int) -> Optional[int]:
        self._check_open()
        for rel_id in self._store._outgoing.get(start, ()):
            rel = self._store._rels[rel_id]
            if rel.type == rel_type and rel.end == end:
                return rel_id
        return None

    # Index maintenance

    def _unindex(self, node_id: int) -> None:
        record = self._store._nodes[node_id]
        for constraint, index in self._store._constraints.items():
            values = InMemoryGraphStore._key_values(record, constraint)
            if values is not None and index.get(values) == node_id:
                del index[values]

    def _index(self, node_id: int) -> None:
        record = self._store._nodes[node_id]
        for constraint, index in self._store._constraints.items():
            values = InMemoryGraphStore._key_values(record, constraint)
            if values is None:
                continue
            owner = index.get(values)
            if owner is not None and owner != node_id:
                raise ConstraintViolationError(constraint[0], constraint[1], values)
        for constraint, index in self._store._constraints.items():
            values = InMemoryGraphStore._key_values(record, constraint)
            if values is not None:
                index[values] = node_id

    def _mutate_node(self, node_id: int, change: Callable[[_NodeRecord], None]) -> None:
        """Apply ``change`` to a node keeping constraint indexes consistent."""
        record = self._record(node_id)
        before = _NodeRecord(set(record.labels), dict(record.properties))
        self._unindex(node_id)
        change(record)
        try:
            self._index(node_id)
        except ConstraintViolationError:
            record.labels, record.properties = before.labels, before.properties
            self._index(node_id)
            raise

        def undo() -> None:
            self._unindex(node_id)
            record.labels, record.properties = before.labels, before.properties
            self._index(node_id)
        self._undo.append(undo)

    # Writes

    def create_node(self, labels: Iterable[str], properties: Optional[dict] = None) -> int:
        self._check_open()
        store = self._store
        node_id = store._next_node_id
        store._next_node_id += 1
        store._nodes[node_id] = _NodeRecord(set(labels), dict(properties or {}))
        store._outgoing[node_id] = set()
        store._incoming[node_id] = set()
        try:
            self._index(node_id)
        except ConstraintViolationError:
            self._drop_node(node_id)
            raise
        self._undo.append(lambda: self._drop_node(node_id))
        return node_id

    def _drop_node(self, node_id: int) -> None:
        store = self._store
        if node_id not in store._nodes:
            return
        self._unindex(node_id)
        del store._nodes[node_id]
        store._outgoing.pop(node_id, None)
        store._incoming.pop(node_id, None)

    def merge_resource(self, uri: str, graph_uri: Optional[str] = None) -> Tuple[int, bool]:
        node_id = self.find_resource(uri, graph_uri)
        if node_id is not None:
            return node_id, False
        properties: Dict[str, Any] = {URI_PROPERTY: uri}
        if graph_uri is not None:
            properties[GRAPH_URI_PROPERTY] = graph_uri
        return self.create_node([RESOURCE_LABEL], properties), True

    def add_labels(self, node_id: int, labels: Iterable[str]) -> Set[str]:
        self._check_open()
        added = set(labels) - self._record(node_id).labels
        if added:
            self._mutate_node(node_id, lambda record: record.labels.update(added))
        return added

    def remove_label(self, node_id: int, label: str) -> bool:
        self._check_open()
        if label not in self._record(node_id).labels:
            return False
        self._mutate_node(node_id, lambda record: record.labels.discard(label))
        return True

    def set_property(self, node_id: int, key: str, value: Any) -> None:
        self._check_open()
        if isinstance(value, list):
            value = list(value)

        def change(record: _NodeRecord) -> None:
            record.properties[key] = value
        self._mutate_node(node_id, change)

    def remove_property(self, node_id: int, key: str) -> bool:
        self._check_open()
        if key not in self._record(node_id).properties:
            return False
        self._mutate_node(node_id, lambda record: record.properties.pop(key, None))
        return True

    def merge_relationship(self, start: int, rel_type: str, end: int) -> Tuple[int, bool]:
        self._check_open()
        existing = self.find_relationship(start, rel_type, end)
        if existing is not None:
            return existing, False
        store = self._store
        self._record(start)
        self._record(end)
        rel_id = store._next_rel_id
        store._next_rel_id += 1
        store._rels[rel_id] = _RelRecord(rel_type, start, end)
        store._outgoing[start].add(rel_id)
        store._incoming[end].add(rel_id)
        self._undo.append(lambda: self._drop_relationship(rel_id))
        return rel_id, True

    def _drop_relationship(self, rel_id: int) -> Optional[_RelRecord]:
        store = self._store
        rel = store._rels.pop(rel_id, None)
        if rel is None:
            return None
        store._outgoing.get(rel.start, set()).discard(rel_id)
        store._incoming.get(rel.end, set()).discard(rel_id)
        return rel

    def delete_relationship(self, rel_id: int) -> bool:
        self._check_open()
        rel = self._drop_relationship(rel_id)
        if rel is None:
            return False

        def undo() -> None:
            store = self._store
            store._rels[rel_id] = rel
            store._outgoing[rel.start].add(rel_id)
            store._incoming[rel.end].add(rel_id)
        self._undo.append(undo)
        return True

    def delete_node(self, node_id: int) -> bool:
        self._check_open()
        store = self._store
        if node_id not in store._nodes:
            return False
        if store._outgoing.get(node_id) or store._incoming.get(node_id):
            raise StoreError(f"Cannot delete node {node_id}: it still has relationships")
        record = store._nodes[node_id]
        self._drop_node(node_id)

        def undo() -> None:
            store._nodes[node_id] = record
            store._outgoing[node_id] = set()
            store._incoming[node_id] = set()
            self._index(node_id)
        self._undo.append(undo)
        return True

    # Lifecycle

    def commit(self) -> None:
        self._check_open()
        self._undo.clear()
        self._close()

    def rollback(self) -> None:
        if not self._open:
            return
        undone = len(self._undo)
        while self._undo:
            self._undo.pop()()
        if undone:
            logger.debug(f"[{self._store.name}] Rolled back {undone} operations")
        self._close()

    def _close(self) -> None:
        self._open = False
        self._store._lock.release()


def _matches(stored: Any, value: Any) -> bool:
    if isinstance(stored, list):
        return any(_matches(item, value) for item in stored)
    # 1 and True compare equal but are different property values
    if isinstance(stored, bool) != isinstance(value, bool):
        return False
    return stored is not None and stored == value


def _hashable(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(value)
    return value


def _encode_value(value: Any) -> Any:
    if isinstance(value, list):
        return [_encode_value(v) for v in value]
    if isinstance(value, datetime.datetime):
        return {"$datetime": value.isoformat()}
    if isinstance(value, datetime.date):
        return {"$date": value.isoformat()}
    return value


def _decode_value(value: Any) -> Any:
    if isinstance(value, list):
        return [_decode_value(v) for v in value]
    if isinstance(value, dict):
        if "$datetime" in value:
            return datetime.datetime.fromisoformat(value["$datetime"])
        if "$date" in value:
            return datetime.date.fromisoformat(value["$date"])
    return value
