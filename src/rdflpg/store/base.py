"""
Graph store protocol and transaction interface.

The engines never talk to a database directly: they go through a
``GraphStore`` that offers uniqueness constraints, transactions and the
handful of node/relationship operations needed to merge resources,
attach labels and properties, and create or remove relationships.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import (
    Any, Iterable, Iterator, List, Optional, Protocol, Set, Tuple, runtime_checkable,
)

from ..models.graph import GraphNode, GraphRelationship, Subgraph


class GraphTransaction(ABC):
    """
    A unit of work against a graph store.

    Writes become visible to other transactions on ``commit``; ``rollback``
    discards every write made through this transaction.
    """

    # Reads

    @abstractmethod
    def get_node(self, node_id: int) -> Optional[GraphNode]:
        """Return a snapshot of a node, or None if it does not exist."""

    @abstractmethod
    def find_resource(self, uri: str, graph_uri: Optional[str] = None) -> Optional[int]:
        """Return the id of the resource keyed by (uri, graph_uri)."""

    @abstractmethod
    def nodes_with_label(self, label: str) -> List[GraphNode]:
        """Return snapshots of all nodes carrying ``label``."""

    @abstractmethod
    def find_nodes(self, label: str, key: str, value: Any) -> List[GraphNode]:
        """
        Return snapshots of the nodes carrying ``label`` whose ``key``
        property equals ``value`` (or, for a list property, contains it).
        """

    @abstractmethod
    def relationships_of(self, node_id: int, direction: str = "both") -> List[GraphRelationship]:
        """
        Return relationships attached to a node.

        Args:
            node_id: The node.
            direction: "out", "in" or "both".
        """

    @abstractmethod
    def find_relationship(self, start: int, rel_type: str, end: int) -> Optional[int]:
        """Return the id of a (start)-[rel_type]->(end) relationship, if any."""

    # Writes

    @abstractmethod
    def create_node(self, labels: Iterable[str], properties: Optional[dict] = None) -> int:
        """Create a node and return its id."""

    @abstractmethod
    def merge_resource(self, uri: str, graph_uri: Optional[str] = None) -> Tuple[int, bool]:
        """
        Find the resource keyed by (uri, graph_uri), creating it if absent.

        Returns:
            Tuple of (node id, created flag).
        """

    @abstractmethod
    def add_labels(self, node_id: int, labels: Iterable[str]) -> Set[str]:
        """Add labels to a node; return the labels that were not present."""

    @abstractmethod
    def remove_label(self, node_id: int, label: str) -> bool:
        """Remove a label; return True if it was present."""

    @abstractmethod
    def set_property(self, node_id: int, key: str, value: Any) -> None:
        """Set (overwrite) a node property."""

    @abstractmethod
    def remove_property(self, node_id: int, key: str) -> bool:
        """Remove a node property; return True if it was present."""

    @abstractmethod
    def merge_relationship(self, start: int, rel_type: str, end: int) -> Tuple[int, bool]:
        """Find or create (start)-[rel_type]->(end); return (id, created)."""

    @abstractmethod
    def delete_relationship(self, rel_id: int) -> bool:
        """Delete a relationship; return True if it existed."""

    @abstractmethod
    def delete_node(self, node_id: int) -> bool:
        """Delete a node that has no relationships; return True if deleted."""

    # Lifecycle

    @abstractmethod
    def commit(self) -> None:
        """Make the writes of this transaction durable."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard the writes of this transaction."""


@runtime_checkable
class GraphStore(Protocol):
    """
    Protocol for property graph backends.

    Example:
        >>> store: GraphStore = InMemoryGraphStore()
        >>> store.create_unique_constraint("Resource", ("uri",))
        >>> with store.transaction() as tx:
        ...     node_id, created = tx.merge_resource("http://example.org/a")
    """

    def begin(self) -> GraphTransaction:
        """Open a transaction."""
        ...

    def transaction(self):
        """Context manager committing on success and rolling back on error."""
        ...

    def has_unique_constraint(self, label: str, keys: Tuple[str, ...]) -> bool:
        """Return True if a uniqueness constraint covers exactly ``keys``."""
        ...

    def create_unique_constraint(self, label: str, keys: Tuple[str, ...]) -> None:
        """Create a uniqueness constraint on (label, keys)."""
        ...

    def subgraph(self, label: Optional[str] = None) -> Subgraph:
        """Return all nodes (optionally only those with ``label``) and their relationships."""
        ...


class TransactionalStore(ABC):
    """
    Base class providing the ``transaction`` context manager on top of
    ``begin``.
    """

    @abstractmethod
    def begin(self) -> GraphTransaction:
        """Open a transaction."""

    @contextmanager
    def transaction(self) -> Iterator[GraphTransaction]:
        """
        Run a block in a transaction.

        Commits when the block completes and rolls back if it raises.

        Yields:
            The open transaction.
        """
        tx = self.begin()
        try:
            yield tx
        except BaseException:
            tx.rollback()
            raise
        tx.commit()
