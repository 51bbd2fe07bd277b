"""
Property graph value types.

Snapshots of nodes and relationships handed out by graph stores, built by
the preview and consumed by the projection.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

from ..constants import GRAPH_URI_PROPERTY, RESOURCE_LABEL, URI_PROPERTY


@dataclass(frozen=True)
class GraphNode:
    """
    A node: identity, labels and properties.

    Attributes:
        id: Store-assigned (or preview-ephemeral) identity.
        labels: Node labels, including the resource sentinel when present.
        properties: Property map; values are native scalars or lists.
    """
    id: int
    labels: FrozenSet[str] = frozenset()
    properties: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @property
    def uri(self) -> Optional[str]:
        return self.properties.get(URI_PROPERTY)

    @property
    def graph_uri(self) -> Optional[str]:
        return self.properties.get(GRAPH_URI_PROPERTY)

    @property
    def is_resource(self) -> bool:
        return RESOURCE_LABEL in self.labels


@dataclass(frozen=True)
class GraphRelationship:
    """
    A directed, typed relationship between two nodes.

    Attributes:
        id: Relationship identity.
        type: Relationship type name.
        start_node: Id of the source node.
        end_node: Id of the target node.
        properties: Relationship properties.
    """
    id: int
    type: str
    start_node: int
    end_node: int
    properties: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)


@dataclass
class Subgraph:
    """
    A set of nodes plus relationships among (or leaving) them.

    Relationships may reference nodes missing from ``nodes``; consumers
    resolve endpoints through ``node_by_id`` and skip those they cannot.
    """
    nodes: List[GraphNode] = field(default_factory=list)
    relationships: List[GraphRelationship] = field(default_factory=list)

    def node_by_id(self, node_id: int) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def index(self) -> Dict[int, GraphNode]:
        """Return a mapping from node id to node."""
        return {node.id: node for node in self.nodes}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly structure."""
        return {
            "nodes": [
                {
                    "id": node.id,
                    "labels": sorted(node.labels),
                    "properties": {k: _jsonable(v) for k, v in node.properties.items()},
                }
                for node in self.nodes
            ],
            "relationships": [
                {
                    "id": rel.id,
                    "type": rel.type,
                    "start": rel.start_node,
                    "end": rel.end_node,
                    "properties": {k: _jsonable(v) for k, v in rel.properties.items()},
                }
                for rel in self.relationships
            ],
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value
