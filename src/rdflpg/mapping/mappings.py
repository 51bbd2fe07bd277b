"""
Schema mappings between vocabulary IRIs and graph element names.

A mapping says that the graph element ``Person`` (a label, relationship
type or property key) stands for the vocabulary element
``http://schema.org/Person``. Mappings are used by the MAP naming policy
on import and by the projection of graphs that were not imported from
RDF. They are persisted as ``_MapNs`` (namespace, prefix) and ``_MapDef``
(vocabulary IRI, graph element) nodes.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..constants import MAPPING_DEFINITION_LABEL, MAPPING_NAMESPACE_LABEL
from ..store.base import GraphStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ElementMapping:
    """One vocabulary element <-> graph element mapping."""
    vocabulary_uri: str
    graph_element: str
    namespace: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "schemaNs": self.namespace,
            "schemaElement": self.vocabulary_uri,
            "elemName": self.graph_element,
        }


class MappingRegistry:
    """
    Registered schemas and element mappings.

    A registry without a store keeps everything in memory.
    """

    def __init__(self, store: Optional[GraphStore] = None):
        self._store = store
        self._lock = threading.Lock()
        self._schemas: Dict[str, str] = {}
        self._by_graph_name: Dict[str, ElementMapping] = {}
        self._loaded = store is None

    def refresh(self) -> None:
        """Re-read schemas and mappings from the store."""
        if self._store is None:
            return
        with self._store.transaction() as tx:
            schema_nodes = tx.nodes_with_label(MAPPING_NAMESPACE_LABEL)
            mapping_nodes = tx.nodes_with_label(MAPPING_DEFINITION_LABEL)
        with self._lock:
            self._schemas = {
                node.properties["namespace"]: node.properties.get("prefix", "")
                for node in schema_nodes if "namespace" in node.properties
            }
            self._by_graph_name = {}
            for node in mapping_nodes:
                props = node.properties
                if "graphElement" not in props or "vocabularyUri" not in props:
                    continue
                self._by_graph_name[props["graphElement"]] = ElementMapping(
                    vocabulary_uri=props["vocabularyUri"],
                    graph_element=props["graphElement"],
                    namespace=props.get("namespace", ""),
                )
            self._loaded = True

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.refresh()

    def add_schema(self, namespace: str, prefix: str) -> None:
        """
        Register a schema namespace that mappings may refer to.

        Raises:
            ValueError: If the namespace is registered with another prefix.
        """
        self._ensure_loaded()
        with self._lock:
            existing = self._schemas.get(namespace)
        if existing is not None:
            if existing != prefix:
                raise ValueError(
                    f"Schema <{namespace}> is already registered with prefix '{existing}'"
                )
            return
        if self._store is not None:
            with self._store.transaction() as tx:
                tx.create_node([MAPPING_NAMESPACE_LABEL], {"namespace": namespace, "prefix": prefix})
        with self._lock:
            self._schemas[namespace] = prefix
        logger.info(f"Registered schema <{namespace}> as '{prefix}'")

    def schemas(self) -> Dict[str, str]:
        """Return registered schemas as namespace -> prefix."""
        self._ensure_loaded()
        with self._lock:
            return dict(self._schemas)

    def add_mapping(self, namespace: str, vocabulary_element: str, graph_element: str) -> ElementMapping:
        """
        Map ``graph_element`` to ``namespace + vocabulary_element``.

        An existing mapping for the same graph element is replaced.

        Raises:
            ValueError: If the namespace was not registered with add_schema.
        """
        self._ensure_loaded()
        with self._lock:
            if namespace not in self._schemas:
                raise ValueError(
                    f"No schema registered for <{namespace}>; call add_schema first"
                )
        mapping = ElementMapping(
            vocabulary_uri=f"{namespace}{vocabulary_element}",
            graph_element=graph_element,
            namespace=namespace,
        )
        if self._store is not None:
            with self._store.transaction() as tx:
                self._delete_persisted(tx, graph_element)
                tx.create_node([MAPPING_DEFINITION_LABEL], {
                    "vocabularyUri": mapping.vocabulary_uri,
                    "graphElement": graph_element,
                    "namespace": namespace,
                })
        with self._lock:
            self._by_graph_name[graph_element] = mapping
        logger.info(f"Mapped '{graph_element}' to <{mapping.vocabulary_uri}>")
        return mapping

    @staticmethod
    def _delete_persisted(tx, graph_element: str) -> int:
        removed = 0
        for node in tx.nodes_with_label(MAPPING_DEFINITION_LABEL):
            if node.properties.get("graphElement") == graph_element:
                tx.delete_node(node.id)
                removed += 1
        return removed

    def drop_mapping(self, graph_element: str) -> bool:
        """Remove the mapping of a graph element; return True if one existed."""
        self._ensure_loaded()
        if self._store is not None:
            with self._store.transaction() as tx:
                self._delete_persisted(tx, graph_element)
        with self._lock:
            return self._by_graph_name.pop(graph_element, None) is not None

    def mappings(self) -> List[ElementMapping]:
        self._ensure_loaded()
        with self._lock:
            return sorted(self._by_graph_name.values(), key=lambda m: m.graph_element)

    def vocabulary_uri_for(self, graph_element: str) -> Optional[str]:
        """Return the vocabulary IRI mapped to a graph element name."""
        self._ensure_loaded()
        with self._lock:
            mapping = self._by_graph_name.get(graph_element)
        return mapping.vocabulary_uri if mapping else None

    def graph_name_for(self, vocabulary_uri: str) -> Optional[str]:
        """Return the graph element name mapped to a vocabulary IRI."""
        self._ensure_loaded()
        with self._lock:
            for mapping in self._by_graph_name.values():
                if mapping.vocabulary_uri == vocabulary_uri:
                    return mapping.graph_element
        return None
