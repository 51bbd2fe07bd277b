"""
Projection engine: property graph back to RDF statements.

Two modes are supported:

* ``RDF`` for graphs created by the ingest engine: nodes are identified by
  their ``uri`` property, labels and keys are expanded back to IRIs
  (``prefix__local`` through the prefix registry, full IRIs as-is) and
  encoded string values (``value@lang``, ``lexical^^datatype``) become
  tagged or typed literals again.
* ``LPG`` for arbitrary property graphs: nodes become
  ``lpg://individuals#<id>`` and labels, keys and relationship types become
  ``lpg://vocabulary#<name>`` unless a schema mapping says otherwise.

Elements that cannot be projected (no ``uri``, undefined prefix) are
replaced by a ``SerializationComment`` and the projection carries on with
the remaining elements.
"""

import logging
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Set, Union

from rdflib import OWL, RDF, RDFS, BNode, Literal, URIRef

from ..constants import (
    BLANK_NODE_MARKER, DEFAULT_INDIVIDUAL_NS, DEFAULT_VOCABULARY_NS,
    GRAPH_URI_PROPERTY, MAPPING_DEFINITION_LABEL, MAPPING_NAMESPACE_LABEL,
    NAMESPACE_RECORD_LABEL, RESOURCE_LABEL, SERIALIZATION_ERROR_PREFIX, URI_PROPERTY,
)
from ..converters.type_mapper import TypeMapper
from ..converters.uri_utils import URIUtils
from ..exceptions import UnknownPrefixError
from ..mapping.mappings import MappingRegistry
from ..mapping.prefixes import PrefixRegistry
from ..models.graph import GraphNode, GraphRelationship, Subgraph
from ..models.statement import ProjectionItem, SerializationComment, Statement
from ..store.base import GraphStore

logger = logging.getLogger(__name__)

# Labels never projected as rdf:type.
_HIDDEN_LABELS = {
    RESOURCE_LABEL, NAMESPACE_RECORD_LABEL, MAPPING_NAMESPACE_LABEL, MAPPING_DEFINITION_LABEL,
}
_KEY_PROPERTIES = {URI_PROPERTY, GRAPH_URI_PROPERTY}
# Bookkeeping nodes are never part of the projected data.
_SYSTEM_LABELS = {NAMESPACE_RECORD_LABEL, MAPPING_NAMESPACE_LABEL, MAPPING_DEFINITION_LABEL}

Records = Iterable[Mapping[str, Any]]


class ProjectionMode(str, Enum):
    """How graph elements are identified in the output."""
    RDF = "rdf"
    LPG = "lpg"

    def __str__(self) -> str:
        return self.value


def collect_subgraph(records: Union[Subgraph, Records]) -> Subgraph:
    """
    Gather the nodes and relationships found in query result records.

    Record values may be nodes, relationships, subgraphs, lists/tuples of
    those, or path-like objects exposing ``nodes`` and ``relationships``.
    Scalar columns are ignored. Elements are de-duplicated by id.

    Args:
        records: A Subgraph, or an iterable of record mappings.

    Returns:
        The combined subgraph.
    """
    if isinstance(records, Subgraph):
        return records
    nodes: Dict[int, GraphNode] = {}
    rels: Dict[int, GraphRelationship] = {}

    def visit(value: Any) -> None:
        if isinstance(value, GraphNode):
            nodes.setdefault(value.id, value)
        elif isinstance(value, GraphRelationship):
            rels.setdefault(value.id, value)
        elif isinstance(value, (list, tuple, set, frozenset)):
            for item in value:
                visit(item)
        elif hasattr(value, "nodes") and hasattr(value, "relationships"):
            visit(list(value.nodes))
            visit(list(value.relationships))

    for record in records:
        for value in record.values():
            visit(value)
    return Subgraph(nodes=list(nodes.values()), relationships=list(rels.values()))


def _error(message: str) -> SerializationComment:
    logger.warning(f"{SERIALIZATION_ERROR_PREFIX}{message}")
    return SerializationComment(f"{SERIALIZATION_ERROR_PREFIX}{message}")


class ProjectionEngine:
    """
    Turns subgraphs and query records into RDF statements.

    Example:
        >>> engine = ProjectionEngine(prefixes)
        >>> for item in engine.project(store.subgraph(label="Resource")):
        ...     print(item)
    """

    def __init__(
        self,
        prefixes: PrefixRegistry,
        mappings: Optional[MappingRegistry] = None,
        mode: ProjectionMode = ProjectionMode.RDF,
        mapped_only: bool = False,
        store: Optional[GraphStore] = None,
    ):
        """
        Args:
            prefixes: Registry used to expand shortened keys.
            mappings: Schema mappings applied to labels, keys and types.
            mode: RDF for ingested graphs, LPG for arbitrary graphs.
            mapped_only: Suppress labels, keys and types with no mapping.
            store: Store used by describe and to fetch missing endpoints.
        """
        self.prefixes = prefixes
        self.mappings = mappings
        self.mode = ProjectionMode(mode)
        self.mapped_only = mapped_only
        self.store = store

    # ------------------------------------------------------------------
    # Naming
    # ------------------------------------------------------------------

    def vocabulary_uri(self, name: str) -> Optional[str]:
        """
        Resolve a label, key or relationship type to a vocabulary IRI.

        Returns:
            The IRI, or None when ``mapped_only`` suppresses the element.

        Raises:
            UnknownPrefixError: For a shortened key with an undefined prefix.
        """
        if self.mappings is not None:
            mapped = self.mappings.vocabulary_uri_for(name)
            if mapped is not None:
                return mapped
        if self.mapped_only:
            return None
        if self.mode is ProjectionMode.RDF:
            if URIUtils.is_shortened_key(name):
                return self.prefixes.expand(name)
            if URIUtils.is_absolute_iri(name):
                return name
        return f"{DEFAULT_VOCABULARY_NS}{name}"

    def node_term(self, node: GraphNode) -> Union[URIRef, BNode]:
        """
        Return the RDF term identifying a node.

        Raises:
            KeyError: In RDF mode, when the node has no ``uri`` property.
        """
        if self.mode is ProjectionMode.LPG:
            return URIRef(f"{DEFAULT_INDIVIDUAL_NS}{node.id}")
        uri = node.properties.get(URI_PROPERTY)
        if uri is None:
            raise KeyError(URI_PROPERTY)
        uri = str(uri)
        if URIUtils.is_blank_node_uri(uri):
            return BNode(uri[len(BLANK_NODE_MARKER):])
        return URIRef(uri)

    def _graph_of(self, node: GraphNode) -> Optional[URIRef]:
        graph_uri = node.properties.get(GRAPH_URI_PROPERTY)
        if self.mode is ProjectionMode.RDF and graph_uri is not None:
            return URIRef(str(graph_uri))
        return None

    def _literal(self, value: Any) -> Literal:
        decode = self.mode is ProjectionMode.RDF
        return TypeMapper.to_literal(
            value,
            expand_datatype=self.prefixes.expand,
            decode_language=decode,
            decode_datatype=decode,
        )

    # ------------------------------------------------------------------
    # Elements
    # ------------------------------------------------------------------

    def project_node(self, node: GraphNode) -> Iterator[ProjectionItem]:
        """Yield the statements (and diagnostics) for one node."""
        if node.labels & _SYSTEM_LABELS:
            return
        try:
            subject = self.node_term(node)
        except KeyError:
            yield _error(f"No such property, '{URI_PROPERTY}'. (node {node.id})")
            return
        graph = self._graph_of(node)

        for label in sorted(node.labels):
            if label in _HIDDEN_LABELS:
                continue
            try:
                type_uri = self.vocabulary_uri(label)
            except UnknownPrefixError as e:
                yield _error(str(e))
                continue
            if type_uri is not None:
                yield Statement(subject, RDF.type, URIRef(type_uri), graph)

        for key, value in node.properties.items():
            if self.mode is ProjectionMode.RDF and key in _KEY_PROPERTIES:
                continue
            try:
                predicate_uri = self.vocabulary_uri(key)
            except UnknownPrefixError as e:
                yield _error(str(e))
                continue
            if predicate_uri is None:
                continue
            predicate = URIRef(predicate_uri)
            for item in (value if isinstance(value, list) else [value]):
                try:
                    literal = self._literal(item)
                except UnknownPrefixError as e:
                    yield _error(str(e))
                    continue
                yield Statement(subject, predicate, literal, graph)

    def project_relationship(
        self,
        rel: GraphRelationship,
        nodes: Mapping[int, GraphNode]
    ) -> Iterator[ProjectionItem]:
        """Yield the statement for one relationship."""
        start = nodes.get(rel.start_node) or self._fetch(rel.start_node)
        end = nodes.get(rel.end_node) or self._fetch(rel.end_node)
        if start is None or end is None:
            logger.debug(f"Skipping relationship {rel.id}: endpoint not available")
            return
        try:
            subject = self.node_term(start)
            obj = self.node_term(end)
        except KeyError:
            yield _error(f"No such property, '{URI_PROPERTY}'. (relationship {rel.id})")
            return
        try:
            predicate_uri = self.vocabulary_uri(rel.type)
        except UnknownPrefixError as e:
            yield _error(str(e))
            return
        if predicate_uri is not None:
            yield Statement(subject, URIRef(predicate_uri), obj, self._graph_of(start))

    def _fetch(self, node_id: int) -> Optional[GraphNode]:
        if self.store is None:
            return None
        with self.store.transaction() as tx:
            return tx.get_node(node_id)

    def project(self, source: Union[Subgraph, Records]) -> Iterator[ProjectionItem]:
        """
        Project a subgraph or query records.

        Args:
            source: A Subgraph or an iterable of record mappings.

        Yields:
            Statements, interleaved with diagnostics for failed elements.
        """
        subgraph = collect_subgraph(source)
        index = subgraph.index()
        for node in subgraph.nodes:
            yield from self.project_node(node)
        for rel in subgraph.relationships:
            yield from self.project_relationship(rel, index)

    # ------------------------------------------------------------------
    # Store lookups
    # ------------------------------------------------------------------

    def _require_store(self) -> GraphStore:
        if self.store is None:
            raise ValueError("describe requires a graph store")
        return self.store

    def _neighbourhood(self, node_id: int) -> Subgraph:
        with self._require_store().transaction() as tx:
            node = tx.get_node(node_id)
            if node is None:
                return Subgraph()
            rels = tx.relationships_of(node_id)
            nodes = {node.id: node}
            for rel in rels:
                for endpoint in (rel.start_node, rel.end_node):
                    if endpoint not in nodes:
                        nodes[endpoint] = tx.get_node(endpoint)
        return Subgraph(nodes=[n for n in nodes.values() if n is not None], relationships=rels)

    def describe_node(self, node_id: int, exclude_context: bool = False) -> Iterator[ProjectionItem]:
        """
        Describe a node by id: its labels and properties plus every
        relationship entering or leaving it. With ``exclude_context`` only
        the node itself is described.
        """
        if exclude_context:
            with self._require_store().transaction() as tx:
                node = tx.get_node(node_id)
            if node is not None:
                yield from self.project_node(node)
            return
        neighbourhood = self._neighbourhood(node_id)
        node = neighbourhood.node_by_id(node_id)
        if node is None:
            return
        yield from self.project_node(node)
        index = neighbourhood.index()
        for rel in neighbourhood.relationships:
            yield from self.project_relationship(rel, index)

    def describe(
        self,
        uri: str,
        graph_uri: Optional[str] = None,
        exclude_context: bool = False
    ) -> Iterator[ProjectionItem]:
        """
        Describe the resource with the given uri (in the given graph, or
        the default graph when ``graph_uri`` is None).
        """
        with self._require_store().transaction() as tx:
            node_id = tx.find_resource(uri, graph_uri)
        if node_id is None:
            logger.info(f"No resource found for <{uri}>")
            return
        yield from self.describe_node(node_id, exclude_context)

    def find(
        self,
        label: str,
        key: str,
        value: Any,
        exclude_context: bool = False
    ) -> Iterator[ProjectionItem]:
        """
        Describe every node carrying ``label`` whose ``key`` property equals
        ``value``. Label and key are graph names (``ns0__Person``, or a
        mapped name), matched as stored. Yields nothing when no node matches.

        Example:
            >>> list(engine.find("Director", "born", 1961))
        """
        with self._require_store().transaction() as tx:
            matches = tx.find_nodes(label, key, value)
        if not matches:
            logger.info(f"No :{label} node found with {key} = {value!r}")
            return
        for node in sorted(matches, key=lambda n: n.id):
            yield from self.describe_node(node.id, exclude_context)

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def _class_label(self, name: str, uri: str) -> Literal:
        if self.mode is ProjectionMode.LPG:
            return Literal(name)
        return Literal(URIUtils.local_name(uri))

    def ontology(self, source: Union[Subgraph, Records]) -> Iterator[ProjectionItem]:
        """
        Extract a simple OWL schema from a graph.

        Labels become ``owl:Class`` and relationship types
        ``owl:ObjectProperty`` with ``rdfs:domain``/``rdfs:range`` taken
        from the labels of their endpoints.
        """
        subgraph = collect_subgraph(source)
        index = subgraph.index()
        seen: Set[Statement] = set()
        classes: Dict[str, str] = {}

        def emit(statement: Statement) -> Iterator[Statement]:
            if statement not in seen:
                seen.add(statement)
                yield statement

        def class_uri(label: str) -> Iterator[ProjectionItem]:
            if label in classes or label in _HIDDEN_LABELS:
                return
            try:
                uri = self.vocabulary_uri(label)
            except UnknownPrefixError as e:
                yield _error(str(e))
                return
            if uri is None:
                return
            classes[label] = uri
            yield from emit(Statement(URIRef(uri), RDF.type, OWL.Class))
            yield from emit(Statement(URIRef(uri), RDFS.label, self._class_label(label, uri)))

        for node in subgraph.nodes:
            for label in sorted(node.labels):
                yield from class_uri(label)

        for rel in subgraph.relationships:
            try:
                prop_uri = self.vocabulary_uri(rel.type)
            except UnknownPrefixError as e:
                yield _error(str(e))
                continue
            if prop_uri is None:
                continue
            prop = URIRef(prop_uri)
            yield from emit(Statement(prop, RDF.type, OWL.ObjectProperty))
            yield from emit(Statement(prop, RDFS.label, self._class_label(rel.type, prop_uri)))
            for endpoint_id, axis in ((rel.start_node, RDFS.domain), (rel.end_node, RDFS.range)):
                endpoint = index.get(endpoint_id)
                if endpoint is None:
                    continue
                for label in sorted(endpoint.labels):
                    if label in classes:
                        yield from emit(Statement(prop, axis, URIRef(classes[label])))
