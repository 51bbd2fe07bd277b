"""
Graph session facade.

A GraphSession owns the session-scoped state shared by every call against
one store: the prefix registry, the resource cache and the mapping
registry. It resolves RDF sources through the parser, runs the ingest,
delete and projection engines, and serializes projection output.

Example:
    >>> session = GraphSession()
    >>> session.init()
    >>> result = session.import_rdf_snippet(ttl, "Turtle")
    >>> print(session.export(rdf_format="Turtle"))
"""

import logging
from typing import Any, Dict, Iterator, List, Optional, Union

from .cancellation import CancellationToken
from .config import ImportConfig
from .constants import RESOURCE_LABEL
from .converters.type_mapper import TypeMapper
from .engine.delete import DeleteEngine
from .engine.ingest import IngestEngine, required_constraint
from .engine.projection import ProjectionEngine, ProjectionMode, Records
from .formats.rdf_parser import RDFGraphParser
from .formats.rdf_writer import RDFWriter
from .mapping.mappings import ElementMapping, MappingRegistry
from .mapping.prefixes import PrefixRegistry
from .mapping.resource_cache import ResourceCache
from .models.graph import Subgraph
from .models.results import DeleteResult, ImportResult, PreviewResult
from .models.statement import ProjectionItem, SerializationComment, Statement
from .store.memory import InMemoryGraphStore

logger = logging.getLogger(__name__)

ConfigLike = Union[ImportConfig, Dict[str, Any], None]


class GraphSession:
    """
    Entry point for ingest, delete, preview and export calls on one store.

    Attributes:
        store: The graph store.
        config: Default policy, overridden per call by ``params``.
        prefixes: Namespace prefix registry backed by the store.
        mappings: Schema mapping registry backed by the store.
        cache: Resource identity cache shared by calls.
    """

    def __init__(self, store: Optional[InMemoryGraphStore] = None, config: ConfigLike = None):
        self.store = store if store is not None else InMemoryGraphStore()
        self.config = self.merge_config(config, ImportConfig())
        self.prefixes = PrefixRegistry(self.store)
        self.mappings = MappingRegistry(self.store)
        self.cache = ResourceCache(self.config.node_cache_size)

    @staticmethod
    def merge_config(params: ConfigLike, base: ImportConfig) -> ImportConfig:
        """Overlay per-call parameters (camelCase keys) on a base policy."""
        if params is None:
            return base
        if isinstance(params, ImportConfig):
            return params
        merged = base.to_dict()
        if "shortenUrls" in params and "handleVocabUris" not in params:
            merged.pop("handleVocabUris")
        merged.update(params)
        return ImportConfig.from_dict(merged)

    def _call_config(self, params: ConfigLike) -> ImportConfig:
        return self.merge_config(params, self.config)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def init(self, quad: bool = False) -> None:
        """Create the uniqueness constraint that imports depend on."""
        label, keys = required_constraint(quad)
        self.store.create_unique_constraint(label, keys)

    def refresh(self) -> None:
        """Re-read prefixes and mappings and empty the resource cache."""
        self.prefixes.refresh()
        self.mappings.refresh()
        self.cache.clear()

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    @staticmethod
    def statements_from_source(
        source: str,
        rdf_format: Optional[str] = None,
        config: Optional[ImportConfig] = None,
        inline: bool = False,
    ) -> Iterator[Statement]:
        """
        Resolve a source into a lazy statement stream.

        Args:
            source: Inline RDF text when ``inline``, otherwise a URL, a
                ``file://`` URL or a local file or directory path.
            rdf_format: Serialization name; inferred from the path if omitted.
            config: Supplies ``headerParams`` for http(s) sources.
            inline: Treat ``source`` as RDF text.
        """
        if inline:
            return RDFGraphParser.statements_from_text(source, rdf_format)
        headers = config.header_params if config is not None else None
        return RDFGraphParser.statements_from_url(source, rdf_format, headers=headers)

    # ------------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------------

    def import_statements(
        self,
        statements,
        params: ConfigLike = None,
        quad: bool = False,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> ImportResult:
        """Ingest an already-parsed statement stream."""
        config = self._call_config(params)
        engine = IngestEngine(self.store, self.prefixes, self.cache, self.mappings, config)
        return engine.run(statements, quad=quad, cancellation_token=cancellation_token)

    def _import(self, source: str, rdf_format: Optional[str], params: ConfigLike,
                quad: bool, inline: bool,
                cancellation_token: Optional[CancellationToken]) -> ImportResult:
        config = self._call_config(params)
        statements = self.statements_from_source(source, rdf_format, config, inline=inline)
        return self.import_statements(statements, config, quad, cancellation_token)

    def import_rdf(self, url: str, rdf_format: Optional[str] = None, params: ConfigLike = None,
                   cancellation_token: Optional[CancellationToken] = None) -> ImportResult:
        """Import triples from a URL, ``file://`` URL, file or directory."""
        return self._import(url, rdf_format, params, False, False, cancellation_token)

    def import_rdf_snippet(self, rdf: str, rdf_format: str = "Turtle", params: ConfigLike = None,
                           cancellation_token: Optional[CancellationToken] = None) -> ImportResult:
        """Import triples from inline RDF text."""
        return self._import(rdf, rdf_format, params, False, True, cancellation_token)

    def import_quad_rdf(self, url: str, rdf_format: Optional[str] = None, params: ConfigLike = None,
                        cancellation_token: Optional[CancellationToken] = None) -> ImportResult:
        """Import quads from a URL, ``file://`` URL, file or directory."""
        return self._import(url, rdf_format, params, True, False, cancellation_token)

    def import_quad_snippet(self, rdf: str, rdf_format: str = "TriG", params: ConfigLike = None,
                            cancellation_token: Optional[CancellationToken] = None) -> ImportResult:
        """Import quads from inline RDF text."""
        return self._import(rdf, rdf_format, params, True, True, cancellation_token)

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_statements(
        self,
        statements,
        params: ConfigLike = None,
        quad: bool = False,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> DeleteResult:
        config = self._call_config(params)
        engine = DeleteEngine(self.store, self.prefixes, self.cache, self.mappings, config)
        return engine.run(statements, quad=quad, cancellation_token=cancellation_token)

    def delete_rdf(self, url: str, rdf_format: Optional[str] = None, params: ConfigLike = None,
                   quad: bool = False,
                   cancellation_token: Optional[CancellationToken] = None) -> DeleteResult:
        """Retract the statements of a URL, ``file://`` URL, file or directory."""
        config = self._call_config(params)
        statements = self.statements_from_source(url, rdf_format, config)
        return self.delete_statements(statements, config, quad, cancellation_token)

    def delete_rdf_snippet(self, rdf: str, rdf_format: str = "Turtle", params: ConfigLike = None,
                           quad: bool = False,
                           cancellation_token: Optional[CancellationToken] = None) -> DeleteResult:
        """Retract the statements of inline RDF text."""
        config = self._call_config(params)
        statements = self.statements_from_source(rdf, rdf_format, config, inline=True)
        return self.delete_statements(statements, config, quad, cancellation_token)

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def preview_statements(self, statements, params: ConfigLike = None,
                           quad: bool = False) -> PreviewResult:
        """
        Run the ingest pipeline against a throwaway graph.

        Nothing is written to the session store: prefixes are allocated in
        a detached registry and node ids are local to the preview. At most
        ``previewLimit`` statements are read.
        """
        config = self._call_config(params)
        scratch = InMemoryGraphStore(name="preview")
        label, keys = required_constraint(quad)
        scratch.create_unique_constraint(label, keys)
        engine = IngestEngine(scratch, self.prefixes.detached(), None, self.mappings, config)
        result = engine.run(statements, quad=quad, limit=config.preview_limit)
        logger.info(
            f"Preview collected {scratch.node_count()} nodes and "
            f"{scratch.relationship_count()} relationships"
        )
        return PreviewResult(subgraph=scratch.subgraph(), result=result, truncated=engine.truncated)

    def preview_rdf(self, url: str, rdf_format: Optional[str] = None, params: ConfigLike = None,
                    quad: bool = False) -> PreviewResult:
        config = self._call_config(params)
        return self.preview_statements(self.statements_from_source(url, rdf_format, config), config, quad)

    def preview_snippet(self, rdf: str, rdf_format: str = "Turtle", params: ConfigLike = None,
                        quad: bool = False) -> PreviewResult:
        config = self._call_config(params)
        statements = self.statements_from_source(rdf, rdf_format, config, inline=True)
        return self.preview_statements(statements, config, quad)

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    def _default_source(self, mode: Union[ProjectionMode, str]) -> Subgraph:
        if ProjectionMode(mode) is ProjectionMode.RDF:
            return self.store.subgraph(RESOURCE_LABEL)
        return self.store.subgraph()

    def projection(self, mode: Union[ProjectionMode, str] = ProjectionMode.RDF,
                   mapped_only: bool = False) -> ProjectionEngine:
        """Return a projection engine bound to this session's state."""
        return ProjectionEngine(
            self.prefixes, self.mappings, mode=ProjectionMode(mode),
            mapped_only=mapped_only, store=self.store,
        )

    def project(self, source: Union[Subgraph, Records, None] = None,
                mode: Union[ProjectionMode, str] = ProjectionMode.RDF,
                mapped_only: bool = False) -> List[ProjectionItem]:
        """
        Project a subgraph or query records, or the whole store when
        ``source`` is None.
        """
        if source is None:
            source = self._default_source(mode)
        return list(self.projection(mode, mapped_only).project(source))

    def serialize(self, items: List[ProjectionItem], rdf_format: str = "Turtle") -> str:
        """Serialize projection output with the session's prefix bindings."""
        return RDFWriter.serialize(items, rdf_format, self.prefixes.bindings())

    def export(self, source: Union[Subgraph, Records, None] = None, rdf_format: str = "Turtle",
               mode: Union[ProjectionMode, str] = ProjectionMode.RDF,
               mapped_only: bool = False) -> str:
        """Project and serialize in one call."""
        return self.serialize(self.project(source, mode, mapped_only), rdf_format)

    def describe(self, uri: str, graph_uri: Optional[str] = None,
                 mode: Union[ProjectionMode, str] = ProjectionMode.RDF,
                 exclude_context: bool = False) -> List[ProjectionItem]:
        """Project one resource with its incoming and outgoing relationships."""
        return list(self.projection(mode).describe(uri, graph_uri, exclude_context))

    def describe_node(self, node_id: int,
                      mode: Union[ProjectionMode, str] = ProjectionMode.RDF,
                      exclude_context: bool = False) -> List[ProjectionItem]:
        return list(self.projection(mode).describe_node(node_id, exclude_context))

    def find(self, label: str, key: str, value: Any, value_type: Optional[str] = None,
             mode: Union[ProjectionMode, str] = ProjectionMode.RDF,
             exclude_context: bool = False) -> List[ProjectionItem]:
        """
        Describe the nodes with ``label`` whose ``key`` property equals ``value``.

        A string ``value`` is parsed into the kind named by ``value_type``
        (String when None); other values are matched as given. An empty
        list means no node matched.

        Raises:
            InvalidConfigError: If ``value`` does not parse as ``value_type``.
        """
        if isinstance(value, str):
            value = TypeMapper.parse_value(value, value_type)
        return list(self.projection(mode).find(label, key, value, exclude_context))

    def ontology(self, source: Union[Subgraph, Records, None] = None,
                 mode: Union[ProjectionMode, str] = ProjectionMode.RDF) -> List[ProjectionItem]:
        """Extract an OWL schema of the labels and relationship types in use."""
        if source is None:
            source = self._default_source(mode)
        return list(self.projection(mode).ontology(source))

    @staticmethod
    def errors(items: List[ProjectionItem]) -> List[str]:
        """Messages of the diagnostics in projection output."""
        return [item.message for item in items if isinstance(item, SerializationComment)]

    # ------------------------------------------------------------------
    # Prefixes and mappings
    # ------------------------------------------------------------------

    def add_prefix(self, prefix: str, namespace: str) -> str:
        return self.prefixes.add_binding(namespace, prefix)

    def remove_prefix(self, prefix: str) -> bool:
        return self.prefixes.remove_binding(prefix)

    def list_prefixes(self) -> Dict[str, str]:
        return self.prefixes.bindings()

    def add_schema(self, namespace: str, prefix: str) -> None:
        self.mappings.add_schema(namespace, prefix)

    def add_mapping(self, namespace: str, vocabulary_element: str, graph_element: str) -> ElementMapping:
        return self.mappings.add_mapping(namespace, vocabulary_element, graph_element)

    def drop_mapping(self, graph_element: str) -> bool:
        return self.mappings.drop_mapping(graph_element)

    def list_mappings(self) -> List[ElementMapping]:
        return self.mappings.mappings()
