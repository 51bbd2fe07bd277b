"""
Ingest engine: RDF statement streams into the property graph.

One call walks the states::

    INIT -> REQUIRE_INDEX -> STREAMING -> (COMMITTING -> STREAMING)* -> DONE
                          \\-> ABORTED                       \\-> ABORTED

REQUIRE_INDEX checks the uniqueness constraint on resource keys; without
it the call ends KO before reading anything. While STREAMING, statements
are classified and folded into a batch that is committed every
``commitSize`` statements. A failure while streaming or committing
aborts the call: the in-flight batch is rolled back, earlier batches stay
committed and the KO result carries the counts reached so far.
"""

import logging
from enum import Enum
from typing import Iterable, Optional

from rdflib import BNode

from ..cancellation import CancellationToken, OperationCancelledException
from ..config import ImportConfig
from ..constants import GRAPH_URI_PROPERTY, RESOURCE_LABEL, URI_PROPERTY
from ..exceptions import MissingIndexError
from ..mapping.classifier import (
    Dropped, LiteralProperty, ObjectRelationship, StatementClassifier,
    TypeAssertion, VocabularyNamer,
)
from ..mapping.mappings import MappingRegistry
from ..mapping.prefixes import PrefixRegistry
from ..mapping.resource_cache import ResourceCache, ResourceKey
from ..models.results import ImportResult
from ..models.statement import Statement, Subject
from ..store.base import GraphStore
from .batch import BatchWriter, BlankNodeArena, MutationBatch, StoreBatchWriter

logger = logging.getLogger(__name__)


class IngestState(str, Enum):
    """Lifecycle of one ingest call."""
    INIT = "Init"
    REQUIRE_INDEX = "RequireIndex"
    STREAMING = "Streaming"
    COMMITTING = "Committing"
    DONE = "Done"
    ABORTED = "Aborted"


def required_constraint(quad: bool):
    """Return (label, keys) of the constraint an import depends on."""
    if quad:
        return RESOURCE_LABEL, (URI_PROPERTY, GRAPH_URI_PROPERTY)
    return RESOURCE_LABEL, (URI_PROPERTY,)


def require_index(store: GraphStore, quad: bool) -> None:
    """
    Check the uniqueness constraint an import or delete depends on.

    Raises:
        MissingIndexError: If the constraint does not exist.
    """
    label, keys = required_constraint(quad)
    if not store.has_unique_constraint(label, keys):
        raise MissingIndexError(label, keys)


class IngestEngine:
    """
    Runs one ingest call.

    An engine instance is single-use: create one per call. The prefix
    registry, resource cache and mapping registry are shared session state
    passed in by the caller.

    Example:
        >>> engine = IngestEngine(store, prefixes, cache, config=ImportConfig())
        >>> result = engine.run(parser.statements(ttl, "Turtle"))
        >>> result.triples_loaded
        12
    """

    def __init__(
        self,
        store: GraphStore,
        prefixes: PrefixRegistry,
        cache: Optional[ResourceCache] = None,
        mappings: Optional[MappingRegistry] = None,
        config: Optional[ImportConfig] = None,
        writer: Optional[BatchWriter] = None,
    ):
        self.store = store
        self.prefixes = prefixes
        self.config = config or ImportConfig()
        self.cache = cache
        if self.cache is not None:
            self.cache.resize(self.config.node_cache_size)
        namer = VocabularyNamer(self.config.handle_vocab_uris, prefixes, mappings)
        self.classifier = StatementClassifier(self.config, namer)
        self.writer = writer or StoreBatchWriter(store, self.cache)
        self.arena = BlankNodeArena()
        self.state = IngestState.INIT
        self.truncated = False

    def _key(self, term: Subject, graph_uri: Optional[str]) -> ResourceKey:
        if isinstance(term, BNode):
            return self.arena.key_for(term, graph_uri)
        return str(term), graph_uri

    def _fold(self, batch: MutationBatch, statement: Statement, quad: bool) -> bool:
        """Add one statement to the batch; return False if it was dropped."""
        outcome = self.classifier.classify(statement)
        if isinstance(outcome, Dropped):
            logger.debug(f"Dropped statement ({outcome.reason}): {statement.predicate}")
            return False

        graph_uri = str(statement.graph) if quad and statement.graph is not None else None
        subject_key = self._key(statement.subject, graph_uri)

        if isinstance(outcome, TypeAssertion):
            batch.add_label(subject_key, outcome.label)
        elif isinstance(outcome, ObjectRelationship):
            batch.add_relationship(subject_key, outcome.rel_type,
                                   self._key(outcome.object, graph_uri))
        elif isinstance(outcome, LiteralProperty):
            if outcome.multivalued:
                batch.append_value(subject_key, outcome.key, outcome.value)
            else:
                batch.set_value(subject_key, outcome.key, outcome.value)
        batch.statements += 1
        return True

    def _commit(self, batch: MutationBatch, result: ImportResult) -> None:
        self.state = IngestState.COMMITTING
        stats = self.writer.write(batch)
        result.triples_loaded += batch.statements
        result.resources_created += stats.resources_created
        result.resources_touched += stats.resources_touched
        result.relationships_created += stats.relationships_created
        self.state = IngestState.STREAMING

    def run(
        self,
        statements: Iterable[Statement],
        quad: bool = False,
        cancellation_token: Optional[CancellationToken] = None,
        limit: Optional[int] = None,
    ) -> ImportResult:
        """
        Ingest a statement stream.

        Args:
            statements: Lazy, single-pass statement stream.
            quad: Keep graph contexts (resources keyed by uri and graphUri).
            cancellation_token: Checked between statements.
            limit: Stop after this many statements (sets ``truncated``).

        Returns:
            The call result; never raises for call-level failures.
        """
        result = ImportResult(config_summary=self.config.to_dict())

        self.state = IngestState.REQUIRE_INDEX
        try:
            require_index(self.store, quad)
        except MissingIndexError as e:
            self.state = IngestState.ABORTED
            logger.error(str(e))
            return result.fail(str(e))

        self.state = IngestState.STREAMING
        batch = MutationBatch()
        try:
            for statement in statements:
                if cancellation_token is not None:
                    cancellation_token.throw_if_cancelled("import")
                if limit is not None and result.triples_parsed >= limit:
                    self.truncated = True
                    logger.info(f"Statement limit of {limit} reached, stopping")
                    break
                result.triples_parsed += 1
                self._fold(batch, statement, quad)
                if batch.statements >= self.config.commit_size:
                    self._commit(batch, result)
                    batch = MutationBatch()
            if not batch.is_empty():
                self._commit(batch, result)
        except OperationCancelledException as e:
            self.state = IngestState.ABORTED
            logger.warning(f"Import cancelled after {result.triples_loaded} statements loaded")
            result.fail(str(e))
        except Exception as e:
            self.state = IngestState.ABORTED
            logger.error(f"Import aborted after {result.triples_parsed} statements parsed: {e}")
            result.fail(str(e) or type(e).__name__)
        else:
            self.state = IngestState.DONE
            logger.info(
                f"Import finished: {result.triples_loaded} of {result.triples_parsed} "
                f"statements loaded, {result.resources_created} resources created"
            )
        finally:
            result.namespaces = self._namespaces()
        return result

    def _namespaces(self) -> dict:
        try:
            return self.prefixes.bindings()
        except Exception as e:
            logger.warning(f"Could not read namespace bindings: {e}")
            return {}
