"""
Delete engine: retract RDF statements from a previously ingested graph.

Each statement is classified under the same policy used to import it and
the matching graph element is removed: a label, a relationship, a scalar
property or one element of an array property. Statements mentioning a
blank node are skipped since their minted identities cannot be matched
across calls. Resources left holding nothing but their key are removed.
"""

import logging
from typing import Iterable, List, Optional, Set, Tuple

from ..cancellation import CancellationToken, OperationCancelledException
from ..config import ImportConfig
from ..constants import GRAPH_URI_PROPERTY, RESOURCE_LABEL, URI_PROPERTY
from ..exceptions import MissingIndexError
from ..mapping.classifier import (
    Classification, Dropped, LiteralProperty, ObjectRelationship,
    StatementClassifier, TypeAssertion, VocabularyNamer,
)
from ..mapping.mappings import MappingRegistry
from ..mapping.prefixes import PrefixRegistry
from ..mapping.resource_cache import ResourceCache, ResourceKey
from ..models.results import DeleteResult
from ..models.statement import Statement
from ..store.base import GraphStore, GraphTransaction
from .ingest import require_index

logger = logging.getLogger(__name__)

_KEY_PROPERTIES = {URI_PROPERTY, GRAPH_URI_PROPERTY}


class DeleteEngine:
    """
    Runs one delete call. Single-use, like IngestEngine.

    Example:
        >>> engine = DeleteEngine(store, prefixes, cache, config=ImportConfig())
        >>> engine.run(parser.statements(ttl, "Turtle")).triples_deleted
        3
    """

    def __init__(
        self,
        store: GraphStore,
        prefixes: PrefixRegistry,
        cache: Optional[ResourceCache] = None,
        mappings: Optional[MappingRegistry] = None,
        config: Optional[ImportConfig] = None,
    ):
        self.store = store
        self.cache = cache
        self.config = config or ImportConfig()
        namer = VocabularyNamer(self.config.handle_vocab_uris, prefixes, mappings, allocate=False)
        self.classifier = StatementClassifier(self.config, namer)
        self.prefixes = prefixes

    def run(
        self,
        statements: Iterable[Statement],
        quad: bool = False,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> DeleteResult:
        """
        Delete the graph counterparts of a statement stream.

        Args:
            statements: Lazy, single-pass statement stream.
            quad: Resources are keyed by uri and graphUri.
            cancellation_token: Checked between statements.

        Returns:
            The call result; never raises for call-level failures.
        """
        result = DeleteResult()
        try:
            require_index(self.store, quad)
        except MissingIndexError as e:
            logger.error(str(e))
            return result.fail(str(e))

        pending: List[Tuple[Classification, Optional[str]]] = []
        try:
            for statement in statements:
                if cancellation_token is not None:
                    cancellation_token.throw_if_cancelled("delete")
                result.triples_parsed += 1
                if statement.has_blank_node:
                    result.skipped_blank_nodes += 1
                    continue
                outcome = self.classifier.classify(statement)
                if isinstance(outcome, Dropped):
                    continue
                graph_uri = str(statement.graph) if quad and statement.graph is not None else None
                pending.append((outcome, graph_uri))
                if len(pending) >= self.config.commit_size:
                    self._flush(pending, result)
                    pending = []
            if pending:
                self._flush(pending, result)
        except OperationCancelledException as e:
            logger.warning(f"Delete cancelled after {result.triples_deleted} statements deleted")
            result.fail(str(e))
        except Exception as e:
            logger.error(f"Delete aborted after {result.triples_parsed} statements parsed: {e}")
            result.fail(str(e) or type(e).__name__)

        notice = result.blank_node_notice()
        if notice:
            result.extra_info = f"{result.extra_info}; {notice}" if result.extra_info else notice
        result.namespaces = self.prefixes.bindings()
        logger.info(
            f"Delete finished: {result.triples_deleted} of {result.triples_parsed} statements deleted"
        )
        return result

    def _find(self, tx: GraphTransaction, key: ResourceKey) -> Optional[int]:
        if self.cache is not None:
            node_id = self.cache.get(key)
            if node_id is not None and tx.get_node(node_id) is not None:
                return node_id
        node_id = tx.find_resource(key[0], key[1])
        if node_id is not None and self.cache is not None:
            self.cache.put(key, node_id)
        return node_id

    def _flush(self, pending: List[Tuple[Classification, Optional[str]]], result: DeleteResult) -> None:
        deleted = 0
        removed_keys: List[ResourceKey] = []
        with self.store.transaction() as tx:
            touched: Set[Tuple[int, ResourceKey]] = set()
            for outcome, graph_uri in pending:
                key = (str(outcome.subject), graph_uri)
                node_id = self._find(tx, key)
                if node_id is None:
                    continue
                if self._apply(tx, node_id, outcome, graph_uri, touched):
                    deleted += 1
                    touched.add((node_id, key))
            for node_id, key in touched:
                if self._remove_if_empty(tx, node_id):
                    removed_keys.append(key)
        result.triples_deleted += deleted
        result.resources_removed += len(removed_keys)
        if self.cache is not None:
            self.cache.discard(removed_keys)

    def _apply(self, tx: GraphTransaction, node_id: int, outcome: Classification,
               graph_uri: Optional[str], touched: Set[Tuple[int, ResourceKey]]) -> bool:
        if isinstance(outcome, TypeAssertion):
            return tx.remove_label(node_id, outcome.label)

        if isinstance(outcome, ObjectRelationship):
            target_key = (str(outcome.object), graph_uri)
            target_id = self._find(tx, target_key)
            if target_id is None:
                return False
            rel_id = tx.find_relationship(node_id, outcome.rel_type, target_id)
            if rel_id is None:
                return False
            tx.delete_relationship(rel_id)
            touched.add((target_id, target_key))
            return True

        if isinstance(outcome, LiteralProperty):
            node = tx.get_node(node_id)
            current = node.properties.get(outcome.key)
            if isinstance(current, list):
                for index, item in enumerate(current):
                    if _same_value(item, outcome.value):
                        remaining = current[:index] + current[index + 1:]
                        if remaining:
                            tx.set_property(node_id, outcome.key, remaining)
                        else:
                            tx.remove_property(node_id, outcome.key)
                        return True
                return False
            if current is not None and _same_value(current, outcome.value):
                return tx.remove_property(node_id, outcome.key)
        return False

    @staticmethod
    def _remove_if_empty(tx: GraphTransaction, node_id: int) -> bool:
        node = tx.get_node(node_id)
        if node is None:
            return False
        if node.labels - {RESOURCE_LABEL}:
            return False
        if set(node.properties) - _KEY_PROPERTIES:
            return False
        if tx.relationships_of(node_id):
            return False
        return tx.delete_node(node_id)


def _same_value(stored, value) -> bool:
    return type(stored) is type(value) and stored == value
