"""
Statement classification.

Decides, for one statement and the active import policy, which graph
mutation it stands for: a label on the subject, a relationship to another
resource, a property value, or nothing (filtered out). Vocabulary IRIs
are turned into graph names by a ``VocabularyNamer`` according to the
``handleVocabUris`` policy.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from rdflib import RDF, Literal, URIRef

from ..config import HandleVocabUris, ImportConfig
from ..constants import GRAPH_URI_PROPERTY, URI_PROPERTY
from ..converters.type_mapper import TypeMapper, ValueKind
from ..converters.uri_utils import URIUtils
from ..models.statement import Statement, Subject
from .mappings import MappingRegistry
from .prefixes import PrefixRegistry

logger = logging.getLogger(__name__)

RESERVED_PROPERTY_KEYS = frozenset({URI_PROPERTY, GRAPH_URI_PROPERTY})


@dataclass(frozen=True)
class TypeAssertion:
    """rdf:type statement mapped to a label on the subject."""
    subject: Subject
    label: str


@dataclass(frozen=True)
class ObjectRelationship:
    """Statement whose object is a resource, mapped to a relationship."""
    subject: Subject
    rel_type: str
    object: Subject


@dataclass(frozen=True)
class LiteralProperty:
    """Statement whose object is a literal, mapped to a property value."""
    subject: Subject
    key: str
    value: Any
    multivalued: bool = False


@dataclass(frozen=True)
class Dropped:
    """Statement that produces no graph mutation."""
    reason: str


Classification = Union[TypeAssertion, ObjectRelationship, LiteralProperty, Dropped]


class VocabularyNamer:
    """
    Turns vocabulary IRIs into graph names.

    SHORTEN gives ``prefix__localName`` (allocating prefixes), KEEP the
    full IRI, IGNORE the local name, and MAP the mapped graph element name
    or the local name when the IRI has no mapping.

    A non-allocating namer (used when deleting) returns None for IRIs
    whose namespace has no prefix yet: nothing in the graph can use it.
    """

    def __init__(
        self,
        policy: HandleVocabUris,
        prefixes: PrefixRegistry,
        mappings: Optional[MappingRegistry] = None,
        allocate: bool = True
    ):
        self.policy = policy
        self.prefixes = prefixes
        self.mappings = mappings
        self.allocate = allocate

    def name(self, uri: str) -> Optional[str]:
        uri = str(uri)
        if self.policy is HandleVocabUris.SHORTEN:
            if self.allocate:
                return self.prefixes.shorten(uri)
            return self.prefixes.try_shorten(uri)
        if self.policy is HandleVocabUris.KEEP:
            return uri
        if self.policy is HandleVocabUris.MAP and self.mappings is not None:
            mapped = self.mappings.graph_name_for(uri)
            if mapped is not None:
                return mapped
        return URIUtils.local_name(uri)

    def datatype_name(self, datatype: str) -> Optional[str]:
        """Name for a custom datatype: shortened under SHORTEN, else the IRI."""
        if self.policy is HandleVocabUris.SHORTEN:
            return self.name(datatype)
        return str(datatype)


class StatementClassifier:
    """
    Maps statements to graph mutations under an import policy.

    Example:
        >>> classifier = StatementClassifier(config, namer)
        >>> classifier.classify(Statement(alice, RDF.type, schema.Person))
        TypeAssertion(subject=..., label='ns0__Person')
    """

    def __init__(self, config: ImportConfig, namer: VocabularyNamer):
        self.config = config
        self.namer = namer
        self._language = config.language_filter.lower() if config.language_filter else None

    def accepts_language(self, literal: Literal) -> bool:
        """
        Apply the language filter.

        Untagged literals always pass; tagged ones pass when the whole tag
        equals the filter, ignoring case ('fr' does not accept 'fr-be').
        """
        if self._language is None or not literal.language:
            return True
        return literal.language.lower() == self._language

    def classify(self, statement: Statement) -> Classification:
        predicate = str(statement.predicate)
        obj = statement.object

        if self.config.is_excluded(predicate):
            return Dropped("excluded predicate")

        if isinstance(obj, Literal):
            return self._classify_literal(statement, predicate, obj)

        if statement.predicate == RDF.type and self.config.types_to_labels and isinstance(obj, URIRef):
            label = self.namer.name(obj)
            if label is None:
                return Dropped("unknown namespace")
            return TypeAssertion(statement.subject, label)

        rel_type = self.namer.name(predicate)
        if rel_type is None:
            return Dropped("unknown namespace")
        return ObjectRelationship(statement.subject, rel_type, obj)

    def _classify_literal(self, statement: Statement, predicate: str, literal: Literal) -> Classification:
        if not self.accepts_language(literal):
            return Dropped("language filter")

        key = self.namer.name(predicate)
        if key is None:
            return Dropped("unknown namespace")
        if key in RESERVED_PROPERTY_KEYS:
            logger.warning(f"Dropping <{predicate}>: its name '{key}' is a resource key")
            return Dropped("reserved key")

        typed = TypeMapper.to_typed_value(
            literal, keep_custom=self.config.keeps_custom_data_type(predicate)
        )
        datatype_key = None
        if typed.kind is ValueKind.CUSTOM:
            datatype_key = self.namer.datatype_name(typed.datatype)
            if datatype_key is None:
                return Dropped("unknown namespace")
        value = typed.to_property(datatype_key, keep_lang_tag=self.config.keep_lang_tag)
        return LiteralProperty(
            subject=statement.subject,
            key=key,
            value=value,
            multivalued=self.config.is_multivalued(predicate),
        )
