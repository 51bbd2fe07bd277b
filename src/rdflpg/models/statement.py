"""
Statement stream items.

A statement is an rdflib (subject, predicate, object) triple with an
optional graph context. Streams consumed by the ingest and delete engines
and produced by the projection engine are plain iterables of these.
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional, Union

from rdflib import BNode, Literal, URIRef

Subject = Union[URIRef, BNode]
Object = Union[URIRef, BNode, Literal]


class Statement(NamedTuple):
    """An RDF statement; ``graph`` is None for the default graph."""
    subject: Subject
    predicate: URIRef
    object: Object
    graph: Optional[URIRef] = None

    @property
    def has_blank_node(self) -> bool:
        """True when the subject or the object is a blank node."""
        return isinstance(self.subject, BNode) or isinstance(self.object, BNode)

    @property
    def is_literal(self) -> bool:
        return isinstance(self.object, Literal)


@dataclass(frozen=True)
class SerializationComment:
    """
    Inline diagnostic emitted by the projection in place of an element
    that could not be turned into statements.

    Attributes:
        message: Text of the diagnostic, written as a comment by writers.
    """
    message: str


ProjectionItem = Union[Statement, SerializationComment]
