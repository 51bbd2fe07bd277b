"""
RDF Writer Module

Serializes projection output (statements interleaved with diagnostics)
into any supported RDF format. Diagnostics are written as comments in
formats that have a comment syntax; JSON-LD has none, so for JSON-LD they
only reach the log and the caller's error list.
"""

import logging
from typing import Dict, Iterable, List, Optional, TextIO, Tuple

from rdflib import Dataset, Graph

from ..models.statement import ProjectionItem, SerializationComment, Statement
from .rdf_parser import RDFGraphParser

logger = logging.getLogger(__name__)

_HASH_COMMENT_FORMATS = {"turtle", "trig", "nt", "nquads"}


def _split(items: Iterable[ProjectionItem]) -> Tuple[List[Statement], List[SerializationComment]]:
    statements: List[Statement] = []
    comments: List[SerializationComment] = []
    for item in items:
        if isinstance(item, SerializationComment):
            comments.append(item)
        else:
            statements.append(item)
    return statements, comments


def _xml_comment(message: str) -> str:
    # "--" is not allowed inside an XML comment
    return f"<!-- {message.replace('--', '- -')} -->"


class RDFWriter:
    """
    Writes projection output as RDF text.

    Example:
        >>> text = RDFWriter.serialize(engine.project(subgraph), "Turtle", prefixes.bindings())
    """

    @classmethod
    def build_graph(
        cls,
        statements: Iterable[Statement],
        format_name: str,
        bindings: Optional[Dict[str, str]] = None,
    ) -> Graph:
        """
        Collect statements into an rdflib graph suited to the format.

        Graph contexts are kept for TriG and N-Quads and dropped otherwise.
        """
        graph = RDFGraphParser.create_graph(format_name)
        for prefix, namespace in (bindings or {}).items():
            graph.bind(prefix, namespace, override=True)
        keep_context = isinstance(graph, Dataset)
        for statement in statements:
            if keep_context:
                graph.add((statement.subject, statement.predicate, statement.object, statement.graph))
            else:
                graph.add((statement.subject, statement.predicate, statement.object))
        return graph

    @classmethod
    def serialize(
        cls,
        items: Iterable[ProjectionItem],
        rdf_format: str = "Turtle",
        bindings: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Serialize projection output.

        Args:
            items: Statements and SerializationComment diagnostics.
            rdf_format: Output format name or alias.
            bindings: prefix -> namespace pairs to declare in the output.

        Returns:
            The serialized document.

        Raises:
            UnsupportedFormatError: For unknown formats.
        """
        format_name = RDFGraphParser.resolve_format(rdf_format)
        statements, comments = _split(items)
        graph = cls.build_graph(statements, format_name, bindings)
        text = graph.serialize(format=format_name)
        if isinstance(text, bytes):
            text = text.decode("utf-8")
        logger.debug(
            f"Serialized {len(statements)} statements as {format_name} "
            f"with {len(comments)} diagnostics"
        )
        return cls._with_comments(text, comments, format_name)

    @staticmethod
    def _with_comments(text: str, comments: List[SerializationComment], format_name: str) -> str:
        if not comments:
            return text
        if format_name in _HASH_COMMENT_FORMATS:
            header = "".join(f"# {c.message}\n" for c in comments)
            return header + text
        if format_name == "xml":
            block = "\n".join(_xml_comment(c.message) for c in comments)
            if text.startswith("<?xml"):
                declaration, _, rest = text.partition("\n")
                return f"{declaration}\n{block}\n{rest}"
            return f"{block}\n{text}"
        logger.debug(f"{len(comments)} diagnostics not written inline: {format_name} has no comments")
        return text

    @classmethod
    def write(
        cls,
        items: Iterable[ProjectionItem],
        stream: TextIO,
        rdf_format: str = "Turtle",
        bindings: Optional[Dict[str, str]] = None,
    ) -> None:
        """Serialize projection output to a text stream."""
        stream.write(cls.serialize(items, rdf_format, bindings))
