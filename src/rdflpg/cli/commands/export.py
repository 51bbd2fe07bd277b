"""
Commands that project the graph back to RDF: export, describe, find, ontology.
"""

import argparse
import logging
import sys
from typing import List

from ...constants import ExitCode
from ...exceptions import RDFLPGError
from ...models.statement import ProjectionItem
from ...session import GraphSession
from ..helpers import write_output
from .base import BaseCommand, print_error

logger = logging.getLogger(__name__)


def _emit(session: GraphSession, items: List[ProjectionItem], args: argparse.Namespace) -> int:
    errors = session.errors(items)
    text = session.serialize(items, args.format)
    write_output(text, args.output)
    for message in errors:
        print(f"⚠ {message}", file=sys.stderr)
    return ExitCode.SUCCESS


class ExportCommand(BaseCommand):
    """
    Serialize the stored graph, or the nodes with one label, as RDF.

    Usage:
        export [--format Turtle] [--mode rdf|lpg] [--label L] [--mapped-only]
    """

    def execute(self, args: argparse.Namespace) -> int:
        self.setup_logging_from_args(args)
        try:
            session = self.open_session(args)
            source = session.store.subgraph(args.label) if args.label else None
            items = session.project(source, mode=args.mode, mapped_only=args.mapped_only)
            return _emit(session, items, args)
        except (RDFLPGError, OSError, ValueError) as e:
            print_error(str(e))
            return ExitCode.ERROR


class DescribeCommand(BaseCommand):
    """
    Serialize one resource with its incoming and outgoing relationships.

    Usage:
        describe <uri> [--graph-uri G] [--exclude-context] [--format Turtle]
    """

    def execute(self, args: argparse.Namespace) -> int:
        self.setup_logging_from_args(args)
        try:
            session = self.open_session(args)
            items = session.describe(args.uri, graph_uri=args.graph_uri, mode=args.mode,
                                    exclude_context=args.exclude_context)
            if not items:
                print_error(f"No resource found for <{args.uri}>")
                return ExitCode.ERROR
            return _emit(session, items, args)
        except (RDFLPGError, OSError, ValueError) as e:
            print_error(str(e))
            return ExitCode.ERROR


class FindCommand(BaseCommand):
    """
    Serialize the nodes with a label whose property has a given value.

    Usage:
        find <label> <key> <value> [--type Integer] [--exclude-context] [--format Turtle]
    """

    def execute(self, args: argparse.Namespace) -> int:
        self.setup_logging_from_args(args)
        try:
            session = self.open_session(args)
            items = session.find(args.label, args.key, args.value, value_type=args.value_type,
                                 mode=args.mode, exclude_context=args.exclude_context)
            if not items:
                print_error(f"No :{args.label} node found with {args.key} = {args.value}")
                return ExitCode.ERROR
            return _emit(session, items, args)
        except (RDFLPGError, OSError, ValueError) as e:
            print_error(str(e))
            return ExitCode.ERROR


class OntologyCommand(BaseCommand):
    """
    Serialize an OWL outline of the labels and relationship types in use.

    Usage:
        ontology [--format Turtle] [--mode rdf|lpg]
    """

    def execute(self, args: argparse.Namespace) -> int:
        self.setup_logging_from_args(args)
        try:
            session = self.open_session(args)
            return _emit(session, session.ontology(mode=args.mode), args)
        except (RDFLPGError, OSError, ValueError) as e:
            print_error(str(e))
            return ExitCode.ERROR
