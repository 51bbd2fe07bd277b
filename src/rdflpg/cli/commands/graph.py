"""
Commands that change or preview graph content: init, import, delete, preview.
"""

import argparse
import json
import logging
import sys
from abc import abstractmethod

from tqdm import tqdm

from ...cancellation import restore_default_handler, setup_cancellation_handler
from ...constants import ExitCode
from ...exceptions import RDFLPGError
from ..helpers import print_footer, print_header, write_output
from .base import BaseCommand, exit_code_for, print_error

logger = logging.getLogger(__name__)


def _source_text(args: argparse.Namespace):
    """Return (source, inline) for the positional source argument."""
    if args.source == "-":
        return sys.stdin.read(), True
    return args.source, bool(getattr(args, 'inline', False))


class InitCommand(BaseCommand):
    """
    Create the uniqueness constraint that import and delete require.

    Usage:
        init [--quad]
    """

    def execute(self, args: argparse.Namespace) -> int:
        self.setup_logging_from_args(args)
        try:
            session = self.open_session(args)
            session.init(quad=args.quad)
            self.save_session(session, args)
        except (RDFLPGError, OSError) as e:
            print_error(str(e))
            return ExitCode.ERROR
        keys = "uri, graphUri" if args.quad else "uri"
        print(f"✓ Constraint on :Resource({keys}) ready in {self.store_path(args)}")
        return ExitCode.SUCCESS


class _StreamCommand(BaseCommand):
    """Shared flow of import and delete: parse, stream with progress, save."""

    description = "Processing"

    @abstractmethod
    def run(self, session, statements, config, args, token):
        """Apply the statement stream to the session and return the call result."""

    def execute(self, args: argparse.Namespace) -> int:
        self.setup_logging_from_args(args)
        try:
            config = self.call_config(args)
            session = self.open_session(args)
        except (RDFLPGError, OSError) as e:
            print_error(str(e))
            return ExitCode.ERROR

        source, inline = _source_text(args)
        token = setup_cancellation_handler(message="\n⚠️  Cancellation requested...")
        try:
            statements = session.statements_from_source(source, args.format, config, inline=inline)
            progress = tqdm(
                statements,
                desc=self.description,
                unit=" stmt",
                disable=args.no_progress,
                file=sys.stderr,
            )
            try:
                result = self.run(session, progress, config, args, token)
            finally:
                progress.close()
        finally:
            restore_default_handler()

        try:
            self.save_session(session, args)
        except OSError as e:
            print_error(f"Could not save graph snapshot: {e}")
            return ExitCode.ERROR

        if args.json:
            print(json.dumps(result.to_dict(), indent=2))
        else:
            print(result.get_summary())
        return exit_code_for(result, cancelled=token.is_cancelled())


class ImportCommand(_StreamCommand):
    """
    Import RDF into the graph.

    Usage:
        import <source> [--format Turtle] [--quad] [--param key=value ...]
    """

    description = "Importing"

    def run(self, session, statements, config, args, token):
        return session.import_statements(statements, config, quad=args.quad,
                                         cancellation_token=token)


class DeleteCommand(_StreamCommand):
    """
    Retract RDF statements from the graph.

    Usage:
        delete <source> [--format Turtle] [--quad] [--param key=value ...]
    """

    description = "Deleting"

    def run(self, session, statements, config, args, token):
        return session.delete_statements(statements, config, quad=args.quad,
                                         cancellation_token=token)


class PreviewCommand(BaseCommand):
    """
    Show the nodes and relationships an import would create, without
    touching the stored graph.

    Usage:
        preview <source> [--format Turtle] [--param key=value ...]
    """

    def execute(self, args: argparse.Namespace) -> int:
        self.setup_logging_from_args(args)
        try:
            config = self.call_config(args)
            session = self.open_session(args)
        except (RDFLPGError, OSError) as e:
            print_error(str(e))
            return ExitCode.ERROR

        source, inline = _source_text(args)
        statements = session.statements_from_source(source, args.format, config, inline=inline)
        preview = session.preview_statements(statements, config, quad=args.quad)

        if args.json or args.output:
            write_output(json.dumps(preview.to_dict(), indent=2), args.output)
        else:
            print_header("PREVIEW")
            print(f"Nodes: {len(preview.subgraph.nodes)}")
            print(f"Relationships: {len(preview.subgraph.relationships)}")
            if preview.truncated:
                print(f"⚠ Stopped after {config.preview_limit} statements (previewLimit)")
            print(preview.result.get_summary())
            print_footer()
        return ExitCode.SUCCESS if preview.result.ok else ExitCode.ERROR
