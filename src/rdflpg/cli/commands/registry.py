"""
Commands that manage namespace prefixes and schema mappings.
"""

import argparse
import logging

from ...constants import ExitCode
from ...exceptions import RDFLPGError
from ..helpers import print_footer, print_header
from .base import BaseCommand, print_error

logger = logging.getLogger(__name__)


class PrefixesCommand(BaseCommand):
    """
    List, add or remove namespace prefix bindings.

    Usage:
        prefixes list
        prefixes add <prefix> <namespace>
        prefixes remove <prefix>
    """

    def execute(self, args: argparse.Namespace) -> int:
        self.setup_logging_from_args(args)
        try:
            session = self.open_session(args)
            action = args.prefix_action or "list"
            if action == "add":
                session.add_prefix(args.prefix, args.namespace)
                self.save_session(session, args)
                print(f"✓ {args.prefix}: <{args.namespace}>")
            elif action == "remove":
                if not session.remove_prefix(args.prefix):
                    print_error(f"Prefix '{args.prefix}' is not defined")
                    return ExitCode.ERROR
                self.save_session(session, args)
                print(f"✓ Removed prefix '{args.prefix}'")
            else:
                bindings = session.list_prefixes()
                print_header(f"NAMESPACE PREFIXES ({len(bindings)})")
                for prefix, namespace in sorted(bindings.items()):
                    print(f"  {prefix}: <{namespace}>")
                print_footer()
        except (RDFLPGError, OSError, ValueError) as e:
            print_error(str(e))
            return ExitCode.ERROR
        return ExitCode.SUCCESS


class MappingsCommand(BaseCommand):
    """
    Manage schema mappings between graph names and vocabulary elements.

    Usage:
        mappings list
        mappings add-schema <namespace> <prefix>
        mappings add <namespace> <vocabulary-element> <graph-element>
        mappings drop <graph-element>
    """

    def execute(self, args: argparse.Namespace) -> int:
        self.setup_logging_from_args(args)
        try:
            session = self.open_session(args)
            action = args.mapping_action or "list"
            if action == "add-schema":
                session.add_schema(args.namespace, args.prefix)
                self.save_session(session, args)
                print(f"✓ Schema {args.prefix}: <{args.namespace}>")
            elif action == "add":
                mapping = session.add_mapping(args.namespace, args.element, args.graph_element)
                self.save_session(session, args)
                print(f"✓ {mapping.graph_element} -> <{mapping.vocabulary_uri}>")
            elif action == "drop":
                if not session.drop_mapping(args.graph_element):
                    print_error(f"No mapping for '{args.graph_element}'")
                    return ExitCode.ERROR
                self.save_session(session, args)
                print(f"✓ Dropped mapping for '{args.graph_element}'")
            else:
                schemas = session.mappings.schemas()
                mappings = session.list_mappings()
                print_header(f"SCHEMAS ({len(schemas)}) AND MAPPINGS ({len(mappings)})")
                for namespace, prefix in sorted(schemas.items()):
                    print(f"  schema {prefix}: <{namespace}>")
                for mapping in mappings:
                    print(f"  {mapping.graph_element} -> <{mapping.vocabulary_uri}>")
                print_footer()
        except (RDFLPGError, OSError, ValueError) as e:
            print_error(str(e))
            return ExitCode.ERROR
        return ExitCode.SUCCESS
