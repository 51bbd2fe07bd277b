#!/usr/bin/env python3
"""
rdflpg command line entry point.

Usage:
    rdflpg init [--quad]
    rdflpg import <source> [--format Turtle] [--param key=value ...]
    rdflpg delete <source> [--format Turtle]
    rdflpg preview <source> [--format Turtle]
    rdflpg export [--format Turtle] [--mode rdf|lpg] [--mapped-only]
    rdflpg describe <uri> [--exclude-context] [--format Turtle]
    rdflpg find <label> <key> <value> [--type Integer] [--format Turtle]
    rdflpg ontology [--format Turtle]
    rdflpg prefixes list|add|remove
    rdflpg mappings list|add-schema|add|drop

Every command accepts --store <graph.json> (the graph snapshot) and
--config <config.json> (the import configuration).
"""

import sys
from typing import List, Optional

from .cli import (
    create_argument_parser,
    InitCommand,
    ImportCommand,
    DeleteCommand,
    PreviewCommand,
    ExportCommand,
    DescribeCommand,
    FindCommand,
    OntologyCommand,
    PrefixesCommand,
    MappingsCommand,
)


# Command mapping from command name to Command class
COMMAND_MAP = {
    'init': InitCommand,
    'import': ImportCommand,
    'delete': DeleteCommand,
    'preview': PreviewCommand,
    'export': ExportCommand,
    'describe': DescribeCommand,
    'find': FindCommand,
    'ontology': OntologyCommand,
    'prefixes': PrefixesCommand,
    'mappings': MappingsCommand,
}


def run(argv: Optional[List[str]] = None) -> int:
    """Parse arguments and execute the selected command; return its exit code."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    command_class = COMMAND_MAP.get(args.command)
    if command_class is None:
        print(f"Error: Unknown command '{args.command}'")
        parser.print_help()
        return 1

    command = command_class(config_path=getattr(args, 'config', None))
    return int(command.execute(args))


def main():
    """Main entry point for the CLI."""
    sys.exit(run())


if __name__ == '__main__':
    main()
