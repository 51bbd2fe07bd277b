"""
CLI module for the RDF <-> property graph mapper.

This module provides a clean separation of concerns for the CLI:
- commands/: Command implementations
- parsers.py: Argument parsing configuration
- helpers.py: Shared CLI utilities
"""

from .commands import (
    BaseCommand,
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

from .parsers import create_argument_parser

from .helpers import (
    load_import_config,
    parse_params,
    setup_logging,
)

__all__ = [
    'BaseCommand',
    'InitCommand',
    'ImportCommand',
    'DeleteCommand',
    'PreviewCommand',
    'ExportCommand',
    'DescribeCommand',
    'FindCommand',
    'OntologyCommand',
    'PrefixesCommand',
    'MappingsCommand',
    'create_argument_parser',
    'load_import_config',
    'parse_params',
    'setup_logging',
]
