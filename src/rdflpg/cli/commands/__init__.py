"""
CLI command implementations.

This package contains split command modules:
- base.py: Base command class and exit code mapping
- graph.py: Commands that change or preview the graph (init, import, delete, preview)
- export.py: Commands that project the graph to RDF (export, describe, find, ontology)
- registry.py: Prefix and mapping management (prefixes, mappings)
"""

from .base import BaseCommand, exit_code_for

from .graph import (
    InitCommand,
    ImportCommand,
    DeleteCommand,
    PreviewCommand,
)

from .export import (
    ExportCommand,
    DescribeCommand,
    FindCommand,
    OntologyCommand,
)

from .registry import (
    PrefixesCommand,
    MappingsCommand,
)


__all__ = [
    # Base
    'BaseCommand',
    'exit_code_for',
    # Graph
    'InitCommand',
    'ImportCommand',
    'DeleteCommand',
    'PreviewCommand',
    # Export
    'ExportCommand',
    'DescribeCommand',
    'FindCommand',
    'OntologyCommand',
    # Registry
    'PrefixesCommand',
    'MappingsCommand',
]
