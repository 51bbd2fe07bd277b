"""
rdflpg: map RDF to a labeled property graph and back.

Main entry points:
- GraphSession: ingest, delete, preview and export against one store
- ImportConfig: the mapping policy
- InMemoryGraphStore: the bundled property graph store
"""

__version__ = "0.4.0"

from .cancellation import CancellationToken, OperationCancelledException
from .config import HandleMultival, HandleVocabUris, ImportConfig, load_config
from .engine import DeleteEngine, IngestEngine, ProjectionEngine, ProjectionMode
from .exceptions import (
    ConstraintViolationError,
    InvalidConfigError,
    MissingIndexError,
    PrefixConflictError,
    RDFLPGError,
    SourceError,
    StoreError,
    UnknownPrefixError,
    UnsupportedFormatError,
)
from .formats import RDFGraphParser, RDFWriter
from .mapping import MappingRegistry, PrefixRegistry, ResourceCache
from .models import (
    DeleteResult,
    GraphNode,
    GraphRelationship,
    ImportResult,
    PreviewResult,
    SerializationComment,
    Statement,
    Subgraph,
    TerminationStatus,
)
from .session import GraphSession
from .store import InMemoryGraphStore

__all__ = [
    '__version__',
    # Session
    'GraphSession',
    'ImportConfig',
    'HandleVocabUris',
    'HandleMultival',
    'load_config',
    # Engines
    'IngestEngine',
    'DeleteEngine',
    'ProjectionEngine',
    'ProjectionMode',
    # Components
    'PrefixRegistry',
    'ResourceCache',
    'MappingRegistry',
    'InMemoryGraphStore',
    'RDFGraphParser',
    'RDFWriter',
    # Models
    'Statement',
    'SerializationComment',
    'GraphNode',
    'GraphRelationship',
    'Subgraph',
    'ImportResult',
    'DeleteResult',
    'PreviewResult',
    'TerminationStatus',
    # Errors
    'RDFLPGError',
    'MissingIndexError',
    'UnknownPrefixError',
    'PrefixConflictError',
    'ConstraintViolationError',
    'StoreError',
    'InvalidConfigError',
    'UnsupportedFormatError',
    'SourceError',
    'CancellationToken',
    'OperationCancelledException',
]
