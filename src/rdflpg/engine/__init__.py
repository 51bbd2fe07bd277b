"""
Ingest, delete and projection engines.
"""

from .batch import BatchWriter, BlankNodeArena, MutationBatch, StoreBatchWriter
from .delete import DeleteEngine
from .ingest import IngestEngine, IngestState, require_index, required_constraint
from .projection import ProjectionEngine, ProjectionMode, collect_subgraph

__all__ = [
    'BatchWriter',
    'BlankNodeArena',
    'MutationBatch',
    'StoreBatchWriter',
    'DeleteEngine',
    'IngestEngine',
    'IngestState',
    'require_index',
    'required_constraint',
    'ProjectionEngine',
    'ProjectionMode',
    'collect_subgraph',
]
