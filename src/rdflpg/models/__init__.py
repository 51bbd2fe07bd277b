"""
Data models shared by the engines, stores and writers.
"""

from .graph import GraphNode, GraphRelationship, Subgraph
from .results import DeleteResult, ImportResult, PreviewResult, TerminationStatus
from .statement import ProjectionItem, SerializationComment, Statement

__all__ = [
    'GraphNode',
    'GraphRelationship',
    'Subgraph',
    'DeleteResult',
    'ImportResult',
    'PreviewResult',
    'TerminationStatus',
    'ProjectionItem',
    'SerializationComment',
    'Statement',
]
