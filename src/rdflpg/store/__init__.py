"""
Graph storage layer: the store protocol and the in-memory implementation.
"""

from .base import GraphStore, GraphTransaction, TransactionalStore
from .memory import InMemoryGraphStore, InMemoryTransaction

__all__ = [
    'GraphStore',
    'GraphTransaction',
    'TransactionalStore',
    'InMemoryGraphStore',
    'InMemoryTransaction',
]
