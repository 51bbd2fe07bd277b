"""
Vocabulary and identity mapping: prefixes, resource cache, schema
mappings and statement classification.
"""

from .classifier import (
    Classification,
    Dropped,
    LiteralProperty,
    ObjectRelationship,
    StatementClassifier,
    TypeAssertion,
    VocabularyNamer,
)
from .mappings import ElementMapping, MappingRegistry
from .prefixes import PrefixRegistry, next_auto_prefix
from .resource_cache import ResourceCache, ResourceKey

__all__ = [
    'Classification',
    'Dropped',
    'LiteralProperty',
    'ObjectRelationship',
    'StatementClassifier',
    'TypeAssertion',
    'VocabularyNamer',
    'ElementMapping',
    'MappingRegistry',
    'PrefixRegistry',
    'next_auto_prefix',
    'ResourceCache',
    'ResourceKey',
]
