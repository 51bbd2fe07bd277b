"""
Converters between RDF terms and property graph names and values.
"""

from .type_mapper import TypedValue, TypeMapper, ValueKind, XSD_TO_VALUE_KIND
from .uri_utils import URIUtils

__all__ = [
    'TypedValue',
    'TypeMapper',
    'ValueKind',
    'XSD_TO_VALUE_KIND',
    'URIUtils',
]
