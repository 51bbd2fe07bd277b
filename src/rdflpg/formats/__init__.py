"""
RDF serialization formats: parsing sources into statement streams and
writing projection output.
"""

from .rdf_parser import MemoryManager, RDFGraphParser, sanitize_url_for_logging
from .rdf_writer import RDFWriter

__all__ = [
    'MemoryManager',
    'RDFGraphParser',
    'RDFWriter',
    'sanitize_url_for_logging',
]
