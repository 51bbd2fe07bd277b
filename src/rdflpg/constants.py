"""
Shared constants for the RDF <-> property graph mapping.

Centralizes vocabulary IRIs, value encodings and configuration defaults so
that ingest, delete and projection agree on a single representation.
"""

from enum import IntEnum


# Label carried by every node that represents an RDF resource.
RESOURCE_LABEL = "Resource"

# Unique key properties of a resource node.
URI_PROPERTY = "uri"
GRAPH_URI_PROPERTY = "graphUri"

# Label of the node holding the namespace -> prefix bindings.
NAMESPACE_RECORD_LABEL = "NamespacePrefixDefinition"

# Labels of the schema mapping records.
MAPPING_NAMESPACE_LABEL = "_MapNs"
MAPPING_DEFINITION_LABEL = "_MapDef"

# Shortened key = prefix + PREFIX_SEPARATOR + local name, e.g. ns0__name
PREFIX_SEPARATOR = "__"

# Encodings of RDF literal details inside plain string property values.
DATATYPE_SEPARATOR = "^^"
LANGUAGE_SEPARATOR = "@"

# Auto-allocated prefix tokens look like ns0, ns1, ...
AUTO_PREFIX_STEM = "ns"

# Blank node identities are stored with this marker in the uri property.
BLANK_NODE_MARKER = "_:"

# Namespaces used when projecting graphs that were not imported from RDF.
DEFAULT_INDIVIDUAL_NS = "lpg://individuals#"
DEFAULT_VOCABULARY_NS = "lpg://vocabulary#"

# Error marker written inline into serialized output.
SERIALIZATION_ERROR_PREFIX = "RDF Serialization ERROR: "


class ImportDefaults:
    """Default values for ingest configuration."""
    COMMIT_SIZE = 25000
    NODE_CACHE_SIZE = 10000
    PREVIEW_LIMIT = 1000


class MemoryLimits:
    """Thresholds for the pre-flight memory check before parsing."""
    MIN_AVAILABLE_MB = 256
    MAX_SAFE_FILE_MB = 500
    # rdflib uses roughly 3-4x the file size while parsing
    MEMORY_MULTIPLIER = 3.5
    LOAD_FACTOR = 0.7


class ExitCode(IntEnum):
    """Process exit codes used by the CLI."""
    SUCCESS = 0
    ERROR = 1
    PARTIAL = 2
    CANCELLED = 130
