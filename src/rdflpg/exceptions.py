"""
Exception types raised by the mapping components.

Call-level engines (ingest, delete) convert these into KO results; the
lower level components (registry, cache, store, parser) raise them.
"""

from typing import Optional, Tuple


class RDFLPGError(Exception):
    """Base class for all errors raised by this package."""


class InvalidConfigError(RDFLPGError, ValueError):
    """Raised when an import/projection configuration value is invalid."""

    def __init__(self, key: str, message: str):
        self.key = key
        self.message = message
        super().__init__(f"Invalid value for '{key}': {message}")


class MissingIndexError(RDFLPGError):
    """Raised when the uniqueness constraint on resource keys is absent.

    Attributes:
        label: Label the constraint should exist on.
        keys: Property keys the constraint should cover.
    """

    def __init__(self, label: str, keys: Tuple[str, ...]):
        self.label = label
        self.keys = keys
        super().__init__(
            f"The required index on :{label}({', '.join(keys)}) could not be found"
        )


class UnknownPrefixError(RDFLPGError):
    """Raised when a shortened key uses a prefix with no persisted binding."""

    def __init__(self, prefix: str):
        self.prefix = prefix
        self.message = (
            f"Prefix {prefix} in use but not defined in the "
            f"'NamespacePrefixDefinition' node"
        )
        super().__init__(self.message)


class PrefixConflictError(RDFLPGError, ValueError):
    """Raised when a user-defined binding clashes with an existing one."""

    def __init__(self, prefix: str, namespace: str, existing: Optional[str] = None):
        self.prefix = prefix
        self.namespace = namespace
        self.existing = existing
        detail = f" (already bound to {existing})" if existing else ""
        super().__init__(f"Cannot bind prefix '{prefix}' to <{namespace}>{detail}")


class StoreError(RDFLPGError):
    """Raised by graph store implementations on failed operations."""


class ConstraintViolationError(StoreError):
    """Raised when a write would break a uniqueness constraint."""

    def __init__(self, label: str, keys: Tuple[str, ...], values: Tuple):
        self.label = label
        self.keys = keys
        self.values = values
        super().__init__(
            f"Node :{label} with {dict(zip(keys, values))} already exists"
        )


class UnsupportedFormatError(RDFLPGError, ValueError):
    """Raised for serialization names that are not recognized."""


class SourceError(RDFLPGError):
    """Raised when an RDF source cannot be read or parsed."""

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"{message} [{source}]")
