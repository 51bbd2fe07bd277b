"""
URI Utilities - namespace / local name splitting for vocabulary IRIs.

The split point is the last '#', else the last '/', else the last ':'.
The namespace keeps the separator, so namespace + local name gives back
the original IRI.
"""

import logging
import re
from typing import Tuple

from ..constants import BLANK_NODE_MARKER, PREFIX_SEPARATOR

logger = logging.getLogger(__name__)

_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")


class URIUtils:
    """
    Utility class for vocabulary IRI handling.

    Example:
        >>> URIUtils.split_uri("http://schema.org/Person")
        ('http://schema.org/', 'Person')
        >>> URIUtils.split_uri("http://www.w3.org/2000/01/rdf-schema#label")
        ('http://www.w3.org/2000/01/rdf-schema#', 'label')
    """

    @staticmethod
    def split_uri(uri: str) -> Tuple[str, str]:
        """
        Split an IRI into (namespace, local name).

        Args:
            uri: The IRI to split.

        Returns:
            Tuple of namespace (separator included) and local name. When no
            separator is found the namespace is empty.
        """
        uri_str = str(uri)
        for separator in ("#", "/", ":"):
            index = uri_str.rfind(separator)
            if index >= 0:
                return uri_str[:index + 1], uri_str[index + 1:]
        logger.debug(f"No namespace separator in IRI: {uri_str}")
        return "", uri_str

    @staticmethod
    def local_name(uri: str) -> str:
        """Return the local name part of an IRI."""
        return URIUtils.split_uri(uri)[1]

    @staticmethod
    def namespace(uri: str) -> str:
        """Return the namespace part of an IRI."""
        return URIUtils.split_uri(uri)[0]

    @staticmethod
    def is_absolute_iri(value: str) -> bool:
        """Return True when ``value`` starts with a URI scheme."""
        return bool(_SCHEME_PATTERN.match(str(value)))

    @staticmethod
    def is_blank_node_uri(value: str) -> bool:
        """Return True for the synthetic identities minted for blank nodes."""
        return str(value).startswith(BLANK_NODE_MARKER)

    @staticmethod
    def is_shortened_key(value: str) -> bool:
        """
        Return True when ``value`` looks like ``prefix__localName``.

        Full IRIs are never shortened keys, even if their path contains
        the separator.
        """
        value = str(value)
        if URIUtils.is_absolute_iri(value):
            return False
        prefix, sep, local = value.partition(PREFIX_SEPARATOR)
        return bool(sep) and bool(prefix) and bool(local)

    @staticmethod
    def split_shortened_key(key: str) -> Tuple[str, str]:
        """
        Split ``prefix__localName`` at the first separator.

        Args:
            key: A shortened key.

        Returns:
            Tuple of (prefix, local name).

        Raises:
            ValueError: If ``key`` is not a shortened key.
        """
        if not URIUtils.is_shortened_key(key):
            raise ValueError(f"Not a shortened key: {key}")
        prefix, _, local = str(key).partition(PREFIX_SEPARATOR)
        return prefix, local
