"""
RDF Parser Module

Turns RDF sources (inline text, files, directories, URLs) into lazy
statement streams for the ingest and delete engines. Grammar work is
delegated to rdflib.

Components:
- MemoryManager: Pre-flight memory checks before parsing large sources
- RDFGraphParser: Format resolution, parsing and statement iteration
"""

import logging
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple, Union
from urllib.parse import unquote, urlparse, urlunparse

import psutil
import requests
from rdflib import Dataset, Graph
from rdflib.graph import DATASET_DEFAULT_GRAPH_ID
from rdflib.util import guess_format

from ..constants import MemoryLimits
from ..exceptions import SourceError, UnsupportedFormatError
from ..models.statement import Statement

logger = logging.getLogger(__name__)


class MemoryManager:
    """
    Pre-flight memory checks so that oversized sources fail with a
    helpful message instead of exhausting the process.
    """

    MIN_AVAILABLE_MB = MemoryLimits.MIN_AVAILABLE_MB
    MAX_SAFE_FILE_MB = MemoryLimits.MAX_SAFE_FILE_MB
    MEMORY_MULTIPLIER = MemoryLimits.MEMORY_MULTIPLIER
    LOAD_FACTOR = MemoryLimits.LOAD_FACTOR

    @staticmethod
    def get_available_memory_mb() -> float:
        """Available system memory in MB."""
        return psutil.virtual_memory().available / (1024 * 1024)

    @staticmethod
    def get_memory_usage_mb() -> float:
        """Resident memory of the current process in MB."""
        return psutil.Process().memory_info().rss / (1024 * 1024)

    @classmethod
    def check_memory_available(cls, size_mb: float, force: bool = False) -> Tuple[bool, str]:
        """
        Check if enough memory is available to parse a source.

        Args:
            size_mb: Size of the source in MB.
            force: Skip the hard size limit and the safe-threshold refusal.

        Returns:
            Tuple of (can_proceed, message).
        """
        estimated_mb = size_mb * cls.MEMORY_MULTIPLIER

        if not force and size_mb > cls.MAX_SAFE_FILE_MB:
            return False, (
                f"Source size ({size_mb:.1f}MB) exceeds safe limit ({cls.MAX_SAFE_FILE_MB}MB). "
                f"Estimated memory required: ~{estimated_mb:.0f}MB. "
                f"Split the source or use --force to proceed anyway."
            )

        available_mb = cls.get_available_memory_mb()
        if available_mb < cls.MIN_AVAILABLE_MB:
            return False, (
                f"Insufficient free memory. Available: {available_mb:.0f}MB, "
                f"minimum required: {cls.MIN_AVAILABLE_MB}MB."
            )

        safe_threshold_mb = available_mb * cls.LOAD_FACTOR
        if estimated_mb > safe_threshold_mb:
            if force:
                return True, (
                    f"WARNING: source may exceed safe memory limits "
                    f"(~{estimated_mb:.0f}MB needed, {safe_threshold_mb:.0f}MB safe). "
                    f"Proceeding due to force flag."
                )
            return False, (
                f"Source may be too large for available memory. "
                f"Estimated parsing memory: ~{estimated_mb:.0f}MB, "
                f"safe threshold: {safe_threshold_mb:.0f}MB "
                f"(available: {available_mb:.0f}MB)."
            )

        return True, (
            f"Memory OK: source {size_mb:.2f}MB, "
            f"estimated usage ~{estimated_mb:.0f}MB of {available_mb:.0f}MB available"
        )

    @classmethod
    def log_memory_status(cls, context: str = "") -> None:
        prefix = f"[{context}] " if context else ""
        logger.debug(
            f"{prefix}Memory status: process using {cls.get_memory_usage_mb():.0f}MB, "
            f"system available {cls.get_available_memory_mb():.0f}MB"
        )


def sanitize_url_for_logging(url: str) -> str:
    """Drop credentials, query and fragment from a URL before logging it."""
    parsed = urlparse(url)
    return urlunparse(parsed._replace(netloc=parsed.hostname or "", query="", fragment=""))


class RDFGraphParser:
    """
    Parses RDF serializations and exposes them as statement streams.

    Example:
        >>> for statement in RDFGraphParser.statements_from_text(ttl, "Turtle"):
        ...     print(statement.subject, statement.predicate)
    """

    SUPPORTED_FORMATS = {
        "turtle",
        "xml",       # RDF/XML
        "json-ld",
        "trig",
        "nquads",
        "nt",        # N-Triples
    }

    DATASET_FORMATS = {
        "trig",
        "nquads",
    }

    FORMAT_ALIASES = {
        "ttl": "turtle",
        "turtle": "turtle",
        "rdf/xml": "xml",
        "rdfxml": "xml",
        "rdf-xml": "xml",
        "rdf": "xml",
        "owl": "xml",
        "xml": "xml",
        "json-ld": "json-ld",
        "jsonld": "json-ld",
        "json_ld": "json-ld",
        "trig": "trig",
        "n-quads": "nquads",
        "nquads": "nquads",
        "nquad": "nquads",
        "nq": "nquads",
        "n-triples": "nt",
        "ntriples": "nt",
        "nt": "nt",
    }

    DEFAULT_FORMAT = "turtle"
    DEFAULT_TIMEOUT = 30

    @classmethod
    def normalize_format(cls, rdf_format: Optional[str]) -> Optional[str]:
        """Normalize a user-provided format name or alias to an rdflib format."""
        if not rdf_format:
            return None
        fmt = rdf_format.strip().lower()
        return cls.FORMAT_ALIASES.get(fmt, fmt)

    @classmethod
    def infer_format_from_path(cls, file_path: Union[str, Path]) -> Optional[str]:
        """Infer the format from a file extension using rdflib's guess_format."""
        return cls.normalize_format(guess_format(str(file_path)))

    @classmethod
    def resolve_format(
        cls,
        rdf_format: Optional[str],
        file_path: Optional[Union[str, Path]] = None
    ) -> str:
        """
        Resolve the effective format from an explicit name or a file hint.

        Raises:
            UnsupportedFormatError: If the format is not supported.
        """
        normalized = cls.normalize_format(rdf_format)
        if not normalized and file_path is not None:
            normalized = cls.infer_format_from_path(file_path)
        if not normalized:
            normalized = cls.DEFAULT_FORMAT
        if normalized not in cls.SUPPORTED_FORMATS:
            raise UnsupportedFormatError(
                f"Unsupported RDF serialization format '{rdf_format or normalized}'. "
                f"Supported formats: {sorted(cls.SUPPORTED_FORMATS)}"
            )
        return normalized

    @classmethod
    def is_dataset_format(cls, format_name: str) -> bool:
        """Return True when the serialization may contain named graphs."""
        return format_name in cls.DATASET_FORMATS

    @classmethod
    def create_graph(cls, format_name: str) -> Graph:
        """Instantiate the rdflib graph type suited to a format."""
        if cls.is_dataset_format(format_name):
            return Dataset()
        return Graph()

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    @classmethod
    def parse_text(
        cls,
        content: str,
        rdf_format: Optional[str] = None,
        base_uri: Optional[str] = None,
        force_large: bool = False,
        source_name: str = "<inline>",
    ) -> Graph:
        """
        Parse RDF text into an rdflib graph.

        Args:
            content: The serialized RDF.
            rdf_format: Format name or alias (Turtle if omitted).
            base_uri: Base IRI for relative references.
            force_large: Skip the memory safety refusal.
            source_name: Name used in messages.

        Returns:
            The parsed Graph (a Dataset for TriG and N-Quads).

        Raises:
            SourceError: On syntax errors or insufficient memory.
            UnsupportedFormatError: For unknown formats.
        """
        format_name = cls.resolve_format(rdf_format)
        size_mb = len(content.encode("utf-8")) / (1024 * 1024)
        cls._check_memory(size_mb, force_large, source_name)

        graph = cls.create_graph(format_name)
        try:
            graph.parse(data=content, format=format_name, publicID=base_uri)
        except MemoryError as e:
            raise SourceError(source_name, f"Insufficient memory while parsing ({size_mb:.1f} MB): {e}")
        except Exception as e:
            logger.error(f"Failed to parse {source_name} as {format_name}: {e}")
            raise SourceError(source_name, f"Invalid RDF syntax ({format_name}): {e}")
        logger.info(f"Parsed {len(graph)} statements from {source_name} ({format_name})")
        MemoryManager.log_memory_status(source_name)
        return graph

    @classmethod
    def parse_file(
        cls,
        file_path: Union[str, Path],
        rdf_format: Optional[str] = None,
        force_large: bool = False,
    ) -> Graph:
        """
        Parse an RDF file; the format is inferred from the extension when
        not given.

        Raises:
            SourceError: If the file is missing, unreadable or invalid.
        """
        path = Path(file_path)
        if not path.is_file():
            raise SourceError(str(path), "File not found")
        format_name = cls.resolve_format(rdf_format, path)
        size_mb = path.stat().st_size / (1024 * 1024)
        cls._check_memory(size_mb, force_large, str(path))

        graph = cls.create_graph(format_name)
        try:
            graph.parse(source=str(path), format=format_name)
        except MemoryError as e:
            raise SourceError(str(path), f"Insufficient memory while parsing ({size_mb:.1f} MB): {e}")
        except Exception as e:
            logger.error(f"Failed to parse {path} as {format_name}: {e}")
            raise SourceError(str(path), f"Invalid RDF syntax ({format_name}): {e}")
        logger.info(f"Parsed {len(graph)} statements from {path.name} ({format_name})")
        MemoryManager.log_memory_status(path.name)
        return graph

    @classmethod
    def fetch_url(
        cls,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
    ) -> str:
        """
        Download an RDF document.

        Args:
            url: http(s) URL.
            headers: Extra request headers (``headerParams``).
            timeout: Request timeout in seconds.

        Returns:
            The response body as text.

        Raises:
            SourceError: On connection failures or non-2xx responses.
        """
        safe_url = sanitize_url_for_logging(url)
        logger.info(f"Fetching RDF from {safe_url}")
        try:
            response = requests.get(url, headers=headers or {}, timeout=timeout or cls.DEFAULT_TIMEOUT)
            response.raise_for_status()
        except requests.exceptions.Timeout:
            raise SourceError(safe_url, f"Request timed out after {timeout or cls.DEFAULT_TIMEOUT}s")
        except requests.exceptions.RequestException as e:
            raise SourceError(safe_url, f"Could not fetch RDF: {e}")
        return response.text

    @staticmethod
    def _check_memory(size_mb: float, force: bool, source_name: str) -> None:
        can_proceed, message = MemoryManager.check_memory_available(size_mb, force=force)
        if not can_proceed:
            logger.error(f"Memory check failed: {message}")
            raise SourceError(source_name, message)
        logger.debug(f"Memory check: {message}")

    # ------------------------------------------------------------------
    # Statement streams
    # ------------------------------------------------------------------

    @staticmethod
    def iter_statements(graph: Graph) -> Iterator[Statement]:
        """
        Yield the statements of a parsed graph; statements of a Dataset
        carry their graph context (None for the default graph).
        """
        if isinstance(graph, Dataset):
            for s, p, o, g in graph.quads((None, None, None, None)):
                if isinstance(g, Graph):
                    g = g.identifier
                if g is None or g == DATASET_DEFAULT_GRAPH_ID:
                    g = None
                yield Statement(s, p, o, g)
        else:
            for s, p, o in graph:
                yield Statement(s, p, o)

    @classmethod
    def statements_from_text(
        cls,
        content: str,
        rdf_format: Optional[str] = None,
        base_uri: Optional[str] = None,
        force_large: bool = False,
    ) -> Iterator[Statement]:
        """Lazily parse inline RDF text into statements."""
        yield from cls.iter_statements(
            cls.parse_text(content, rdf_format, base_uri=base_uri, force_large=force_large)
        )

    @classmethod
    def statements_from_file(
        cls,
        file_path: Union[str, Path],
        rdf_format: Optional[str] = None,
        force_large: bool = False,
    ) -> Iterator[Statement]:
        yield from cls.iter_statements(cls.parse_file(file_path, rdf_format, force_large))

    @classmethod
    def statements_from_directory(
        cls,
        directory: Union[str, Path],
        rdf_format: Optional[str] = None,
        force_large: bool = False,
    ) -> Iterator[Statement]:
        """
        Yield the statements of every RDF file below a directory, in path
        order. Each file is parsed only when the stream reaches it.

        Files whose format cannot be inferred are skipped unless
        ``rdf_format`` forces one.
        """
        root = Path(directory)
        if not root.is_dir():
            raise SourceError(str(root), "Directory not found")
        for path in sorted(p for p in root.rglob("*") if p.is_file()):
            if not rdf_format and cls.infer_format_from_path(path) not in cls.SUPPORTED_FORMATS:
                logger.debug(f"Skipping {path}: not a recognized RDF file")
                continue
            yield from cls.statements_from_file(path, rdf_format, force_large)

    @classmethod
    def statements_from_url(
        cls,
        url: str,
        rdf_format: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        force_large: bool = False,
    ) -> Iterator[Statement]:
        """
        Yield the statements of a document at an http(s) or file URL, or at
        a local path (file or directory).
        """
        parsed = urlparse(url)
        if parsed.scheme in ("http", "https"):
            content = cls.fetch_url(url, headers=headers)
            fmt = rdf_format or cls.infer_format_from_path(parsed.path)
            yield from cls.iter_statements(
                cls.parse_text(content, fmt, base_uri=url, force_large=force_large,
                               source_name=sanitize_url_for_logging(url))
            )
            return

        path = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(url)
        if path.is_dir():
            yield from cls.statements_from_directory(path, rdf_format, force_large)
        else:
            yield from cls.statements_from_file(path, rdf_format, force_large)
