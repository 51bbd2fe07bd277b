"""
CLI helper utilities.

This module provides shared utilities for CLI commands including:
- Logging setup
- Configuration and parameter loading
- Console formatting
"""

import json
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from ..config import ImportConfig, load_config
from ..exceptions import InvalidConfigError

# Type alias for log levels
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_STORE_PATH = "graph.json"


def setup_logging(
    level: LogLevel = "INFO",
    log_file: Optional[str] = None
) -> Optional[str]:
    """
    Setup logging configuration with fallback locations.

    If the primary log file location fails (permission denied, disk full, etc.),
    attempts to write to fallback locations in order:
    1. Requested location
    2. System temp directory
    3. User home directory
    4. Console-only (final fallback)

    Console output goes to stderr so that RDF written to stdout stays clean.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path. If None, logs to console only.

    Returns:
        The actual log file path used, or None if logging to console only.
    """
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    actual_log_file = None

    if log_file:
        log_filename = os.path.basename(log_file) or "rdflpg.log"
        fallback_locations = [
            log_file,
            os.path.join(tempfile.gettempdir(), log_filename),
            os.path.join(Path.home(), log_filename),
        ]

        for fallback_path in fallback_locations:
            try:
                log_dir = os.path.dirname(fallback_path)
                if log_dir and not os.path.exists(log_dir):
                    os.makedirs(log_dir, exist_ok=True)
                handlers.append(logging.FileHandler(fallback_path, encoding='utf-8'))
                actual_log_file = fallback_path
                if fallback_path != log_file:
                    print(f"Note: Using fallback log file: {fallback_path}", file=sys.stderr)
                break
            except OSError as e:
                print(f"  Could not create log at {fallback_path}: {e}", file=sys.stderr)
                continue

        if actual_log_file is None:
            print(f"Warning: Could not write log file to any location", file=sys.stderr)
            print(f"  Requested: {log_file}", file=sys.stderr)
            print(f"  Logging to console only", file=sys.stderr)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )

    logger = logging.getLogger(__name__)
    if actual_log_file:
        logger.info(f"Logging to: {actual_log_file}")

    return actual_log_file


def load_import_config(config_path: Optional[str]) -> ImportConfig:
    """
    Load the import policy from a JSON file, or the defaults without one.

    Raises:
        FileNotFoundError: If the file does not exist.
        InvalidConfigError: If the file or a value is invalid.
    """
    if not config_path:
        return ImportConfig()
    return load_config(config_path)


def parse_params(pairs: Optional[List[str]]) -> Dict[str, Any]:
    """
    Turn ``key=value`` command line pairs into configuration keys.

    Values are decoded as JSON when possible (``true``, ``100``,
    ``["a", "b"]``), otherwise kept as strings.

    Raises:
        InvalidConfigError: If a pair has no ``=``.
    """
    params: Dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, raw = pair.partition("=")
        if not sep or not key.strip():
            raise InvalidConfigError(pair, "expected key=value")
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            value = raw
        params[key.strip()] = value
    return params


def print_header(title: str, width: int = 60) -> None:
    """Print a formatted header with the given title."""
    print("\n" + "=" * width)
    print(title)
    print("=" * width)


def print_footer(width: int = 60) -> None:
    print("=" * width + "\n")


def write_output(text: str, output: Optional[str]) -> None:
    """Write text to a file, or to stdout when no path is given."""
    if not output:
        sys.stdout.write(text)
        if not text.endswith("\n"):
            sys.stdout.write("\n")
        return
    with open(output, 'w', encoding='utf-8') as f:
        f.write(text)
    print(f"Saved to: {output}", file=sys.stderr)
