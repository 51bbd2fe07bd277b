"""
Base command class shared by all CLI commands.

Every command works on a GraphSession whose store is kept between
invocations as a JSON snapshot (``--store``).
"""

import argparse
import logging
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ...config import ImportConfig
from ...constants import ExitCode
from ...models.results import DeleteResult, ImportResult
from ...session import GraphSession
from ...store.memory import InMemoryGraphStore
from ..helpers import DEFAULT_STORE_PATH, load_import_config, parse_params, setup_logging

logger = logging.getLogger(__name__)


class BaseCommand(ABC):
    """
    Base class for CLI commands.

    Args:
        config_path: Optional JSON configuration file with the import policy.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path
        self._config: Optional[ImportConfig] = None

    @abstractmethod
    def execute(self, args: argparse.Namespace) -> int:
        """Run the command and return a process exit code."""

    @property
    def config(self) -> ImportConfig:
        if self._config is None:
            self._config = load_import_config(self.config_path)
        return self._config

    def setup_logging_from_args(self, args: argparse.Namespace) -> None:
        setup_logging(
            level=getattr(args, 'log_level', None) or "WARNING",
            log_file=getattr(args, 'log_file', None),
        )

    def call_config(self, args: argparse.Namespace) -> ImportConfig:
        """The file configuration overridden by ``--param`` pairs."""
        params = parse_params(getattr(args, 'param', None))
        return GraphSession.merge_config(params or None, self.config)

    @staticmethod
    def store_path(args: argparse.Namespace) -> Path:
        return Path(getattr(args, 'store', None) or DEFAULT_STORE_PATH)

    def open_session(self, args: argparse.Namespace) -> GraphSession:
        """Load the snapshot named by ``--store``, or start an empty store."""
        path = self.store_path(args)
        if path.exists():
            store = InMemoryGraphStore.load(path)
        else:
            logger.info(f"No graph snapshot at {path}, starting with an empty store")
            store = InMemoryGraphStore(name=path.stem)
        return GraphSession(store=store, config=self.config)

    def save_session(self, session: GraphSession, args: argparse.Namespace) -> None:
        session.store.save(self.store_path(args))


def exit_code_for(result, cancelled: bool = False) -> int:
    """Map an import or delete result to a process exit code."""
    if result.ok:
        return ExitCode.SUCCESS
    if cancelled:
        return ExitCode.CANCELLED
    if isinstance(result, ImportResult) and result.triples_loaded > 0:
        return ExitCode.PARTIAL
    if isinstance(result, DeleteResult) and result.triples_deleted > 0:
        return ExitCode.PARTIAL
    return ExitCode.ERROR


def print_error(message: str) -> None:
    print(f"✗ {message}", file=sys.stderr)
