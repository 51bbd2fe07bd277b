"""
Cooperative cancellation for ingest and delete calls.

The engines poll a CancellationToken between statements. Once the token
is cancelled the next poll raises OperationCancelledException, which the
engine turns into a KO result carrying the counts reached so far. Batches
that were already committed stay in the store.

Example:
    ```python
    token = setup_cancellation_handler()
    result = session.import_rdf("data.ttl", cancellation_token=token)
    if not result.ok:
        print(result.extra_info)
    ```
"""

import logging
import signal
import threading
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class OperationCancelledException(Exception):
    """
    Raised at a poll point after the token was cancelled.

    Attributes:
        message: What happened, including the cancel reason when given.
        operation: Name of the interrupted call ("import", "delete").
    """

    def __init__(self, message: str = "Operation was cancelled", operation: Optional[str] = None):
        self.message = message
        self.operation = operation
        super().__init__(message)

    def __str__(self) -> str:
        if not self.operation:
            return self.message
        return f"{self.message} (operation: {self.operation})"


class CancellationToken:
    """
    One-shot cancellation flag, safe to set from another thread or from a
    signal handler.
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []
        self._reason: Optional[str] = None

    @property
    def cancel_reason(self) -> Optional[str]:
        return self._reason

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def register_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` when the token is cancelled; callbacks run in registration order."""
        with self._lock:
            self._callbacks.append(callback)

    def cancel(self, reason: Optional[str] = None) -> None:
        """
        Cancel the token. Only the first call has an effect; its reason is
        the one reported.

        Args:
            reason: Why the call is being cancelled.
        """
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            pending = list(self._callbacks)
        logger.info(f"Cancellation requested: {reason or 'no reason given'}")

        for callback in pending:
            try:
                callback()
            except Exception as e:
                logger.error(f"Cancellation callback {callback!r} failed: {e}")

    def throw_if_cancelled(self, operation: Optional[str] = None) -> None:
        """
        Poll point for engines.

        Raises:
            OperationCancelledException: If cancel() has been called.
        """
        if not self._event.is_set():
            return
        message = "Operation was cancelled"
        if self._reason:
            message = f"{message}: {self._reason}"
        raise OperationCancelledException(message, operation)


_saved_sigint_handler = None


def setup_cancellation_handler(
    show_message: bool = True,
    message: str = "\nCancellation requested, finishing current batch..."
) -> CancellationToken:
    """
    Route Ctrl+C to a fresh token.

    The first SIGINT cancels the token so the running call can stop at its
    next poll point. A second SIGINT puts the previous handler back and
    raises KeyboardInterrupt.

    Args:
        show_message: Print ``message`` on the first interrupt.
        message: Text printed on the first interrupt.

    Returns:
        The token cancelled by SIGINT.
    """
    global _saved_sigint_handler

    token = CancellationToken()

    def on_sigint(signum, frame) -> None:
        if token.is_cancelled():
            restore_default_handler()
            raise KeyboardInterrupt
        if show_message:
            print(message)
        token.cancel("user interrupted (SIGINT)")

    _saved_sigint_handler = signal.getsignal(signal.SIGINT)
    signal.signal(signal.SIGINT, on_sigint)
    return token


def restore_default_handler() -> None:
    """Put back the SIGINT handler replaced by setup_cancellation_handler."""
    global _saved_sigint_handler

    if _saved_sigint_handler is not None:
        signal.signal(signal.SIGINT, _saved_sigint_handler)
        _saved_sigint_handler = None
