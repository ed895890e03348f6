"""
Signal handling for the orchestration module.

SIGINT and SIGTERM cancel every active TaskRunner. Runners register
themselves in a global registry while they execute a task, since signal
handlers cannot be bound to class instances directly.
"""

import logging
import signal
import threading
from typing import TYPE_CHECKING, Any, Dict, List

if TYPE_CHECKING:
    from .task_runner import TaskRunner

logger = logging.getLogger(__name__)

_active_runners: Dict[int, "TaskRunner"] = {}
_active_runners_lock = threading.Lock()


def register_runner(runner_id: int, runner: "TaskRunner") -> None:
    """Register a TaskRunner that is executing a task."""
    with _active_runners_lock:
        _active_runners[runner_id] = runner
    logger.debug(f"Registered TaskRunner {runner_id} for signal handling")


def unregister_runner(runner_id: int) -> None:
    with _active_runners_lock:
        if _active_runners.pop(runner_id, None) is not None:
            logger.debug(f"Unregistered TaskRunner {runner_id} from signal handling")


def active_runners() -> List["TaskRunner"]:
    with _active_runners_lock:
        return list(_active_runners.values())


def cancel_active_runners() -> int:
    """
    Request cancellation of every registered runner.

    Returns:
        Number of runners that accepted the request
    """
    cancelled = 0
    for runner in active_runners():
        if runner.cancel():
            cancelled += 1
    return cancelled


class SignalHandler:
    """
    Installs SIGINT/SIGTERM handlers that cancel active runners.

    Must be set up from the main thread. Can be used as a context manager.
    """

    def __init__(self):
        self._original_sigint_handler = None
        self._original_sigterm_handler = None
        self._signal_handlers_set = False
        self.signals_received = 0

    def __enter__(self) -> "SignalHandler":
        self.setup_signal_handlers()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.cleanup_signal_handlers()

    def setup_signal_handlers(self) -> None:
        try:
            self._original_sigint_handler = signal.signal(signal.SIGINT, self._handle_signal)
            self._original_sigterm_handler = signal.signal(signal.SIGTERM, self._handle_signal)
            self._signal_handlers_set = True
            logger.debug("Signal handlers installed")
        except ValueError as e:
            # Not on the main thread
            logger.warning(f"Failed to set up signal handlers: {e}")

    def cleanup_signal_handlers(self) -> None:
        """Restore the original signal handlers."""
        if not self._signal_handlers_set:
            return
        try:
            if self._original_sigint_handler is not None:
                signal.signal(signal.SIGINT, self._original_sigint_handler)
            if self._original_sigterm_handler is not None:
                signal.signal(signal.SIGTERM, self._original_sigterm_handler)
            logger.debug("Signal handlers restored")
        except ValueError as e:
            logger.warning(f"Failed to restore signal handlers: {e}")
        finally:
            self._signal_handlers_set = False

    def _handle_signal(self, signum: int, frame: Any) -> None:
        self.signals_received += 1
        logger.warning(f"Signal {signum} received. Cancelling all active tasks.")
        cancelled = cancel_active_runners()
        logger.info(f"Cancellation requested for {cancelled} running task(s)")
