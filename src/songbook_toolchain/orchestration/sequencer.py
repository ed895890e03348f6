"""
Fail-fast pipeline of build tasks.

A Sequencer runs its tasks one after another on a background thread. Step
i+1 starts only after step i succeeded; any other outcome stops the
pipeline at i.
"""

import asyncio
import dataclasses
import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from ..config import get_config
from ..models.config import AppConfig
from ..models.results import SequenceResult, TaskResult
from ..models.states import SequenceState, TaskState
from ..models.tasks import BuildTask, clean_task, compile_task
from ..system.workspace import target_for_songbook
from ..validation import ErrorSeverity, handle_error
from .log_sink import LogSink
from .task_runner import TaskRunner

logger = logging.getLogger(__name__)


class Sequencer:
    """
    Ordered pipeline of tasks executed by one TaskRunner.

    A sequencer is single-use: once it has started it can neither be
    restarted nor resumed after a failure. Build a new one to retry.
    """

    def __init__(self, tasks: Sequence[BuildTask], runner: TaskRunner):
        self.tasks: List[BuildTask] = list(tasks)
        self.runner = runner
        self._lock = threading.Lock()
        self._state = SequenceState.PENDING
        self._current_index: Optional[int] = None
        self._failed_index: Optional[int] = None
        self._steps: List[TaskResult] = []
        self._cancel_requested = threading.Event()
        self._done = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._callbacks: List[Callable[[SequenceResult], None]] = []

    @property
    def state(self) -> SequenceState:
        return self._state

    @property
    def current_index(self) -> Optional[int]:
        return self._current_index

    @property
    def failed_index(self) -> Optional[int]:
        return self._failed_index

    @property
    def result(self) -> SequenceResult:
        """Snapshot of the aggregate result so far."""
        with self._lock:
            return SequenceResult(state=self._state, failed_index=self._failed_index, steps=list(self._steps))

    def start(self) -> None:
        """
        Start executing the steps in the background and return immediately.

        Raises:
            RuntimeError: If the sequencer was already started
        """
        with self._lock:
            if self._state is not SequenceState.PENDING:
                raise RuntimeError(f"Sequencer already {self._state.value}, create a new one to run again")
            self._state = SequenceState.RUNNING

        logger.info(f"Starting pipeline: {' -> '.join(task.label for task in self.tasks) or '(empty)'}")
        self._thread = threading.Thread(target=self._run_steps, name="sequencer", daemon=True)
        self._thread.start()

    def wait(self, timeout: Optional[float] = None) -> Optional[SequenceResult]:
        """
        Block until the pipeline finished.

        Returns:
            The aggregate result, or None if the timeout expired first
        """
        if self._state is SequenceState.PENDING:
            raise RuntimeError("Sequencer has not been started")
        if not self._done.wait(timeout):
            return None
        return self.result

    def run(self) -> SequenceResult:
        """Start the pipeline and wait for it."""
        self.start()
        return self.wait()

    async def run_async(self) -> SequenceResult:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.run)

    def cancel(self) -> bool:
        """
        Cancel the running step; the pipeline then ends FAILED at that step.

        Returns:
            True if the pipeline was running
        """
        if self._state is not SequenceState.RUNNING:
            return False
        self._cancel_requested.set()
        self.runner.cancel()
        return True

    def add_done_callback(self, callback: Callable[[SequenceResult], None]) -> None:
        """Call ``callback(result)`` once the pipeline finished."""
        with self._lock:
            if not self._done.is_set():
                self._callbacks.append(callback)
                return
        callback(self.result)

    def _run_steps(self) -> None:
        index = 0
        try:
            for index, task in enumerate(self.tasks):
                if self._cancel_requested.is_set():
                    logger.warning(f"Pipeline cancelled before step {index} ({task.label})")
                    self._finish(SequenceState.FAILED, index)
                    return

                with self._lock:
                    self._current_index = index
                logger.info(f"Step {index + 1}/{len(self.tasks)}: {task.label}")

                step = self.runner.execute(task)
                if self._cancel_requested.is_set() and not step.cancelled:
                    # Cancelled before the runner picked the task up
                    logger.warning(f"Pipeline cancelled during step {index} ({task.label})")
                    step = dataclasses.replace(step, state=TaskState.FAILED, cancelled=True, message="cancelled")
                with self._lock:
                    self._steps.append(step)

                if not step.succeeded:
                    logger.error(f"Pipeline failed at step {index} ({task.label}): {step.message}")
                    self._finish(SequenceState.FAILED, index)
                    return

            self._finish(SequenceState.SUCCEEDED, None)
        except Exception as e:
            handle_error(e, f"pipeline step {index}", severity=ErrorSeverity.ERROR, reraise=False, logger=logger)
            self._finish(SequenceState.FAILED, index)

    def _finish(self, state: SequenceState, failed_index: Optional[int]) -> None:
        with self._lock:
            self._state = state
            self._failed_index = failed_index
            self._current_index = None
            callbacks, self._callbacks = self._callbacks, []
            self._done.set()
        if state is SequenceState.SUCCEEDED:
            logger.info("Pipeline succeeded")
        result = self.result
        for callback in callbacks:
            try:
                callback(result)
            except Exception as e:
                logger.error(f"Pipeline done callback failed: {e}", exc_info=True)


def build_pipeline(songbook: Union[str, Path], working_dir: Union[str, Path, None] = None,
                   config: Optional[AppConfig] = None, log_sink: Optional[LogSink] = None) -> Sequencer:
    """
    Create the "clean, then compile" pipeline for a songbook file.

    Args:
        songbook: Path to the ``.sb`` songbook file
        working_dir: Songbook working directory, defaults to the songbook's directory
        config: Application configuration, defaults to the global one
        log_sink: Transcript shared with the caller

    Raises:
        ConfigurationError: If the songbook is outside the working directory
            or has the wrong extension
    """
    config = config if config is not None else get_config()
    songbook = Path(songbook)
    working_dir = Path(working_dir) if working_dir is not None else songbook.resolve().parent

    target = target_for_songbook(songbook, working_dir, config.workspace)
    runner = TaskRunner(working_dir, config=config, log_sink=log_sink)
    return Sequencer([clean_task(), compile_task(target)], runner)
