"""
Task runner for the orchestration module.

The TaskRunner turns a BuildTask into process handles, streams their output
into the log sink and reduces the handles' terminal states to a TaskResult.
Configuration problems, missing tools, failures and crashes are all reported
as result states; only programming errors are raised.
"""

import asyncio
import logging
import threading
import time
from concurrent.futures import Executor
from pathlib import Path
from typing import Iterable, List, Optional, Set, Union

from ..config import get_config
from ..models.config import AppConfig
from ..models.results import HandleRecord, TaskResult
from ..models.runtime import Invocation
from ..models.states import LintOutcome, ProcessState, TaskState
from ..models.tasks import BuildTask, TaskKind
from ..validation import ConfigurationError, ErrorSeverity, TaskAlreadyRunningError, handle_error
from .invocations import build_invocations
from .log_sink import LogSink
from .process_handle import ProcessHandle
from .shared_state import RuntimeState
from .signal_handler import register_runner, unregister_runner

logger = logging.getLogger(__name__)

# task_ids of every task currently executing, across all runners
_running_task_ids: Set[str] = set()
_running_task_ids_lock = threading.Lock()

_STATE_FOR_PROCESS = {
    ProcessState.FAILED: TaskState.FAILED,
    ProcessState.CRASHED: TaskState.CRASHED,
    ProcessState.TOOL_NOT_FOUND: TaskState.TOOL_NOT_FOUND,
}


def resolve_lint_outcome(result: TaskResult, issues_exit_codes: Iterable[int]) -> LintOutcome:
    """
    Tell a lint run that found issues apart from a checker that broke.

    Exit 0 is clean, a configured "issues" exit code is ISSUES_FOUND and
    anything else (other exit codes, crashes, cancellation, a missing
    checker) is CHECKER_FAILED.
    """
    if result.state is TaskState.SUCCEEDED:
        return LintOutcome.CLEAN
    if (result.state is TaskState.FAILED and not result.cancelled
            and result.exit_code in set(issues_exit_codes)):
        return LintOutcome.ISSUES_FOUND
    return LintOutcome.CHECKER_FAILED


def _claim_task(task: BuildTask) -> None:
    with _running_task_ids_lock:
        if task.task_id in _running_task_ids:
            raise TaskAlreadyRunningError(f"Task {task.label} ({task.task_id}) is already running")
        _running_task_ids.add(task.task_id)


def _release_task(task: BuildTask) -> None:
    with _running_task_ids_lock:
        _running_task_ids.discard(task.task_id)


class TaskRunner:
    """
    Executes build tasks in a working directory, one at a time.

    A runner blocks only the thread calling `execute`; several runners may
    execute concurrently on other threads and share one LogSink.
    """

    def __init__(self, working_dir: Union[str, Path], config: Optional[AppConfig] = None,
                 log_sink: Optional[LogSink] = None):
        """
        Args:
            working_dir: Songbook working directory the tools run in
            config: Application configuration, defaults to the global one
            log_sink: Transcript receiving all output, created from the
                configured classification rules when omitted
        """
        self.working_dir = Path(working_dir)
        self.config = config if config is not None else get_config()
        self.log_sink = log_sink if log_sink is not None else LogSink.with_rules(self.config.rules)
        self.state = RuntimeState()

    @property
    def is_busy(self) -> bool:
        return self.state.active_task is not None

    @property
    def current_handle(self) -> Optional[ProcessHandle]:
        return self.state.current_handle

    @property
    def handles(self) -> List[ProcessHandle]:
        """Every handle this runner has created, in creation order."""
        with self.state.lock:
            return list(self.state.handles)

    def execute(self, task: BuildTask) -> TaskResult:
        """
        Run a task to completion and return its result.

        Raises:
            TaskAlreadyRunningError: If this task instance is already running,
                or this runner is busy with another task
        """
        _claim_task(task)
        try:
            with self.state.lock:
                if self.state.active_task is not None:
                    raise TaskAlreadyRunningError(
                        f"Runner is busy with {self.state.active_task.label}, cannot start {task.label}"
                    )
                self.state.active_task = task
                self.state.cancel_requested.clear()
        except TaskAlreadyRunningError:
            _release_task(task)
            raise

        runner_id = id(self)
        register_runner(runner_id, self)
        try:
            return self._execute(task)
        finally:
            unregister_runner(runner_id)
            with self.state.lock:
                self.state.active_task = None
                self.state.current_handle = None
            _release_task(task)

    async def execute_async(self, task: BuildTask, executor: Optional[Executor] = None) -> TaskResult:
        """Run `execute` in an executor so asyncio callers are not blocked."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(executor, self.execute, task)

    def cancel(self) -> bool:
        """
        Cancel the running task, if any.

        The running handle is terminated and no further invocation of the
        task is spawned. Output already recorded is kept.

        Returns:
            True if a task was running
        """
        with self.state.lock:
            task = self.state.active_task
            if task is None:
                return False
            self.state.cancel_requested.set()
            handle = self.state.current_handle

        logger.warning(f"Cancellation requested for {task.label}")
        if handle is not None:
            handle.cancel()
        return True

    def _execute(self, task: BuildTask) -> TaskResult:
        result = TaskResult(task=task, state=TaskState.SUCCEEDED, started_at=time.time())

        try:
            invocations = build_invocations(task, self.working_dir, self.config)
        except ConfigurationError as e:
            handle_error(e, f"configuring {task.label}", severity=ErrorSeverity.WARNING,
                         reraise=False, logger=logger)
            result.state = TaskState.CONFIGURATION_ERROR
            result.message = str(e)
            result.finished_at = time.time()
            return result

        logger.info(f"Running {task.label}: {len(invocations)} invocation(s) in {self.working_dir}")
        keep_going = (task.kind is TaskKind.RESIZE_COVERS
                      and self.config.engine.resize_failure_policy == "continue")

        for invocation in invocations:
            if self.state.cancel_requested.is_set():
                result.cancelled = True
                break

            record = self._run_invocation(task, invocation)
            if record is None:
                result.cancelled = True
                break
            result.handles.append(record)

            if record.terminal.cancelled:
                result.cancelled = True
                break
            if not record.terminal.succeeded:
                if record.terminal.state is ProcessState.TOOL_NOT_FOUND or not keep_going:
                    break
                logger.warning(f"{task.label}: {invocation.subject or invocation.command_line()} "
                               f"{record.terminal.describe()}, continuing")

        result.state = self._resolve_state(result)
        if task.kind is TaskKind.LATEX_LINT:
            result.lint_outcome = resolve_lint_outcome(result, self.config.toolchain.lint_issues_exit_codes)
        result.message = self._describe(result)
        result.lines = self.log_sink.lines_for_task(task.task_id)
        result.finished_at = time.time()

        if result.succeeded:
            logger.info(f"{task.label} {result.message} in {result.duration_seconds:.2f}s")
        else:
            logger.error(f"{task.label} {result.message}")
        return result

    def _run_invocation(self, task: BuildTask, invocation: Invocation) -> Optional[HandleRecord]:
        """Run one invocation on a new handle. Returns None if cancelled before spawning."""
        tool = Path(invocation.program).name
        engine = self.config.engine

        def forward_line(handle: ProcessHandle, stream: str, text: str) -> None:
            self.log_sink.append(task.task_id, task.label, handle.handle_id, stream, text, tool=tool)

        handle = ProcessHandle(
            invocation,
            on_line=forward_line,
            merge_stderr=engine.merge_stderr,
            encoding=engine.output_encoding,
            cancel_grace_timeout=engine.cancel_grace_timeout,
            kill_timeout=engine.kill_timeout,
        )

        with self.state.lock:
            if self.state.cancel_requested.is_set():
                return None
            self.state.current_handle = handle
            self.state.handles.append(handle)

        handle.start()
        # A cancel may have arrived between registering and spawning
        if self.state.cancel_requested.is_set():
            handle.cancel()

        terminal = handle.wait()
        with self.state.lock:
            self.state.current_handle = None
        return HandleRecord(handle_id=handle.handle_id, invocation=invocation, terminal=terminal)

    @staticmethod
    def _resolve_state(result: TaskResult) -> TaskState:
        if result.cancelled:
            return TaskState.FAILED
        for record in result.handles:
            if not record.terminal.succeeded:
                return _STATE_FOR_PROCESS[record.terminal.state]
        return TaskState.SUCCEEDED

    @staticmethod
    def _describe(result: TaskResult) -> str:
        if result.cancelled:
            return "cancelled"
        for record in result.handles:
            if not record.terminal.succeeded:
                return record.terminal.describe()
        if not result.handles:
            return "succeeded (nothing to do)"
        return "succeeded"
