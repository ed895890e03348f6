"""
Orchestration engine for the external songbook toolchain.

Components:
- ProcessHandle: one external process with streamed output
- LogSink: shared, append-only transcript of process output
- TaskRunner: runs a BuildTask's invocations and reports a TaskResult
- Sequencer: fail-fast pipeline of tasks
- SignalHandler: SIGINT/SIGTERM cancellation of active runners
"""

from .invocations import build_invocations
from .log_sink import LogSink
from .process_handle import ProcessHandle
from .sequencer import Sequencer, build_pipeline
from .shared_state import RuntimeState, TimeoutConstants
from .signal_handler import SignalHandler, cancel_active_runners
from .task_runner import TaskRunner, resolve_lint_outcome

__all__ = [
    "LogSink",
    "ProcessHandle",
    "RuntimeState",
    "Sequencer",
    "SignalHandler",
    "TaskRunner",
    "TimeoutConstants",
    "build_invocations",
    "build_pipeline",
    "cancel_active_runners",
    "resolve_lint_outcome",
]
