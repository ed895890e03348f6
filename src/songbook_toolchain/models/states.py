"""
Lifecycle states for process handles, tasks and sequences.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ProcessState(Enum):
    """Lifecycle of a single external process invocation."""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CRASHED = "crashed"
    TOOL_NOT_FOUND = "tool_not_found"

    @property
    def is_terminal(self) -> bool:
        return self not in (ProcessState.NOT_STARTED, ProcessState.RUNNING)


class TaskState(Enum):
    """Outcome of a build task execution."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CRASHED = "crashed"
    TOOL_NOT_FOUND = "tool_not_found"
    CONFIGURATION_ERROR = "configuration_error"


class SequenceState(Enum):
    """Aggregate state of a sequencer pipeline."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class LintOutcome(Enum):
    """How a LaTeX checker run ended, as seen by the caller."""
    CLEAN = "clean"
    ISSUES_FOUND = "issues_found"
    CHECKER_FAILED = "checker_failed"


class LineSeverity(Enum):
    """Severity of a transcript line, assigned by the line classifier."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class TerminalState:
    """
    Final state of a process handle.

    `exit_code` is set for processes that exited on their own or were
    cancelled, `signal` for processes killed by a signal.
    """

    state: ProcessState
    exit_code: Optional[int] = None
    signal: Optional[int] = None
    cancelled: bool = False
    message: str = ""

    def __post_init__(self):
        if not self.state.is_terminal:
            raise ValueError(f"{self.state.value} is not a terminal process state")

    @property
    def succeeded(self) -> bool:
        return self.state is ProcessState.SUCCEEDED

    def describe(self) -> str:
        """Short human-readable description used in logs and CLI output."""
        if self.state is ProcessState.SUCCEEDED:
            return "succeeded"
        if self.state is ProcessState.TOOL_NOT_FOUND:
            return f"tool not found ({self.message})" if self.message else "tool not found"
        if self.cancelled:
            return "cancelled"
        if self.state is ProcessState.CRASHED:
            return f"crashed (signal {self.signal})"
        return f"failed (exit code {self.exit_code})"
