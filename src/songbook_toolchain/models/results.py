"""
Result data models for task and sequence executions.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .runtime import Invocation, LogLine
from .states import LintOutcome, ProcessState, SequenceState, TaskState, TerminalState
from .tasks import BuildTask


@dataclass
class HandleRecord:
    """The invocation a process handle ran and how it ended."""
    handle_id: str
    invocation: Invocation
    terminal: TerminalState


@dataclass
class TaskResult:
    """
    Outcome of one `TaskRunner.execute` call.
    """

    task: BuildTask
    state: TaskState
    # One record per process handle created, in creation order.
    handles: List[HandleRecord] = field(default_factory=list)
    message: str = ""
    cancelled: bool = False
    # Only set for LaTeX lint tasks.
    lint_outcome: Optional[LintOutcome] = None
    # Transcript lines attributed to this task, in append order.
    lines: List[LogLine] = field(default_factory=list)
    started_at: Optional[float] = None
    finished_at: Optional[float] = None

    @property
    def succeeded(self) -> bool:
        return self.state is TaskState.SUCCEEDED

    @property
    def handles_created(self) -> int:
        return len(self.handles)

    @property
    def exit_code(self) -> Optional[int]:
        """Exit code of the first handle that did not succeed, else of the last one."""
        for record in self.handles:
            if record.terminal.state is not ProcessState.SUCCEEDED:
                return record.terminal.exit_code
        return self.handles[-1].terminal.exit_code if self.handles else None

    @property
    def duration_seconds(self) -> float:
        if self.started_at is None or self.finished_at is None:
            return 0.0
        return self.finished_at - self.started_at


@dataclass
class SequenceResult:
    """
    Aggregate outcome of a sequencer pipeline.
    """

    state: SequenceState
    # Index of the step that did not succeed (FailedAt(i)), None otherwise.
    failed_index: Optional[int] = None
    # Results of the steps that were started, in order.
    steps: List[TaskResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is SequenceState.SUCCEEDED

    @property
    def handles_created(self) -> int:
        return sum(step.handles_created for step in self.steps)
