"""
Runtime data models.

This module contains the structures created while tasks execute: concrete
process invocations and the transcript lines they produce.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .states import LineSeverity


@dataclass(frozen=True)
class Invocation:
    """
    A concrete external program call materialised from a build task.
    """

    # Program name or path, as configured.
    program: str
    # Arguments following the program name.
    args: List[str]
    # Directory the process runs in.
    cwd: Path
    # Environment overrides merged over the inherited environment.
    env: Dict[str, str] = field(default_factory=dict, hash=False)
    # What this invocation operates on, e.g. the image path of a resize call.
    subject: Optional[str] = None

    @property
    def argv(self) -> List[str]:
        """Full argument vector, program name first."""
        return [self.program, *self.args]

    def command_line(self) -> str:
        return " ".join(self.argv)


@dataclass(frozen=True)
class LogLine:
    """
    One line of process output as recorded by the log sink.
    """

    # Position in the sink, strictly increasing in append order.
    seq: int
    # Epoch seconds at which the line was appended.
    timestamp: float
    task_id: str
    task_label: str
    handle_id: str
    # "stdout" or "stderr".
    stream: str
    text: str
    severity: LineSeverity = LineSeverity.INFO

    def format(self) -> str:
        """Render the line with its task attribution, for display."""
        return f"[{self.task_label}] {self.text}"
