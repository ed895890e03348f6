"""
Data models and structures for the orchestration engine.

Configuration Models:
- Engine behaviour, toolchain programs, workspace layout
- Transcript line classification rules

Task Models:
- The closed set of build task variants and their option sets

State Models:
- Process, task and sequence lifecycles, lint outcomes, line severities

Runtime and Result Models:
- Concrete invocations and transcript lines
- Task and sequence results
"""

from .config import AppConfig, EngineConfig, RuleConfig, ToolchainConfig, WorkspaceConfig
from .results import HandleRecord, SequenceResult, TaskResult
from .runtime import Invocation, LogLine
from .states import (
    LineSeverity,
    LintOutcome,
    ProcessState,
    SequenceState,
    TaskState,
    TerminalState,
)
from .tasks import (
    BuildTask,
    TaskKind,
    clean_task,
    compile_task,
    download_task,
    latex_lint_task,
    resize_covers_task,
)

__all__ = [
    # Configuration
    "AppConfig",
    "EngineConfig",
    "RuleConfig",
    "ToolchainConfig",
    "WorkspaceConfig",
    # Tasks
    "BuildTask",
    "TaskKind",
    "clean_task",
    "compile_task",
    "download_task",
    "latex_lint_task",
    "resize_covers_task",
    # States
    "LineSeverity",
    "LintOutcome",
    "ProcessState",
    "SequenceState",
    "TaskState",
    "TerminalState",
    # Runtime and results
    "HandleRecord",
    "Invocation",
    "LogLine",
    "SequenceResult",
    "TaskResult",
]
