"""
songbook_toolchain - orchestration of the external songbook build toolchain.

Runs make, git, the image tool and the LaTeX checker for a songbook working
directory, streams their output into a shared transcript and reports each
action as a task result.
"""

__version__ = "0.1.0"

from .models import (
    AppConfig,
    BuildTask,
    LintOutcome,
    SequenceResult,
    SequenceState,
    TaskKind,
    TaskResult,
    TaskState,
    clean_task,
    compile_task,
    download_task,
    latex_lint_task,
    resize_covers_task,
)
from .orchestration import LogSink, ProcessHandle, Sequencer, TaskRunner, build_pipeline

__all__ = [
    "__version__",
    "AppConfig",
    "BuildTask",
    "LintOutcome",
    "LogSink",
    "ProcessHandle",
    "SequenceResult",
    "SequenceState",
    "Sequencer",
    "TaskKind",
    "TaskResult",
    "TaskRunner",
    "TaskState",
    "build_pipeline",
    "clean_task",
    "compile_task",
    "download_task",
    "latex_lint_task",
    "resize_covers_task",
]
