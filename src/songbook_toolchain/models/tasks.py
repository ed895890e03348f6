"""
Build task model.

A build task is one configured external-tool invocation representing a
user-facing action. Tasks are immutable: changing options produces a fresh
instance through `BuildTask.configure`.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional


class TaskKind(Enum):
    """The closed set of actions the engine knows how to run."""
    CLEAN = "clean"
    COMPILE = "compile"
    DOWNLOAD = "download"
    RESIZE_COVERS = "resize_covers"
    LATEX_LINT = "latex_lint"


# Actions that were gated by a confirmation dialog in the desktop client.
CONFIRMATION_REQUIRED = frozenset({
    TaskKind.DOWNLOAD,
    TaskKind.RESIZE_COVERS,
    TaskKind.LATEX_LINT,
})


def _new_task_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class BuildTask:
    """
    A build task variant with its option set.

    Attributes:
        kind: Which action this task performs
        options: Read-only string option mapping (e.g. ``target``, ``remote``)
        requires_confirmation: Whether the task must be confirmed before running
        confirmed: Whether the confirmation step has been passed
        task_id: Unique identifier used to attribute transcript lines
    """

    kind: TaskKind
    options: Mapping[str, str] = field(default_factory=dict, hash=False)
    requires_confirmation: bool = False
    confirmed: bool = False
    task_id: str = field(default_factory=_new_task_id)

    def __post_init__(self):
        object.__setattr__(
            self, "options", MappingProxyType({str(k): str(v) for k, v in dict(self.options).items()})
        )

    @property
    def label(self) -> str:
        """Display name of the task, e.g. ``compile songbook.pdf``."""
        if self.kind is TaskKind.COMPILE and self.options.get("target"):
            return f"compile {self.options['target']}"
        return self.kind.value.replace("_", "-")

    @property
    def is_ready(self) -> bool:
        """True when the confirmation step does not block execution."""
        return self.confirmed or not self.requires_confirmation

    def option(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.options.get(name, default)

    def configure(self, confirmed: bool = True, **options: Any) -> "BuildTask":
        """
        Return a fresh task with merged options and the given confirmation.

        Options whose value is None are left unchanged. The returned task has
        a new ``task_id``; the original instance is not modified.
        """
        merged = dict(self.options)
        merged.update({name: str(value) for name, value in options.items() if value is not None})
        return BuildTask(
            kind=self.kind,
            options=merged,
            requires_confirmation=self.requires_confirmation,
            confirmed=confirmed,
        )


def clean_task() -> BuildTask:
    """Remove generated artifacts from the working directory."""
    return BuildTask(kind=TaskKind.CLEAN)


def compile_task(target: str) -> BuildTask:
    """Build a single target, typically ``<songbook>.pdf``."""
    return BuildTask(kind=TaskKind.COMPILE, options={"target": target})


def download_task(remote: Optional[str] = None) -> BuildTask:
    """Clone or update the songbook sources from a remote repository."""
    options = {"remote": remote} if remote else {}
    return BuildTask(kind=TaskKind.DOWNLOAD, options=options, requires_confirmation=True)


def resize_covers_task() -> BuildTask:
    return BuildTask(kind=TaskKind.RESIZE_COVERS, requires_confirmation=True)


def latex_lint_task() -> BuildTask:
    return BuildTask(kind=TaskKind.LATEX_LINT, requires_confirmation=True)
