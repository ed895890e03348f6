"""
Songbook working directory checks.

The working directory holds the songbook sources: a makefile driving the
LaTeX build, the songbook generator script, the songs and the cover images.
These helpers detect layouts the build tool cannot work with before any
process is spawned.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from ..models.config import ToolchainConfig, WorkspaceConfig
from ..validation import ConfigurationError

logger = logging.getLogger(__name__)


class WorkspaceStatus(Enum):
    VALID = "valid"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class WorkspaceReport:
    """Result of checking a working directory."""
    status: WorkspaceStatus
    message: str
    missing: List[str] = field(default_factory=list)

    @property
    def usable(self) -> bool:
        return self.status is not WorkspaceStatus.ERROR


def find_build_file(working_dir: Path, workspace: WorkspaceConfig) -> Optional[Path]:
    """Return the first configured build file present in the directory."""
    for name in workspace.build_files:
        candidate = working_dir / name
        if candidate.is_file():
            return candidate
    return None


def check_workspace(working_dir: Union[str, Path], workspace: WorkspaceConfig) -> WorkspaceReport:
    """
    Check that a directory looks like a songbook working directory.

    The first problem found is reported. A missing directory, build file or
    required entry is an error; a missing optional entry is a warning.

    Args:
        working_dir: Directory to check
        workspace: Expected layout

    Returns:
        A WorkspaceReport describing the first problem, or a valid report
    """
    working_dir = Path(working_dir)

    if not working_dir.is_dir():
        return WorkspaceReport(WorkspaceStatus.ERROR, "the directory does not exist", [str(working_dir)])

    if find_build_file(working_dir, workspace) is None:
        return WorkspaceReport(
            WorkspaceStatus.ERROR,
            f"{workspace.build_files[0]} not found",
            list(workspace.build_files),
        )

    for entry in workspace.required_entries:
        if not (working_dir / entry).exists():
            return WorkspaceReport(WorkspaceStatus.ERROR, f"{entry} not found", [entry])

    for entry in workspace.optional_entries:
        if not (working_dir / entry).exists():
            return WorkspaceReport(WorkspaceStatus.WARNING, f"{entry} not found", [entry])

    return WorkspaceReport(WorkspaceStatus.VALID, "The directory is valid")


def is_snapshot(working_dir: Path, toolchain: ToolchainConfig) -> bool:
    """True when the directory already contains a version-controlled snapshot."""
    return (Path(working_dir) / toolchain.snapshot_marker).exists()


def target_for_songbook(songbook: Union[str, Path], working_dir: Union[str, Path],
                        workspace: WorkspaceConfig) -> str:
    """
    Derive the build target for a songbook file, e.g. ``mybook.sb`` -> ``mybook.pdf``.

    Raises:
        ConfigurationError: If the songbook is not in the working directory or
            does not have the songbook extension
    """
    songbook = Path(songbook)
    working_dir = Path(working_dir)

    if songbook.resolve().parent != working_dir.resolve():
        raise ConfigurationError(
            "The songbook is not in the working directory",
            field_name="songbook",
            value=str(songbook),
        )
    if songbook.suffix != workspace.songbook_extension:
        raise ConfigurationError(
            f"Wrong filename: songbook does not have \"{workspace.songbook_extension}\" extension",
            field_name="songbook",
            value=str(songbook),
        )
    return f"{songbook.stem}.pdf"


def find_cover_images(working_dir: Path, toolchain: ToolchainConfig) -> List[Path]:
    """
    List the cover images eligible for resizing, sorted by path.

    Images are searched recursively under the configured covers directory.
    """
    covers_dir = Path(working_dir) / toolchain.covers_dir
    if not covers_dir.is_dir():
        logger.debug(f"Covers directory {covers_dir} does not exist")
        return []

    images = set()
    for pattern in toolchain.cover_patterns:
        images.update(path for path in covers_dir.rglob(pattern) if path.is_file())
    return sorted(images)
