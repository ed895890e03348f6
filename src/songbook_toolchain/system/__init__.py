"""
System interaction utilities.

This module provides program lookup and short command execution, songbook
working directory checks, and the toolchain availability probe.
"""

# Command execution
from .commands import (
    check_tool_installed,
    resolve_program,
    run_command,
)

# Toolchain probe
from .toolchain import ToolStatus, get_tool_version, probe_toolchain

# Working directory checks
from .workspace import (
    WorkspaceReport,
    WorkspaceStatus,
    check_workspace,
    find_build_file,
    find_cover_images,
    is_snapshot,
    target_for_songbook,
)

__all__ = [
    # Commands
    "check_tool_installed",
    "resolve_program",
    "run_command",
    # Toolchain
    "ToolStatus",
    "get_tool_version",
    "probe_toolchain",
    # Workspace
    "WorkspaceReport",
    "WorkspaceStatus",
    "check_workspace",
    "find_build_file",
    "find_cover_images",
    "is_snapshot",
    "target_for_songbook",
]
