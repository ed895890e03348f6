"""
Toolchain availability probe.

Runs each configured program with its version arguments and reports whether
it is installed and which version it claims to be.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from ..models.config import ToolchainConfig
from .commands import resolve_program, run_command

logger = logging.getLogger(__name__)


@dataclass
class ToolStatus:
    """Availability of one external tool."""
    role: str
    program: str
    path: Optional[str] = None
    version: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.path is not None


def get_tool_version(program: str, version_args) -> Optional[str]:
    """
    Return the first non-empty line printed by ``program <version_args>``.

    Some tools print their version on stderr, so both streams are checked.
    Returns None if the command fails.
    """
    return_code, stdout, stderr = run_command([program, *version_args])
    if return_code != 0:
        logger.debug(f"Version probe for {program} exited with {return_code}")
        return None
    for line in (stdout + "\n" + stderr).splitlines():
        if line.strip():
            return line.strip()
    return None


def probe_toolchain(toolchain: ToolchainConfig) -> Dict[str, ToolStatus]:
    """
    Check every configured tool.

    Returns:
        Mapping of role ("build", "vcs", "image", "lint") to ToolStatus
    """
    roles = {
        "build": toolchain.build_tool,
        "vcs": toolchain.vcs_tool,
        "image": toolchain.image_tool,
        "lint": toolchain.lint_tool,
    }

    statuses = {}
    for role, program in roles.items():
        status = ToolStatus(role=role, program=program, path=resolve_program(program))
        if status.available and toolchain.version_args:
            status.version = get_tool_version(status.path, toolchain.version_args)
        if status.available:
            logger.info(f"{role} tool '{program}' found at {status.path} ({status.version or 'unknown version'})")
        else:
            logger.warning(f"{role} tool '{program}' not found")
        statuses[role] = status
    return statuses
