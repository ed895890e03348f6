"""
Command execution and program lookup utilities.

This module provides functions for locating external programs and for running
short-lived commands whose output is captured at once (e.g. version probes).
Long-running toolchain invocations go through the orchestration engine instead.
"""

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


def resolve_program(program: str, cwd: Optional[Path] = None,
                    env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Locate an executable the way the process spawner will.

    Names containing a path separator are resolved against ``cwd`` and must
    point to an executable file. Bare names are looked up on ``PATH``, taken
    from ``env`` when it defines one.

    Args:
        program: Program name or path.
        cwd: Directory relative paths are resolved against.
        env: Environment whose ``PATH`` is searched.

    Returns:
        The resolved path as a string, or None if the program cannot be found.
    """
    if not program:
        return None

    if os.sep in program or (os.altsep and os.altsep in program):
        candidate = Path(program).expanduser()
        if not candidate.is_absolute() and cwd is not None:
            candidate = Path(cwd) / candidate
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
        return None

    search_path = env.get("PATH") if env else None
    return shutil.which(program, path=search_path)


def run_command(
    argv: Sequence[str], cwd: Optional[Path] = None, timeout: Optional[float] = 30.0
) -> Tuple[int, str, str]:
    """Execute a command and capture its output with robust error handling.

    Args:
        argv: Program name followed by its arguments.
        cwd: Working directory path for command execution.
        timeout: Seconds before the command is killed.

    Returns:
        Tuple of (return_code, stdout_string, stderr_string).
        return_code is -1 for execution errors.

    Note:
        Uses UTF-8 encoding with error replacement for robust text handling.
    """
    logger.debug(f"Executing command: {list(argv)} in '{cwd}'")
    try:
        process = subprocess.run(
            list(argv),
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
        return process.returncode, process.stdout, process.stderr
    except FileNotFoundError as e:
        logger.error(f"Command not found: {argv[0]}: {type(e).__name__}: {e}")
        return -1, "", f"Error: Command not found '{argv[0]}'"
    except subprocess.TimeoutExpired:
        logger.error(f"Command timed out after {timeout}s: {argv[0]}")
        return -1, "", f"Error: Command timed out '{argv[0]}'"
    except OSError as e:
        logger.error(f"Unexpected error while running command '{argv[0]}': {type(e).__name__}: {e}", exc_info=True)
        return -1, "", f"An unexpected error occurred: {e}"


def check_tool_installed(program: str) -> bool:
    """Check if a program is available on the system PATH."""
    return resolve_program(program) is not None
