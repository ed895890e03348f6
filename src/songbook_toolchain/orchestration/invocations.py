"""
Translation of build tasks into concrete process invocations.

Every check that can reject a task without running anything happens here, so
a task that fails configuration never creates a process handle.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, List, Union

from ..models.config import AppConfig, ToolchainConfig
from ..models.runtime import Invocation
from ..models.tasks import BuildTask, TaskKind
from ..system.workspace import find_build_file, find_cover_images, is_snapshot
from ..validation import ConfigurationError, validate_remote, validate_target_name

logger = logging.getLogger(__name__)


def _substitute(args: List[str], **values: str) -> List[str]:
    """Replace ``{name}`` placeholders in each argument."""
    substituted = []
    for arg in args:
        for name, value in values.items():
            arg = arg.replace("{" + name + "}", value)
        substituted.append(arg)
    return substituted


def _require_directory(working_dir: Path) -> None:
    if not working_dir.is_dir():
        raise ConfigurationError(
            f"Working directory does not exist: {working_dir}",
            field_name="working_dir",
            value=str(working_dir),
        )


def _environment(toolchain: ToolchainConfig) -> Dict[str, str]:
    return dict(toolchain.environment)


def _clean_invocations(task: BuildTask, working_dir: Path, config: AppConfig) -> List[Invocation]:
    _require_directory(working_dir)
    toolchain = config.toolchain
    return [Invocation(toolchain.build_tool, [toolchain.clean_target], working_dir, _environment(toolchain))]


def _compile_invocations(task: BuildTask, working_dir: Path, config: AppConfig) -> List[Invocation]:
    target = validate_target_name(task.option("target"))
    _require_directory(working_dir)
    if find_build_file(working_dir, config.workspace) is None:
        raise ConfigurationError(
            f"No build file ({', '.join(config.workspace.build_files)}) in {working_dir}",
            field_name="working_dir",
            value=str(working_dir),
        )
    toolchain = config.toolchain
    return [Invocation(toolchain.build_tool, [target], working_dir, _environment(toolchain), subject=target)]


def _download_invocations(task: BuildTask, working_dir: Path, config: AppConfig) -> List[Invocation]:
    toolchain = config.toolchain

    # An existing snapshot is updated in place
    if working_dir.is_dir() and is_snapshot(working_dir, toolchain):
        logger.debug(f"{working_dir} holds a snapshot, updating it")
        return [Invocation(toolchain.vcs_tool, list(toolchain.update_args), working_dir, _environment(toolchain))]

    remote = validate_remote(task.option("remote") or toolchain.default_remote)
    if working_dir.exists():
        if not working_dir.is_dir():
            raise ConfigurationError(
                f"Download destination is not a directory: {working_dir}",
                field_name="working_dir",
                value=str(working_dir),
            )
        if any(working_dir.iterdir()):
            raise ConfigurationError(
                f"Download destination is not empty and holds no snapshot: {working_dir}",
                field_name="working_dir",
                value=str(working_dir),
            )

    parent = working_dir.resolve().parent
    _require_directory(parent)
    args = _substitute(toolchain.clone_args, remote=remote, directory=str(working_dir.resolve()))
    return [Invocation(toolchain.vcs_tool, args, parent, _environment(toolchain), subject=remote)]


def _resize_invocations(task: BuildTask, working_dir: Path, config: AppConfig) -> List[Invocation]:
    _require_directory(working_dir)
    toolchain = config.toolchain
    invocations = []
    for image in find_cover_images(working_dir, toolchain):
        relative = str(image.relative_to(working_dir))
        invocations.append(Invocation(
            toolchain.image_tool,
            _substitute(toolchain.resize_args, image=relative),
            working_dir,
            _environment(toolchain),
            subject=relative,
        ))
    return invocations


def _lint_invocations(task: BuildTask, working_dir: Path, config: AppConfig) -> List[Invocation]:
    _require_directory(working_dir)
    toolchain = config.toolchain
    return [Invocation(toolchain.lint_tool, list(toolchain.lint_args), working_dir, _environment(toolchain))]


_BUILDERS: Dict[TaskKind, Callable[[BuildTask, Path, AppConfig], List[Invocation]]] = {
    TaskKind.CLEAN: _clean_invocations,
    TaskKind.COMPILE: _compile_invocations,
    TaskKind.DOWNLOAD: _download_invocations,
    TaskKind.RESIZE_COVERS: _resize_invocations,
    TaskKind.LATEX_LINT: _lint_invocations,
}


def build_invocations(task: BuildTask, working_dir: Union[str, Path], config: AppConfig) -> List[Invocation]:
    """
    Materialise the process invocations a task will run, in order.

    The result depends only on the task, the working directory contents and
    the configuration. Resizing covers yields one invocation per image and
    may yield none.

    Raises:
        ConfigurationError: If the task is unconfirmed, its options are
            invalid or the working directory cannot host it
    """
    if not task.is_ready:
        raise ConfigurationError(
            f"{task.label} must be confirmed before it can run",
            field_name="confirmed",
            value=False,
        )
    invocations = _BUILDERS[task.kind](task, Path(working_dir), config)
    logger.debug(f"{task.label}: {[invocation.command_line() for invocation in invocations]}")
    return invocations
