"""
Command-line interface for the songbook toolchain.

One sub-command per user action of the songbook client. Tool output is
printed live as it arrives; lifecycle events go to the log. The exit code
is 0 on success, 1 when a task failed and 2 on a configuration error.
"""

import argparse
import logging
import sys
import tomllib
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .. import __version__
from ..classification import classify_line
from ..config import get_config, set_config_path
from ..models.config import AppConfig
from ..models.runtime import LogLine
from ..models.states import LineSeverity, SequenceState, TaskState
from ..models.tasks import BuildTask, clean_task, download_task, latex_lint_task, resize_covers_task
from ..orchestration import LogSink, SignalHandler, TaskRunner, build_pipeline
from ..storage import format_for_path, save_transcript
from ..system import check_workspace, probe_toolchain
from ..validation import ConfigurationError, ValidationError, handle_cli_error

# --- Logging Setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_TASK_FAILED = 1
EXIT_CONFIGURATION_ERROR = 2

_SEVERITY_PREFIX = {
    LineSeverity.INFO: "",
    LineSeverity.WARNING: "warning: ",
    LineSeverity.ERROR: "error: ",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="songbook-toolchain",
        description="Run the songbook build toolchain (make, git, image tool, LaTeX checker).",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-c", "--config", type=Path, help="Path to config.toml.")
    parser.add_argument(
        "-w",
        "--working-dir",
        type=Path,
        help="Songbook working directory. Defaults to the current directory "
             "(the songbook's directory for 'build').",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the log level from the configuration.",
    )
    parser.add_argument("--save-log", type=Path, help="Save the tool output transcript (.parquet or .jsonl).")
    parser.add_argument("-q", "--quiet", action="store_true", help="Do not print tool output.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("check", help="Check the working directory and the installed tools.")
    subparsers.add_parser("clean", help="Remove generated files (make clean).")

    build = subparsers.add_parser("build", help="Clean, then build the PDF for a songbook file.")
    build.add_argument("songbook", type=Path, help="Songbook file (.sb).")

    download = subparsers.add_parser("download", help="Clone or update the songbook sources.")
    download.add_argument("--remote", help="Repository to clone. Defaults to toolchain.default_remote.")

    subparsers.add_parser("resize-covers", help="Resize the album cover images.")
    subparsers.add_parser("lint", help="Run the LaTeX checking script.")

    for name in ("download", "resize-covers", "lint"):
        subparsers.choices[name].add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation.")

    return parser


def _exit_code_for(state: TaskState) -> int:
    if state is TaskState.SUCCEEDED:
        return EXIT_SUCCESS
    if state is TaskState.CONFIGURATION_ERROR:
        return EXIT_CONFIGURATION_ERROR
    return EXIT_TASK_FAILED


def _print_line(line: LogLine) -> None:
    print(f"{_SEVERITY_PREFIX[line.severity]}{line.format()}", flush=True)


def _confirm(args: argparse.Namespace, question: str) -> bool:
    if getattr(args, "yes", False):
        return True
    if not sys.stdin.isatty():
        logger.warning("Confirmation required, rerun with --yes")
        return False
    try:
        answer = input(f"{question} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _run_task(task: BuildTask, working_dir: Path, config: AppConfig, sink: LogSink) -> int:
    result = TaskRunner(working_dir, config=config, log_sink=sink).execute(task)
    print(f"{task.label}: {result.message}")
    if result.lint_outcome is not None:
        print(f"{task.label}: {result.lint_outcome.value.replace('_', ' ')}")
    return _exit_code_for(result.state)


def _command_check(args, config: AppConfig, sink: LogSink) -> int:
    working_dir = args.working_dir or Path.cwd()
    report = check_workspace(working_dir, config.workspace)
    print(f"{working_dir}: {report.status.value}: {report.message}")

    statuses = probe_toolchain(config.toolchain)
    for status in statuses.values():
        detail = (status.version or "unknown version") if status.available else "not found"
        print(f"{status.role:<6} {status.program}: {detail}")

    if report.usable and statuses["build"].available:
        return EXIT_SUCCESS
    return EXIT_TASK_FAILED


def _command_clean(args, config: AppConfig, sink: LogSink) -> int:
    return _run_task(clean_task(), args.working_dir or Path.cwd(), config, sink)


def _command_build(args, config: AppConfig, sink: LogSink) -> int:
    try:
        sequencer = build_pipeline(args.songbook, args.working_dir, config=config, log_sink=sink)
    except ConfigurationError as e:
        logger.error(f"Cannot build {args.songbook}: {e}")
        return EXIT_CONFIGURATION_ERROR

    result = sequencer.run()
    if result.state is SequenceState.SUCCEEDED:
        print(f"build: succeeded ({result.handles_created} processes)")
        return EXIT_SUCCESS

    failed_step = result.steps[-1] if result.steps else None
    if failed_step is None:
        print(f"build: failed at step {result.failed_index}")
        return EXIT_TASK_FAILED
    print(f"build: failed at step {result.failed_index} ({failed_step.task.label}: {failed_step.message})")
    return _exit_code_for(failed_step.state)


def _command_download(args, config: AppConfig, sink: LogSink) -> int:
    working_dir = args.working_dir or Path.cwd()
    confirmed = _confirm(args, f"Download the songbook sources into {working_dir}?")
    return _run_task(download_task(args.remote).configure(confirmed=confirmed), working_dir, config, sink)


def _command_resize_covers(args, config: AppConfig, sink: LogSink) -> int:
    working_dir = args.working_dir or Path.cwd()
    confirmed = _confirm(args, f"Resize every cover image under {working_dir / config.toolchain.covers_dir}?")
    return _run_task(resize_covers_task().configure(confirmed=confirmed), working_dir, config, sink)


def _command_lint(args, config: AppConfig, sink: LogSink) -> int:
    working_dir = args.working_dir or Path.cwd()
    confirmed = _confirm(args, "Run the LaTeX checker on the songbook sources?")
    return _run_task(latex_lint_task().configure(confirmed=confirmed), working_dir, config, sink)


_COMMANDS: Dict[str, Callable[[argparse.Namespace, AppConfig, LogSink], int]] = {
    "check": _command_check,
    "clean": _command_clean,
    "build": _command_build,
    "download": _command_download,
    "resize-covers": _command_resize_covers,
    "lint": _command_lint,
}


def main_cli(argv: Optional[List[str]] = None) -> None:
    """
    Main command-line entry point.

    Raises:
        SystemExit: Always, with the exit code of the action
    """
    args = build_parser().parse_args(argv)

    try:
        if args.config:
            set_config_path(args.config)
        app_config = get_config()
    except (FileNotFoundError, ValidationError, tomllib.TOMLDecodeError) as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            exit_code=EXIT_CONFIGURATION_ERROR,
            logger=logger,
        )

    logging.getLogger().setLevel(args.log_level or app_config.log_level)

    sink = LogSink(classifier=classify_line)
    if not args.quiet:
        sink.subscribe(_print_line)

    with SignalHandler():
        exit_code = _COMMANDS[args.command](args, app_config, sink)

    if args.save_log:
        try:
            save_transcript(
                sink.lines(),
                args.save_log,
                format_type=format_for_path(args.save_log, app_config.engine.transcript_format),
                compression=app_config.engine.transcript_compression,
            )
        except OSError as e:
            handle_cli_error(error=e, context="saving transcript", exit_code=EXIT_TASK_FAILED, logger=logger)

    sys.exit(exit_code)
