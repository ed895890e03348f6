"""
Configuration data models.

This module contains the configuration structures for the orchestration
engine, the external toolchain, the songbook workspace layout and the
transcript line classification rules.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union


@dataclass
class EngineConfig:
    """
    Behaviour of the orchestration engine, loaded from `[engine]` in `config.toml`.
    """

    # Seconds to wait after SIGTERM before escalating to SIGKILL on cancel.
    cancel_grace_timeout: float = 3.0
    # Seconds to wait for the process tree to disappear after SIGKILL.
    kill_timeout: float = 2.0
    # Merge stderr into stdout so the transcript keeps exact emission order.
    merge_stderr: bool = True
    # Encoding used to decode process output; undecodable bytes are replaced.
    output_encoding: str = "utf-8"
    # "continue" keeps resizing the remaining covers after a failure, "stop" aborts the batch.
    resize_failure_policy: str = "continue"
    # Format used when a transcript is exported ("parquet" or "json").
    transcript_format: str = "parquet"
    # Parquet compression used for exported transcripts.
    transcript_compression: str = "snappy"


@dataclass
class ToolchainConfig:
    """
    External program names and argument templates, loaded from `[toolchain]`.

    Argument templates may contain `{remote}`, `{directory}` and `{image}`
    placeholders which are substituted per invocation.
    """

    # Build tool used for the clean and compile targets.
    build_tool: str = "make"
    clean_target: str = "clean"

    # Version-control client used to fetch the songbook sources.
    vcs_tool: str = "git"
    clone_args: List[str] = field(default_factory=lambda: ["clone", "{remote}", "{directory}"])
    update_args: List[str] = field(default_factory=lambda: ["pull"])
    default_remote: str = ""
    # Entry whose presence marks a working directory as an existing snapshot.
    snapshot_marker: str = ".git"

    # Image tool invoked once per cover image.
    image_tool: str = "convert"
    resize_args: List[str] = field(default_factory=lambda: ["{image}", "-resize", "128x128>", "{image}"])
    covers_dir: str = "img"
    cover_patterns: List[str] = field(default_factory=lambda: ["*.jpg", "*.jpeg", "*.png"])

    # LaTeX checking script run against the song corpus.
    lint_tool: str = "python3"
    lint_args: List[str] = field(default_factory=lambda: ["utils/latex-preprocessing.py"])
    # Exit codes meaning "the checker ran and found issues".
    lint_issues_exit_codes: List[int] = field(default_factory=lambda: [1])

    # Arguments used to probe a tool for its version.
    version_args: List[str] = field(default_factory=lambda: ["--version"])
    # Environment overrides applied to every invocation.
    environment: Dict[str, str] = field(default_factory=dict)


@dataclass
class WorkspaceConfig:
    """
    Expected layout of a songbook working directory, loaded from `[workspace]`.
    """

    # Any one of these satisfies the build tool.
    build_files: List[str] = field(default_factory=lambda: ["makefile", "Makefile", "GNUmakefile"])
    # Missing entries make the workspace invalid.
    required_entries: List[str] = field(default_factory=lambda: ["songbook.py", "songs", "img"])
    # Missing entries only produce a warning.
    optional_entries: List[str] = field(default_factory=lambda: ["lilypond", "utils"])
    songbook_extension: str = ".sb"


@dataclass
class RuleConfig:
    """
    Classification rule for transcript lines, loaded from `rules.toml`.
    """

    # Priority level for the rule (higher numbers processed first).
    priority: int
    # Severity assigned to matching lines ("error", "warning" or "info").
    severity: str
    # The type of match to perform ('exact', 'prefix', 'contains', 'regex', 'in_list').
    match_type: str
    # A string for exact/prefix/contains/regex, a list for in_list.
    patterns: Union[str, List[str]] = ""
    # Optional tool name ("make", "git", ...) restricting the rule to its output.
    tool: Optional[str] = None
    # Optional comment describing the rule.
    comment: str = ""


@dataclass
class AppConfig:
    """
    The root configuration object that aggregates all loaded settings.
    """

    engine: EngineConfig = field(default_factory=EngineConfig)
    toolchain: ToolchainConfig = field(default_factory=ToolchainConfig)
    workspace: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    # Line classification rules, sorted by priority.
    rules: List[RuleConfig] = field(default_factory=list)
    # Default logging level for the command-line interface.
    log_level: str = "INFO"
