"""
Configuration validation utilities.

This module provides validation functions for each configuration table:
engine behaviour, toolchain programs, workspace layout and line
classification rules.
"""

import logging
from typing import Any, Dict, List

from ..models.config import EngineConfig, RuleConfig, ToolchainConfig, WorkspaceConfig
from ..validation import (
    ValidationError,
    validate_enum_choice,
    validate_exit_codes,
    validate_non_empty_string,
    validate_positive_float,
    validate_positive_integer,
    validate_regex_pattern,
    validate_string_list,
)

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
SEVERITIES = ["error", "warning", "info"]
MATCH_TYPES = ["exact", "prefix", "contains", "regex", "in_list"]


def _validate_bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a boolean", field_name=field_name, value=value)
    return value


def validate_engine_config(engine_data: Dict[str, Any]) -> EngineConfig:
    """
    Validate and create an EngineConfig from the raw `[engine]` table.

    Raises:
        ValidationError: If validation fails
    """
    defaults = EngineConfig()
    try:
        cancel_grace_timeout = validate_positive_float(
            engine_data.get("cancel_grace_timeout", defaults.cancel_grace_timeout),
            min_value=0.0,
            max_value=300.0,
            field_name="engine.cancel_grace_timeout",
        )

        kill_timeout = validate_positive_float(
            engine_data.get("kill_timeout", defaults.kill_timeout),
            min_value=0.1,
            max_value=60.0,
            field_name="engine.kill_timeout",
        )

        merge_stderr = _validate_bool(
            engine_data.get("merge_stderr", defaults.merge_stderr), "engine.merge_stderr"
        )

        output_encoding = validate_non_empty_string(
            engine_data.get("output_encoding", defaults.output_encoding),
            field_name="engine.output_encoding",
        )

        resize_failure_policy = validate_enum_choice(
            engine_data.get("resize_failure_policy", defaults.resize_failure_policy),
            valid_choices=["continue", "stop"],
            field_name="engine.resize_failure_policy",
        )

        transcript_format = validate_enum_choice(
            engine_data.get("transcript_format", defaults.transcript_format),
            valid_choices=["parquet", "json"],
            field_name="engine.transcript_format",
        )

        transcript_compression = validate_enum_choice(
            engine_data.get("transcript_compression", defaults.transcript_compression),
            valid_choices=["snappy", "gzip", "brotli", "lz4", "zstd"],
            field_name="engine.transcript_compression",
        )

        return EngineConfig(
            cancel_grace_timeout=cancel_grace_timeout,
            kill_timeout=kill_timeout,
            merge_stderr=merge_stderr,
            output_encoding=output_encoding,
            resize_failure_policy=resize_failure_policy,
            transcript_format=transcript_format,
            transcript_compression=transcript_compression,
        )

    except ValidationError as e:
        logger.error(f"Engine configuration validation failed: {e}")
        raise


def validate_toolchain_config(toolchain_data: Dict[str, Any]) -> ToolchainConfig:
    """
    Validate and create a ToolchainConfig from the raw `[toolchain]` table.

    Every key is optional; missing keys keep the defaults of ToolchainConfig.

    Raises:
        ValidationError: If validation fails
    """
    defaults = ToolchainConfig()

    def program(key: str) -> str:
        return validate_non_empty_string(
            toolchain_data.get(key, getattr(defaults, key)), field_name=f"toolchain.{key}"
        )

    def arguments(key: str, allow_empty: bool = True) -> List[str]:
        return validate_string_list(
            toolchain_data.get(key, getattr(defaults, key)),
            field_name=f"toolchain.{key}",
            allow_empty=allow_empty,
        )

    try:
        default_remote = toolchain_data.get("default_remote", defaults.default_remote)
        if not isinstance(default_remote, str):
            raise ValidationError(
                "toolchain.default_remote must be a string",
                field_name="toolchain.default_remote",
                value=default_remote,
            )

        environment = toolchain_data.get("environment", {})
        if not isinstance(environment, dict):
            raise ValidationError(
                "toolchain.environment must be a table of strings",
                field_name="toolchain.environment",
                value=environment,
            )
        environment = {str(key): str(value) for key, value in environment.items()}

        clone_args = arguments("clone_args", allow_empty=False)
        if not any("{remote}" in arg for arg in clone_args):
            raise ValidationError(
                "toolchain.clone_args must contain a '{remote}' placeholder",
                field_name="toolchain.clone_args",
                value=clone_args,
            )

        resize_args = arguments("resize_args", allow_empty=False)
        if not any("{image}" in arg for arg in resize_args):
            raise ValidationError(
                "toolchain.resize_args must contain an '{image}' placeholder",
                field_name="toolchain.resize_args",
                value=resize_args,
            )

        return ToolchainConfig(
            build_tool=program("build_tool"),
            clean_target=program("clean_target"),
            vcs_tool=program("vcs_tool"),
            clone_args=clone_args,
            update_args=arguments("update_args", allow_empty=False),
            default_remote=default_remote.strip(),
            snapshot_marker=program("snapshot_marker"),
            image_tool=program("image_tool"),
            resize_args=resize_args,
            covers_dir=program("covers_dir"),
            cover_patterns=arguments("cover_patterns", allow_empty=False),
            lint_tool=program("lint_tool"),
            lint_args=arguments("lint_args"),
            lint_issues_exit_codes=validate_exit_codes(
                toolchain_data.get("lint_issues_exit_codes", defaults.lint_issues_exit_codes),
                field_name="toolchain.lint_issues_exit_codes",
            ),
            version_args=arguments("version_args"),
            environment=environment,
        )

    except ValidationError as e:
        logger.error(f"Toolchain configuration validation failed: {e}")
        raise


def validate_workspace_config(workspace_data: Dict[str, Any]) -> WorkspaceConfig:
    """
    Validate and create a WorkspaceConfig from the raw `[workspace]` table.

    Raises:
        ValidationError: If validation fails
    """
    defaults = WorkspaceConfig()
    try:
        songbook_extension = validate_non_empty_string(
            workspace_data.get("songbook_extension", defaults.songbook_extension),
            field_name="workspace.songbook_extension",
        )
        if not songbook_extension.startswith("."):
            raise ValidationError(
                "workspace.songbook_extension must start with '.'",
                field_name="workspace.songbook_extension",
                value=songbook_extension,
            )

        return WorkspaceConfig(
            build_files=validate_string_list(
                workspace_data.get("build_files", defaults.build_files),
                field_name="workspace.build_files",
                allow_empty=False,
            ),
            required_entries=validate_string_list(
                workspace_data.get("required_entries", defaults.required_entries),
                field_name="workspace.required_entries",
            ),
            optional_entries=validate_string_list(
                workspace_data.get("optional_entries", defaults.optional_entries),
                field_name="workspace.optional_entries",
            ),
            songbook_extension=songbook_extension,
        )

    except ValidationError as e:
        logger.error(f"Workspace configuration validation failed: {e}")
        raise


def validate_log_level(value: Any) -> str:
    return validate_enum_choice(
        value, valid_choices=LOG_LEVELS, field_name="logging.level", case_sensitive=False
    )


def validate_rules_config(rules_data: List[Dict[str, Any]]) -> List[RuleConfig]:
    """
    Validate and create RuleConfig instances from raw configuration data.

    Args:
        rules_data: List of raw rule configurations from TOML

    Returns:
        List of validated RuleConfig instances, sorted by descending priority

    Raises:
        ValidationError: If validation fails
    """
    rules_config = []

    for i, rule_data in enumerate(rules_data):
        try:
            priority = validate_positive_integer(
                rule_data.get("priority", 0),
                min_value=1,
                max_value=10000,
                field_name=f"rules[{i}].priority",
            )

            severity = validate_enum_choice(
                rule_data.get("severity", ""),
                valid_choices=SEVERITIES,
                field_name=f"rules[{i}].severity",
                case_sensitive=False,
            )

            match_type = validate_enum_choice(
                rule_data.get("match_type", ""),
                valid_choices=MATCH_TYPES,
                field_name=f"rules[{i}].match_type",
            )

            patterns = rule_data.get("patterns")
            if patterns is None:
                raise ValidationError(f"rules[{i}]: missing 'patterns' field")

            if match_type == "in_list":
                if isinstance(patterns, str):
                    patterns = [patterns]
                patterns = validate_string_list(
                    patterns, field_name=f"rules[{i}].patterns", allow_empty=False
                )
            else:
                if isinstance(patterns, list):
                    if len(patterns) != 1:
                        raise ValidationError(
                            f"rules[{i}]: match_type '{match_type}' requires a single pattern, not a list"
                        )
                    patterns = patterns[0]
                patterns = validate_non_empty_string(patterns, field_name=f"rules[{i}].patterns")
                if match_type == "regex":
                    validate_regex_pattern(patterns, field_name=f"rules[{i}].patterns")

            tool = rule_data.get("tool")
            if tool is not None:
                tool = validate_non_empty_string(tool, field_name=f"rules[{i}].tool")

            rules_config.append(
                RuleConfig(
                    priority=priority,
                    severity=severity,
                    match_type=match_type,
                    patterns=patterns,
                    tool=tool,
                    comment=rule_data.get("comment", ""),
                )
            )

        except ValidationError as e:
            logger.error(f"Rule configuration validation failed: {e}")
            raise

    rules_config.sort(key=lambda rule: rule.priority, reverse=True)
    return rules_config
