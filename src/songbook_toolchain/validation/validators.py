"""
Validation functions for configuration values and task options.
"""

import re
from pathlib import PurePath
from typing import Any, List, Optional

from .exceptions import ConfigurationError, ValidationError

# Remote references accepted by the version-control client: URLs with a scheme,
# scp-like "user@host:path" references, or plain local paths.
_REMOTE_PATTERN = re.compile(r'^(?:[a-zA-Z][a-zA-Z0-9+.-]*://\S+|[\w.-]+@[\w.-]+:\S+|[/.~]\S*)$')


def validate_positive_integer(
    value: Any,
    min_value: int = 1,
    max_value: Optional[int] = None,
    field_name: str = "value"
) -> int:
    """
    Validate that a value is an integer within the given bounds.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated integer value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        int_value = int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    if int_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and int_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    return int_value


def validate_positive_float(
    value: Any,
    min_value: float = 0.0,
    max_value: Optional[float] = None,
    field_name: str = "value"
) -> float:
    """
    Validate that a value is a number within the given bounds.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated float value

    Raises:
        ValidationError: If validation fails
    """
    try:
        float_value = float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    if float_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and float_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    return float_value


def validate_non_empty_string(value: Any, field_name: str = "value") -> str:
    """Validate that a value is a string with at least one non-blank character."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=value
        )
    return value.strip()


def validate_string_list(
    value: Any,
    field_name: str = "value",
    allow_empty: bool = True
) -> List[str]:
    """
    Validate a list of strings, as used for argument templates and patterns.

    Args:
        value: Value to validate
        field_name: Name of the field being validated
        allow_empty: Whether an empty list is acceptable

    Returns:
        The validated list (a new list object)

    Raises:
        ValidationError: If the value is not a list of strings
    """
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValidationError(
            f"{field_name} must be a list of strings, got {value!r}",
            field_name=field_name,
            value=value
        )
    if not allow_empty and not value:
        raise ValidationError(
            f"{field_name} must not be empty",
            field_name=field_name,
            value=value
        )
    return list(value)


def validate_exit_codes(value: Any, field_name: str = "exit_codes") -> List[int]:
    """Validate a list of non-zero process exit codes."""
    if not isinstance(value, list):
        raise ValidationError(
            f"{field_name} must be a list of integers, got {value!r}",
            field_name=field_name,
            value=value
        )
    return [
        validate_positive_integer(code, min_value=1, max_value=255, field_name=f"{field_name} item {i}")
        for i, code in enumerate(value)
    ]


def validate_enum_choice(
    value: Any,
    valid_choices: List[str],
    field_name: str = "value",
    case_sensitive: bool = True
) -> str:
    """
    Validate that a value is one of the allowed choices.

    Args:
        value: Value to validate
        valid_choices: List of allowed choices
        field_name: Name of the field being validated
        case_sensitive: Whether the comparison should be case-sensitive

    Returns:
        Validated choice, in the spelling used by ``valid_choices``

    Raises:
        ValidationError: If value is not in choices
    """
    str_value = str(value)

    if case_sensitive:
        if str_value not in valid_choices:
            raise ValidationError(
                f"{field_name} must be one of {valid_choices}, got {value}",
                field_name=field_name,
                value=value
            )
        return str_value

    lower_choices = [choice.lower() for choice in valid_choices]
    lower_value = str_value.lower()
    if lower_value not in lower_choices:
        raise ValidationError(
            f"{field_name} must be one of {valid_choices}, got {value}",
            field_name=field_name,
            value=value
        )
    return valid_choices[lower_choices.index(lower_value)]


def validate_regex_pattern(pattern: str, field_name: str = "regex_pattern") -> str:
    """
    Validate regex pattern format.

    Args:
        pattern: Regex pattern to validate
        field_name: Name of the field being validated

    Returns:
        Validated pattern

    Raises:
        ValidationError: If pattern is invalid
    """
    if not pattern or not isinstance(pattern, str):
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=pattern
        )

    try:
        re.compile(pattern)
    except re.error as e:
        raise ValidationError(
            f"{field_name} is not a valid regex pattern: {e}",
            field_name=field_name,
            value=pattern
        )

    return pattern


def validate_target_name(target: Any, field_name: str = "target") -> str:
    """
    Validate a build target name.

    Targets are plain file names handed to the build tool; directory parts
    and option-like names are rejected.

    Raises:
        ConfigurationError: If the target is empty or malformed
    """
    if not isinstance(target, str) or not target.strip():
        raise ConfigurationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=target
        )
    target = target.strip()
    if target.startswith("-"):
        raise ConfigurationError(
            f"{field_name} must not start with '-': {target}",
            field_name=field_name,
            value=target
        )
    if PurePath(target).name != target or "/" in target or "\\" in target:
        raise ConfigurationError(
            f"{field_name} must be a file name without directory parts: {target}",
            field_name=field_name,
            value=target
        )
    return target


def validate_remote(remote: Any, field_name: str = "remote") -> str:
    """
    Validate a remote repository reference.

    Raises:
        ConfigurationError: If the reference is missing or not recognised
    """
    if not isinstance(remote, str) or not remote.strip():
        raise ConfigurationError(
            f"{field_name} is required to download a songbook snapshot",
            field_name=field_name,
            value=remote
        )
    remote = remote.strip()
    if not _REMOTE_PATTERN.match(remote):
        raise ConfigurationError(
            f"{field_name} is not a valid repository reference: {remote}",
            field_name=field_name,
            value=remote
        )
    return remote
