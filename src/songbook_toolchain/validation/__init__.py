"""
Validation and error handling for the songbook_toolchain package.

This module provides input validation and error handling with consistent
error reporting across the application.
"""

from .exceptions import (
    ConfigurationError,
    ErrorSeverity,
    TaskAlreadyRunningError,
    ValidationError,
    handle_cli_error,
    handle_config_error,
    handle_error,
    handle_subprocess_error,
    validate_with_handler,
)

from .validators import (
    validate_enum_choice,
    validate_exit_codes,
    validate_non_empty_string,
    validate_positive_float,
    validate_positive_integer,
    validate_regex_pattern,
    validate_remote,
    validate_string_list,
    validate_target_name,
)

__all__ = [
    # Core functionality
    "ConfigurationError",
    "ErrorSeverity",
    "TaskAlreadyRunningError",
    "ValidationError",
    "handle_cli_error",
    "handle_config_error",
    "handle_error",
    "handle_subprocess_error",
    "validate_with_handler",
    # Validators
    "validate_enum_choice",
    "validate_exit_codes",
    "validate_non_empty_string",
    "validate_positive_float",
    "validate_positive_integer",
    "validate_regex_pattern",
    "validate_remote",
    "validate_string_list",
    "validate_target_name",
]
