"""
Configuration management for the songbook_toolchain package.

This module provides a clean interface for loading, validating, and accessing
configuration data from TOML files with singleton pattern management.
"""

# Main configuration interface
from .manager import (
    clear_config_cache,
    get_config,
    get_config_info,
    is_config_loaded,
    load_config,
    set_config_path,
)

# For advanced usage - direct access to loaders and validators
from .loader import (
    get_rules_path,
    load_main_config,
    load_rules_config,
    load_toml_file,
)
from .validators import (
    validate_engine_config,
    validate_log_level,
    validate_rules_config,
    validate_toolchain_config,
    validate_workspace_config,
)

__all__ = [
    # Main interface
    "get_config",
    "load_config",
    "set_config_path",
    "clear_config_cache",
    "is_config_loaded",
    "get_config_info",
    # Advanced interface
    "load_toml_file",
    "load_main_config",
    "load_rules_config",
    "get_rules_path",
    "validate_engine_config",
    "validate_log_level",
    "validate_rules_config",
    "validate_toolchain_config",
    "validate_workspace_config",
]
