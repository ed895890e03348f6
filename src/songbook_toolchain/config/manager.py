"""
Configuration management and singleton pattern.

This module provides the main configuration loading and management interface,
implementing a singleton pattern to ensure configuration is loaded only once.
"""

import logging
from pathlib import Path
from typing import Optional

from ..models.config import AppConfig
from ..validation import handle_config_error, ErrorSeverity
from .loader import get_rules_path, load_main_config, load_rules_config
from .validators import (
    validate_engine_config,
    validate_log_level,
    validate_rules_config,
    validate_toolchain_config,
    validate_workspace_config,
)

logger = logging.getLogger(__name__)

# --- Global Singleton for Configuration ---

_CONFIG: Optional[AppConfig] = None

# Default location of the main configuration file, relative to this module.
# Overridden by set_config_path() from the CLI and from tests.
_DEFAULT_CONFIG_FILE_PATH = Path(__file__).parent.parent.parent.parent / "conf" / "config.toml"
_CONFIG_FILE_PATH = _DEFAULT_CONFIG_FILE_PATH


def set_config_path(config_path: Path) -> None:
    """
    Set a custom configuration file path.

    The cached configuration is dropped so that the next call to get_config()
    loads from the new path.

    Args:
        config_path: Path to the main config.toml file
    """
    global _CONFIG_FILE_PATH, _CONFIG
    _CONFIG_FILE_PATH = Path(config_path)
    _CONFIG = None
    logger.info(f"Configuration path set to: {config_path}")


def clear_config_cache() -> None:
    """Clear the cached configuration, forcing a reload on next access."""
    global _CONFIG
    _CONFIG = None
    logger.debug("Configuration cache cleared")


def load_config(config_path: Path) -> AppConfig:
    """
    Load the complete application configuration from TOML files.

    Args:
        config_path: Path to the main config.toml file

    Returns:
        Fully validated AppConfig instance

    Raises:
        FileNotFoundError: If configuration files are missing
        ValidationError: If configuration validation fails
        tomllib.TOMLDecodeError: If TOML files are malformed
    """
    try:
        main_config_data = load_main_config(config_path)

        engine_config = validate_engine_config(main_config_data.get("engine", {}))
        toolchain_config = validate_toolchain_config(main_config_data.get("toolchain", {}))
        workspace_config = validate_workspace_config(main_config_data.get("workspace", {}))
        log_level = validate_log_level(main_config_data.get("logging", {}).get("level", "INFO"))

        rules_path = get_rules_path(main_config_data, config_path.parent)
        rules_config = validate_rules_config(load_rules_config(rules_path)) if rules_path else []

        app_config = AppConfig(
            engine=engine_config,
            toolchain=toolchain_config,
            workspace=workspace_config,
            rules=rules_config,
            log_level=log_level,
        )

        logger.info(f"Successfully loaded configuration with {len(rules_config)} classification rules")
        return app_config

    except FileNotFoundError as e:
        handle_config_error(
            error=e,
            context="loading configuration file",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise
    except Exception as e:
        handle_config_error(
            error=e,
            context="processing configuration",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise


def get_config() -> AppConfig:
    """
    Get the global application configuration, loading it if necessary.

    When no path was set and the bundled default file is absent (for example
    in an installed package), the built-in defaults are used.

    Returns:
        The singleton AppConfig instance
    """
    global _CONFIG
    if _CONFIG is None:
        if _CONFIG_FILE_PATH == _DEFAULT_CONFIG_FILE_PATH and not _CONFIG_FILE_PATH.exists():
            logger.warning(f"No configuration file at {_CONFIG_FILE_PATH}, using built-in defaults")
            _CONFIG = AppConfig()
        else:
            _CONFIG = load_config(_CONFIG_FILE_PATH)
    return _CONFIG


def is_config_loaded() -> bool:
    """Check if configuration has been loaded and cached."""
    return _CONFIG is not None


def get_config_info() -> dict:
    """
    Get information about the current configuration state.

    Returns:
        Dictionary with configuration metadata
    """
    return {
        "config_loaded": is_config_loaded(),
        "config_path": str(_CONFIG_FILE_PATH),
        "rules_count": len(_CONFIG.rules) if _CONFIG else 0,
    }
