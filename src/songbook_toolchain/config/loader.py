"""
Configuration file loading utilities.

This module handles the low-level loading and parsing of TOML configuration
files: the main config.toml and the rules.toml line classification rules.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..validation import handle_config_error, ErrorSeverity

logger = logging.getLogger(__name__)


def load_toml_file(file_path: Path, description: str = "configuration file") -> Dict[str, Any]:
    """
    Load and parse a TOML file with error handling.

    Args:
        file_path: Path to the TOML file to load
        description: Human-readable description for error messages

    Returns:
        Parsed TOML data as a dictionary

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the file is malformed
    """
    logger.info(f"Loading {description} from: {file_path}")

    if not file_path.exists():
        logger.error(f"{description} not found: {file_path}")
        raise FileNotFoundError(f"{description} not found: {file_path}")

    try:
        with open(file_path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        handle_config_error(
            error=e,
            context=f"parsing {description}",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise


def load_main_config(config_path: Path) -> Dict[str, Any]:
    """Load the main configuration file (config.toml)."""
    return load_toml_file(config_path, "main configuration file")


def load_rules_config(rules_path: Path) -> List[Dict[str, Any]]:
    """
    Load the line classification rules file (rules.toml).

    Args:
        rules_path: Path to the rules.toml file

    Returns:
        List of rule configuration dictionaries
    """
    rules_data = load_toml_file(rules_path, "rules configuration file")
    return rules_data.get("rules", [])


def get_rules_path(main_config_data: Dict[str, Any], config_dir: Path) -> Optional[Path]:
    """
    Resolve the rules file path from the `[paths]` section.

    Relative paths are resolved against the directory of the main config file.
    Returns None when no rules file is configured.
    """
    paths_data = main_config_data.get("paths", {})
    rules_file = paths_data.get("rules_config")
    if not rules_file:
        return None
    rules_path = Path(rules_file).expanduser()
    if not rules_path.is_absolute():
        rules_path = config_dir / rules_path
    return rules_path
