"""
Command-line interface for the songbook_toolchain package.

This module provides the main CLI entry point for running toolchain actions.
"""

from .main import build_parser, main_cli

__all__ = [
    "build_parser",
    "main_cli",
]
