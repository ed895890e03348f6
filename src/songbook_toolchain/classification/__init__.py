"""
Transcript line classification for the songbook_toolchain package.

This module assigns severities to process output lines using configurable
rules with caching.
"""

from .classifier import (
    classify_line,
    clear_classification_cache,
    get_cache_stats,
)

__all__ = [
    "classify_line",
    "clear_classification_cache",
    "get_cache_stats",
]
