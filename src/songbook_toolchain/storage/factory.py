"""
Factory for creating storage instances.
"""

import logging
from pathlib import Path
from typing import Literal, Optional, Union

from .base import DataStorage
from .json_storage import JsonStorage
from .parquet_storage import ParquetStorage

logger = logging.getLogger(__name__)

_SUFFIX_FORMATS = {
    ".parquet": "parquet",
    ".pq": "parquet",
    ".json": "json",
    ".jsonl": "json",
    ".ndjson": "json",
}


def create_storage(
    format_type: Literal["parquet", "json"] = "parquet",
    compression: Literal["snappy", "gzip", "brotli", "lz4", "zstd"] = "snappy",
) -> DataStorage:
    """
    Create a storage instance based on the specified format type.

    Args:
        format_type: Storage format type ('parquet' or 'json')
        compression: Compression algorithm (for Parquet only)

    Raises:
        ValueError: If an unsupported format type is specified
    """
    if format_type == "parquet":
        logger.debug(f"Creating ParquetStorage with compression: {compression}")
        return ParquetStorage(compression=compression)
    elif format_type == "json":
        logger.debug("Creating JsonStorage")
        return JsonStorage()
    else:
        raise ValueError(f"Unsupported storage format: {format_type}")


def format_for_path(path: Union[str, Path], default: str = "parquet") -> str:
    """Pick the storage format from a file suffix, falling back to ``default``."""
    fmt: Optional[str] = _SUFFIX_FORMATS.get(Path(path).suffix.lower())
    return fmt or default
