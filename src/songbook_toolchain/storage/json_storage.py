"""
JSON lines storage implementation using Polars.

One JSON object per transcript line, so the file stays greppable.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import polars as pl

from .base import DataStorage

logger = logging.getLogger(__name__)


class JsonStorage(DataStorage):
    """Human-readable storage for transcripts."""

    extension = ".jsonl"

    def save_dataframe(self, df: pl.DataFrame, path: Union[str, Path]) -> None:
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            df.write_ndjson(path)
            logger.debug(f"Saved DataFrame with {len(df)} rows to {path}")
        except Exception as e:
            logger.error(f"Failed to save DataFrame to {path}: {e}")
            raise

    def load_dataframe(self, path: Union[str, Path], columns: Optional[List[str]] = None) -> pl.DataFrame:
        try:
            df = pl.read_ndjson(path)
            if columns:
                df = df.select(columns)
            logger.debug(f"Loaded DataFrame with {len(df)} rows from {path}")
            return df
        except Exception as e:
            logger.error(f"Failed to load DataFrame from {path}: {e}")
            raise
