"""
Abstract base class for transcript storage backends.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union

import polars as pl


class DataStorage(ABC):
    """Interface shared by the storage backends."""

    # Conventional file suffix, including the dot
    extension: str = ""

    @abstractmethod
    def save_dataframe(self, df: pl.DataFrame, path: Union[str, Path]) -> None:
        """
        Save a Polars DataFrame to the specified path.

        Args:
            df: Polars DataFrame to save
            path: File path to save to
        """

    @abstractmethod
    def load_dataframe(self, path: Union[str, Path], columns: Optional[List[str]] = None) -> pl.DataFrame:
        """
        Load a Polars DataFrame from the specified path.

        Args:
            path: File path to load from
            columns: Optional list of columns to load

        Returns:
            Loaded Polars DataFrame
        """

    def file_exists(self, path: Union[str, Path]) -> bool:
        return Path(path).exists()

    def get_file_size(self, path: Union[str, Path]) -> int:
        """Size of a file in bytes, 0 if it does not exist."""
        try:
            return Path(path).stat().st_size
        except FileNotFoundError:
            return 0
