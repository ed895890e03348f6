"""
Transcript storage for the songbook_toolchain package.

The log sink transcript can be exported to disk for later inspection:
- Parquet, columnar and compressed (Snappy, Gzip, Brotli, LZ4, Zstd)
- JSON lines, readable with any text tool

Polars is used for the DataFrame conversion and for both file formats.
"""

from .base import DataStorage
from .factory import create_storage, format_for_path
from .json_storage import JsonStorage
from .parquet_storage import ParquetStorage
from .transcript import TRANSCRIPT_SCHEMA, lines_to_dataframe, load_transcript, save_transcript

__all__ = [
    "DataStorage",
    "JsonStorage",
    "ParquetStorage",
    "TRANSCRIPT_SCHEMA",
    "create_storage",
    "format_for_path",
    "lines_to_dataframe",
    "load_transcript",
    "save_transcript",
]
