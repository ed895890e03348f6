"""
Conversion between log sink transcripts and DataFrames on disk.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

import polars as pl

from ..models.runtime import LogLine
from .factory import create_storage, format_for_path

logger = logging.getLogger(__name__)

TRANSCRIPT_SCHEMA = {
    "seq": pl.Int64,
    "timestamp": pl.Float64,
    "task_id": pl.Utf8,
    "task_label": pl.Utf8,
    "handle_id": pl.Utf8,
    "stream": pl.Utf8,
    "severity": pl.Utf8,
    "text": pl.Utf8,
}


def lines_to_dataframe(lines: Sequence[LogLine]) -> pl.DataFrame:
    """One row per transcript line, in sink order."""
    rows = [
        {
            "seq": line.seq,
            "timestamp": line.timestamp,
            "task_id": line.task_id,
            "task_label": line.task_label,
            "handle_id": line.handle_id,
            "stream": line.stream,
            "severity": line.severity.value,
            "text": line.text,
        }
        for line in lines
    ]
    return pl.DataFrame(rows, schema=TRANSCRIPT_SCHEMA)


def save_transcript(
    lines: Sequence[LogLine],
    path: Union[str, Path],
    format_type: Optional[str] = None,
    compression: str = "snappy",
) -> Path:
    """
    Write transcript lines to ``path``.

    Args:
        lines: Lines from a LogSink
        path: Destination file
        format_type: 'parquet' or 'json'; inferred from the suffix when omitted
        compression: Parquet compression algorithm

    Returns:
        The path written
    """
    path = Path(path)
    format_type = format_type or format_for_path(path)
    storage = create_storage(format_type, compression)
    storage.save_dataframe(lines_to_dataframe(lines), path)
    logger.info(f"Saved {len(lines)} transcript lines to {path} ({format_type})")
    return path


def load_transcript(path: Union[str, Path], format_type: Optional[str] = None) -> pl.DataFrame:
    """Read a transcript written by `save_transcript`."""
    format_type = format_type or format_for_path(path)
    return create_storage(format_type).load_dataframe(path)
