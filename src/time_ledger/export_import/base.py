"""Base class for report exporters."""

import asyncio
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import Any

Row = dict[str, Any]

DEFAULT_TITLE = "Time Tracking Report"


def default_filename(title: str, extension: str) -> str:
    """File name derived from a report title.

    Example:
        >>> default_filename("Time Tracking Report", ".xlsx")
        'time_tracking_report.xlsx'
    """
    return re.sub(r"\s+", "_", title.strip().lower()) + extension


def row_columns(rows: Sequence[Row]) -> list[str]:
    """Column names in first-seen order across all rows."""
    columns: list[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    return columns


class Exporter(ABC):
    """Base class for all exporters.

    Exporters receive rows that are already flat and ordered; they only
    decide how to lay them out in a file.
    """

    def __init__(self, output_path: Path):
        """Initialize exporter.

        Args:
            output_path: Path where exported data will be written
        """
        self.output_path = Path(output_path)

    @abstractmethod
    def export_rows(self, rows: Sequence[Row], title: str = DEFAULT_TITLE, **kwargs: Any) -> None:
        """Write rows to the output file.

        Args:
            rows: Flat records with the same keys, in display order
            title: Report title
            **kwargs: Format-specific options
        """
        pass

    async def export_rows_async(
        self, rows: Sequence[Row], title: str = DEFAULT_TITLE, **kwargs: Any
    ) -> Path:
        """Run export_rows in a worker thread.

        Returns:
            Path of the written file
        """
        await asyncio.to_thread(self.export_rows, list(rows), title, **kwargs)
        return self.output_path

    @abstractmethod
    def get_file_extension(self) -> str:
        """Get the file extension for this format (e.g., '.json', '.xlsx').

        Returns:
            File extension including the dot
        """
        pass

    def ensure_output_path(self) -> None:
        """Ensure the output path's parent directory exists."""
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
