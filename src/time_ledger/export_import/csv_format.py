"""CSV export functionality."""

import csv
from collections.abc import Sequence
from typing import Any

from time_ledger.export_import.base import DEFAULT_TITLE, Exporter, Row, row_columns


class CSVExporter(Exporter):
    """Export report rows to a CSV file with a header line."""

    def get_file_extension(self) -> str:
        return ".csv"

    def export_rows(self, rows: Sequence[Row], title: str = DEFAULT_TITLE, **kwargs: Any) -> None:
        """Export rows to CSV. The title is not written; CSV has no place for it.

        Args:
            rows: Rows to export
            title: Report title (unused)
            **kwargs: Additional options
                - delimiter (str): Field delimiter (default: ",")
        """
        self.ensure_output_path()

        with open(self.output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(
                f, fieldnames=row_columns(rows), delimiter=kwargs.get("delimiter", ",")
            )
            writer.writeheader()
            writer.writerows(rows)
