"""JSON export functionality."""

import json
from collections.abc import Sequence
from typing import Any

from time_ledger.core.models import utc_now
from time_ledger.export_import.base import DEFAULT_TITLE, Exporter, Row


class JSONExporter(Exporter):
    """Export report rows to JSON format."""

    def get_file_extension(self) -> str:
        return ".json"

    def export_rows(self, rows: Sequence[Row], title: str = DEFAULT_TITLE, **kwargs: Any) -> None:
        """Export rows to a JSON file.

        Args:
            rows: Rows to export
            title: Report title
            **kwargs: Additional options
                - indent (int): JSON indentation level (default: 2)
                - include_metadata (bool): Include export metadata (default: True)
        """
        self.ensure_output_path()

        export_data: dict[str, Any] = {"title": title, "rows": list(rows)}

        if kwargs.get("include_metadata", True):
            export_data["metadata"] = {
                "export_date": utc_now().isoformat(),
                "row_count": len(rows),
                "format_version": "1.0",
            }

        indent = kwargs.get("indent", 2)
        with open(self.output_path, "w", encoding="utf-8") as f:
            json.dump(export_data, f, indent=indent, ensure_ascii=False, default=str)
