"""Markdown export functionality."""

from collections.abc import Sequence
from typing import Any

from time_ledger.core.models import utc_now
from time_ledger.export_import.base import DEFAULT_TITLE, Exporter, Row, row_columns


def _cell(value: Any) -> str:
    return str(value if value is not None else "").replace("|", "\\|").replace("\n", " ")


class MarkdownExporter(Exporter):
    """Export report rows to a Markdown table."""

    def get_file_extension(self) -> str:
        return ".md"

    def export_rows(self, rows: Sequence[Row], title: str = DEFAULT_TITLE, **kwargs: Any) -> None:
        """Export rows to a Markdown document.

        Args:
            rows: Rows to export
            title: Document title
            **kwargs: Additional options
                - include_metadata (bool): Add generation date and row count (default: True)
        """
        self.ensure_output_path()

        with open(self.output_path, "w", encoding="utf-8") as f:
            f.write(self._generate_markdown(rows, title, kwargs.get("include_metadata", True)))

    def _generate_markdown(self, rows: Sequence[Row], title: str, include_metadata: bool) -> str:
        lines = [f"# {title}\n"]

        if include_metadata:
            lines.append(f"**Generated:** {utc_now().strftime('%Y-%m-%d %H:%M:%S')} UTC\n")
            lines.append(f"**Rows:** {len(rows)}\n")

        if not rows:
            lines.append("*No data*")
            return "\n".join(lines) + "\n"

        columns = row_columns(rows)
        lines.append("| " + " | ".join(columns) + " |")
        lines.append("|" + "|".join(" --- " for _ in columns) + "|")
        for row in rows:
            lines.append("| " + " | ".join(_cell(row.get(c)) for c in columns) + " |")

        return "\n".join(lines) + "\n"
