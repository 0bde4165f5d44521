"""Report export for Time Ledger."""

from pathlib import Path

from time_ledger.export_import.base import DEFAULT_TITLE, Exporter, default_filename
from time_ledger.export_import.csv_format import CSVExporter
from time_ledger.export_import.excel_format import ExcelExporter
from time_ledger.export_import.json_format import JSONExporter
from time_ledger.export_import.markdown_format import MarkdownExporter
from time_ledger.export_import.rows import entry_rows, summary_rows

EXPORTERS: dict[str, type[Exporter]] = {
    "json": JSONExporter,
    "csv": CSVExporter,
    "excel": ExcelExporter,
    "markdown": MarkdownExporter,
}

EXTENSIONS = {
    ".json": "json",
    ".csv": "csv",
    ".xlsx": "excel",
    ".md": "markdown",
    ".markdown": "markdown",
}


def detect_format(path: Path) -> str:
    """Export format implied by a file extension.

    Raises:
        ValueError: If the extension is not recognized
    """
    suffix = Path(path).suffix.lower()
    if suffix not in EXTENSIONS:
        raise ValueError(
            f"Cannot detect export format from '{suffix or path}'; "
            f"use one of {', '.join(sorted(EXTENSIONS))}"
        )
    return EXTENSIONS[suffix]


def get_exporter(fmt: str, output_path: Path) -> Exporter:
    """Create the exporter for a format name.

    Raises:
        ValueError: If the format is unknown
    """
    try:
        exporter_class = EXPORTERS[fmt.lower()]
    except KeyError:
        raise ValueError(f"Unknown export format: {fmt}. Choose from {', '.join(EXPORTERS)}")
    return exporter_class(output_path)


__all__ = [
    "DEFAULT_TITLE",
    "Exporter",
    "JSONExporter",
    "CSVExporter",
    "ExcelExporter",
    "MarkdownExporter",
    "default_filename",
    "detect_format",
    "entry_rows",
    "get_exporter",
    "summary_rows",
]
