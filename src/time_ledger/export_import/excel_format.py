"""Excel export functionality with charts and formatting."""

from collections.abc import Sequence
from typing import Any

import openpyxl  # type: ignore[import-untyped]
from openpyxl.chart import BarChart, Reference  # type: ignore[import-untyped]
from openpyxl.styles import Alignment, Font, PatternFill  # type: ignore[import-untyped]
from openpyxl.utils import get_column_letter  # type: ignore[import-untyped]

from time_ledger.export_import.base import DEFAULT_TITLE, Exporter, Row, row_columns

SHEET_NAME = "Data"
CHART_VALUE_COLUMN = "Hours"


class ExcelExporter(Exporter):
    """Export report rows to an Excel workbook."""

    def get_file_extension(self) -> str:
        return ".xlsx"

    def export_rows(self, rows: Sequence[Row], title: str = DEFAULT_TITLE, **kwargs: Any) -> None:
        """Export rows to a single-sheet workbook with a styled header.

        Args:
            rows: Rows to export
            title: Report title, stored as the workbook title
            **kwargs: Additional options
                - include_charts (bool): Add a bar chart when the rows have an
                  Hours column (default: True)
        """
        self.ensure_output_path()

        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = SHEET_NAME
        wb.properties.title = title

        columns = row_columns(rows)
        self._write_header(ws, columns)

        for row_idx, row in enumerate(rows, start=2):
            for col_idx, column in enumerate(columns, start=1):
                ws.cell(row_idx, col_idx, row.get(column))

        for col_idx, column in enumerate(columns, start=1):
            width = max([len(str(column))] + [len(str(r.get(column, ""))) for r in rows])
            ws.column_dimensions[get_column_letter(col_idx)].width = min(max(width + 2, 12), 50)

        if kwargs.get("include_charts", True) and rows and CHART_VALUE_COLUMN in columns:
            self._add_chart(ws, title, columns, len(rows))

        wb.save(self.output_path)

    def _write_header(self, ws: Any, columns: list[str]) -> None:
        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        header_font = Font(bold=True, color="FFFFFF")

        for col, header in enumerate(columns, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = header_fill
            cell.font = header_font
            cell.alignment = Alignment(horizontal="center", vertical="center")

    def _add_chart(self, ws: Any, title: str, columns: list[str], row_count: int) -> None:
        """Bar chart of the Hours column against the first column."""
        value_col = columns.index(CHART_VALUE_COLUMN) + 1
        chart = BarChart()
        chart.title = title
        chart.y_axis.title = CHART_VALUE_COLUMN
        data = Reference(ws, min_col=value_col, min_row=1, max_row=row_count + 1)
        labels = Reference(ws, min_col=1, min_row=2, max_row=row_count + 1)
        chart.add_data(data, titles_from_data=True)
        chart.set_categories(labels)
        chart.height = 10
        chart.width = 18
        ws.add_chart(chart, f"{get_column_letter(len(columns) + 2)}2")
