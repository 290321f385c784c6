"""Convert uploaded Excel workbooks into a context-data text block."""
import io
import logging
from typing import Optional

import pandas as pd

from nudgeable.config import settings
from nudgeable.errors import InvalidInputError, SpreadsheetError

logger = logging.getLogger(__name__)

EXCEL_CONTENT_TYPES = (
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
)
EXCEL_EXTENSIONS = (".xlsx", ".xls")


def check_excel_upload(filename: str, content_type: Optional[str]) -> None:
    """Reject uploads that are neither named nor typed as Excel files."""
    if content_type in EXCEL_CONTENT_TYPES:
        return
    if filename and filename.lower().endswith(EXCEL_EXTENSIONS):
        return
    raise InvalidInputError("Invalid file type. Please upload an Excel file (.xlsx or .xls)")


def read_workbook(data: bytes) -> dict[str, pd.DataFrame]:
    """Read every sheet of a workbook into a DataFrame, keyed by sheet name."""
    try:
        return pd.read_excel(io.BytesIO(data), sheet_name=None)
    except Exception as exc:
        logger.warning("Excel parsing failed: %s", exc)
        raise SpreadsheetError("Failed to parse Excel file") from exc


def summarize_sheets(sheets: dict[str, pd.DataFrame]) -> list[dict]:
    return [
        {"name": name, "row_count": len(df), "columns": [str(c) for c in df.columns]}
        for name, df in sheets.items()
    ]


def _format_value(value) -> str:
    if pd.isna(value):
        return ""
    return str(value)


def format_for_context(
    sheets: dict[str, pd.DataFrame],
    max_rows: Optional[int] = None,
) -> str:
    """
    Render sheets as human-readable text for the context data field.

    Each sheet lists its columns and record count, then at most ``max_rows``
    rows as ``column: value | column: value`` lines, followed by a
    truncation notice when rows were left out.
    """
    max_rows = settings.max_context_rows if max_rows is None else max_rows
    context = "=== UPLOADED DATA CONTEXT ===\n\n"

    for name, df in sheets.items():
        columns = [str(c) for c in df.columns]
        context += f"## {name.upper()} DATA\n"
        context += f"Columns: {', '.join(columns)}\n"
        context += f"Total Records: {len(df)}\n\n"

        for _, row in df.head(max_rows).iterrows():
            row_str = " | ".join(
                f"{column}: {_format_value(row[original])}"
                for column, original in zip(columns, df.columns)
            )
            context += f"- {row_str}\n"

        if len(df) > max_rows:
            context += f"... and {len(df) - max_rows} more records\n"
        context += "\n"

    return context.strip()
