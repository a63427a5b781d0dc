"""Parse uploaded CSV / Excel bytes into header + row-dict form."""

import io
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Dict, List

import pandas as pd

CSV_SHEET_NAME = "Sheet1"

# Encoding of CSVs saved from Excel on Windows
CSV_FALLBACK_ENCODING = "cp1252"


class SpreadsheetParseError(Exception):
    pass


@dataclass
class ParsedSheet:
    sheet_name: str
    headers: List[str]
    rows: List[Dict[str, Any]] = field(default_factory=list)


def _to_cell(value: Any) -> Any:
    """Normalise a pandas cell into a JSON-friendly Python value."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if value is pd.NaT:
        return None
    if isinstance(value, (pd.Timestamp, datetime)):
        if value.hour == 0 and value.minute == 0 and value.second == 0 and value.microsecond == 0:
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, (date, time)):
        return value.isoformat()
    if hasattr(value, "item"):
        # numpy scalar
        return _to_cell(value.item())
    return value


def _frame_to_sheet(df: pd.DataFrame, sheet_name: str) -> ParsedSheet:
    headers = [str(col) for col in df.columns]
    rows = []
    for record in df.itertuples(index=False, name=None):
        row = {header: _to_cell(value) for header, value in zip(headers, record)}
        if all(value is None or value == "" for value in row.values()):
            continue
        rows.append(row)
    return ParsedSheet(sheet_name=sheet_name, headers=headers, rows=rows)


def _read_csv(file_bytes: bytes) -> pd.DataFrame:
    try:
        return pd.read_csv(io.BytesIO(file_bytes), dtype=str, keep_default_na=False)
    except UnicodeDecodeError:
        return pd.read_csv(
            io.BytesIO(file_bytes),
            dtype=str,
            keep_default_na=False,
            encoding=CSV_FALLBACK_ENCODING,
            encoding_errors="replace",
        )


def read_spreadsheet(file_bytes: bytes, file_format: str) -> ParsedSheet:
    """Read the first sheet of a workbook (or the whole CSV)."""
    try:
        if file_format == "csv":
            df = _read_csv(file_bytes)
            return _frame_to_sheet(df, CSV_SHEET_NAME)

        with pd.ExcelFile(io.BytesIO(file_bytes)) as workbook:
            sheet_name = workbook.sheet_names[0]
            df = workbook.parse(sheet_name, dtype=object)
        return _frame_to_sheet(df, str(sheet_name))
    except Exception as e:
        raise SpreadsheetParseError(f"Could not read {file_format} file: {e}") from e
