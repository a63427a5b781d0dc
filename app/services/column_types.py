"""
Column type inference for parsed spreadsheet rows.

Each column is tagged as one of:
    numerical    every non-empty value parses to a finite decimal number
    date         at least one value looks like and parses as a calendar date
    categorical  anything else with data
    unknown      no non-empty values at all

Rows are analysed as an object-dtype DataFrame (see rows_to_frame) so cells
keep the Python values the reader produced. The helpers here (to_numeric,
present_mask, parse_date) are shared by the statistics, chart and suggestion
modules so that every part of the analysis agrees on what "empty" and
"numeric" mean.
"""

import math
import re
from typing import Any, Dict, List, Optional

import pandas as pd

NUMERICAL = "numerical"
DATE = "date"
CATEGORICAL = "categorical"
UNKNOWN = "unknown"

DATE_PATTERN = re.compile(r"\d{1,4}[-/]\d{1,2}[-/]\d{1,4}|\d{1,2}[-/]\d{1,2}[-/]\d{2,4}")

# Plain ASCII decimal literal: no digit separators, no non-Latin digits
NUMBER_PATTERN = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?\s*$", re.ASCII)


def rows_to_frame(rows: List[Dict[str, Any]], headers: List[str]) -> pd.DataFrame:
    """One column per header, cells kept as Python objects. Missing keys become NaN."""
    return pd.DataFrame(rows, columns=headers, dtype=object)


def is_empty(value: Any) -> bool:
    """None, NaN and the empty string count as missing. Whitespace does not."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value == ""


def present_mask(series: pd.Series) -> pd.Series:
    """True where the cell is not empty (see is_empty)."""
    return series.notna() & series.ne("")


def column_values(frame: pd.DataFrame, header: str) -> pd.Series:
    """Non-empty values of one column, in row order."""
    series = frame[header]
    return series[present_mask(series)]


def _numeric_candidate(value: Any) -> Any:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value.strip() if NUMBER_PATTERN.match(value) else None
    return value


def to_numeric(values) -> pd.Series:
    """Finite floats for numeric cells, NaN for everything else. Keeps the index."""
    candidates = pd.Series(values, dtype=object).map(_numeric_candidate)
    numbers = pd.to_numeric(candidates, errors="coerce").astype(float)
    return numbers.where(numbers.abs() < math.inf)


def parse_float(value: Any) -> Optional[float]:
    """Scalar form of to_numeric."""
    candidate = _numeric_candidate(value)
    if candidate is None:
        return None
    try:
        number = float(candidate)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_date(value: Any) -> Optional[pd.Timestamp]:
    """Return a Timestamp when the value both looks like and parses as a date."""
    if is_empty(value) or isinstance(value, bool):
        return None
    text = str(value)
    if not DATE_PATTERN.search(text):
        return None
    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert(None)
    return parsed


def infer_column_type(values) -> str:
    """Tag for a column given its non-empty values."""
    values = pd.Series(values, dtype=object)
    if values.empty:
        return UNKNOWN
    if to_numeric(values).notna().all():
        return NUMERICAL
    if values.map(parse_date).notna().any():
        return DATE
    return CATEGORICAL


def infer_frame_types(frame: pd.DataFrame) -> Dict[str, str]:
    return {header: infer_column_type(column_values(frame, header)) for header in frame.columns}


def infer_column_types(rows: List[Dict[str, Any]], headers: List[str]) -> Dict[str, str]:
    """Map every header to its type tag. Recomputed on every call."""
    return infer_frame_types(rows_to_frame(rows, headers))


def columns_of_type(column_types: Dict[str, str], tag: str) -> List[str]:
    return [header for header, column_type in column_types.items() if column_type == tag]
