"""
Descriptive statistics per column.

Numerical columns get min / max / avg / count. Every other column with data
(categorical, date) gets a frequency table: unique count, total count and the
ten most frequent values.
"""

from __future__ import annotations

from typing import Any

import pandas as pd

from app.services.column_types import (
    CATEGORICAL,
    NUMERICAL,
    column_values,
    columns_of_type,
    infer_frame_types,
    rows_to_frame,
    to_numeric,
)

TOP_VALUES_LIMIT = 10


def numerical_summary(values) -> dict:
    numbers = to_numeric(values).dropna()
    return {
        "type": NUMERICAL,
        "min": float(numbers.min()),
        "max": float(numbers.max()),
        "avg": float(numbers.mean()),
        "count": int(numbers.size),
    }


def categorical_summary(values) -> dict:
    keys = pd.Series(values, dtype=object).astype(str)
    # reindex on unique() pins first-seen order; the stable sort keeps it for ties
    counts = keys.value_counts().reindex(keys.unique())
    ranked = counts.sort_values(ascending=False, kind="stable")
    return {
        "type": CATEGORICAL,
        "uniqueCount": int(counts.size),
        "totalCount": int(keys.size),
        "topValues": [
            {"value": value, "count": int(count)}
            for value, count in ranked.head(TOP_VALUES_LIMIT).items()
        ],
    }


def compute_statistics(frame: pd.DataFrame, column_types: dict[str, str]) -> dict[str, dict]:
    """Summary per column; columns with no non-empty values are left out."""
    summary: dict[str, dict] = {}
    for header in frame.columns:
        values = column_values(frame, header)
        if values.empty:
            continue
        if column_types.get(header) == NUMERICAL:
            summary[header] = numerical_summary(values)
        else:
            summary[header] = categorical_summary(values)
    return summary


def build_stats_report(rows: list[dict[str, Any]], headers: list[str]) -> dict:
    frame = rows_to_frame(rows, headers)
    column_types = infer_frame_types(frame)
    summary = compute_statistics(frame, column_types)
    return {
        "totalRows": len(rows),
        "totalColumns": len(headers),
        "headers": headers,
        "numericalColumns": columns_of_type(column_types, NUMERICAL),
        "categoricalColumns": [h for h in headers if h in summary and summary[h]["type"] == CATEGORICAL],
        "summary": summary,
    }
