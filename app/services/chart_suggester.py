"""
Rule-based chart suggestions from inferred column types.

Rules, applied in order:
  1. bar (groupBy)  categorical column with 2-20 distinct values     high
  2. pie            categorical column with 2-8 distinct values      medium
  3. line           every date column x every numerical column       high
  4. bar (x/y)      categorical column with <=15 distinct values
                    x every numerical column                         high
  5. scatter        every pair of numerical columns                  medium

Suggestions are then stable-sorted by suitability and capped at ten.
"""

from __future__ import annotations

from typing import Any

import pandas as pd

from app.services.column_types import (
    CATEGORICAL,
    DATE,
    NUMERICAL,
    columns_of_type,
    infer_column_types,
    present_mask,
    rows_to_frame,
)

SUITABILITY_RANK = {"high": 3, "medium": 2, "low": 1}
MAX_SUGGESTIONS = 10

BAR_GROUP_MAX_CATEGORIES = 20
PIE_MAX_CATEGORIES = 8
BAR_XY_MAX_CATEGORIES = 15


def distinct_count(values) -> int:
    """Number of distinct non-empty values, compared as strings."""
    series = pd.Series(values, dtype=object)
    return int(series[present_mask(series)].astype(str).nunique())


def suggest_charts(
    rows: list[dict[str, Any]],
    headers: list[str],
    column_types: dict[str, str],
) -> list[dict]:
    categorical = [h for h in headers if column_types.get(h) == CATEGORICAL]
    numerical = [h for h in headers if column_types.get(h) == NUMERICAL]
    dates = [h for h in headers if column_types.get(h) == DATE]
    frame = rows_to_frame(rows, headers)
    distinct = {col: distinct_count(frame[col]) for col in categorical}

    suggestions: list[dict] = []

    for col in categorical:
        if 1 < distinct[col] <= BAR_GROUP_MAX_CATEGORIES:
            suggestions.append({
                "chartType": "bar",
                "groupBy": col,
                "title": f"Distribution of {col}",
                "description": f"Bar chart showing count by {col}",
                "suitability": "high",
                "reason": "Good for showing distribution of categorical data",
            })

    for col in categorical:
        if 1 < distinct[col] <= PIE_MAX_CATEGORIES:
            suggestions.append({
                "chartType": "pie",
                "groupBy": col,
                "title": f"{col} Distribution",
                "description": f"Pie chart showing distribution by {col}",
                "suitability": "medium",
                "reason": "Good for showing proportions of categorical data",
            })

    for date_col in dates:
        for num_col in numerical:
            suggestions.append({
                "chartType": "line",
                "xColumn": date_col,
                "yColumn": num_col,
                "title": f"{num_col} over Time",
                "description": f"Line chart showing {num_col} trend over {date_col}",
                "suitability": "high",
                "reason": "Excellent for showing trends over time",
            })

    for cat_col in categorical:
        if distinct[cat_col] > BAR_XY_MAX_CATEGORIES:
            continue
        for num_col in numerical:
            suggestions.append({
                "chartType": "bar",
                "xColumn": cat_col,
                "yColumn": num_col,
                "title": f"{num_col} by {cat_col}",
                "description": f"Bar chart showing average {num_col} by {cat_col}",
                "suitability": "high",
                "reason": "Good for comparing numerical values across categories",
            })

    for i, x_col in enumerate(numerical):
        for y_col in numerical[i + 1:]:
            suggestions.append({
                "chartType": "scatter",
                "xColumn": x_col,
                "yColumn": y_col,
                "title": f"{y_col} vs {x_col}",
                "description": f"Scatter plot showing relationship between {x_col} and {y_col}",
                "suitability": "medium",
                "reason": "Good for identifying correlations between numerical variables",
            })

    suggestions.sort(key=lambda s: SUITABILITY_RANK[s["suitability"]], reverse=True)
    return suggestions[:MAX_SUGGESTIONS]


def build_suggestion_report(rows: list[dict[str, Any]], headers: list[str]) -> dict:
    column_types = infer_column_types(rows, headers)
    return {
        "suggestions": suggest_charts(rows, headers, column_types),
        "columnTypes": column_types,
        "summary": {
            "totalColumns": len(headers),
            "numericalColumns": len(columns_of_type(column_types, NUMERICAL)),
            "categoricalColumns": len(columns_of_type(column_types, CATEGORICAL)),
            "dateColumns": len(columns_of_type(column_types, DATE)),
        },
    }
