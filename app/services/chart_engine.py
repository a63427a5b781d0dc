"""
ChartEngine: validates a chart request and builds Chart.js / ECharts-ready
data (labels + datasets) from parsed spreadsheet rows.

Supported chart types:
    bar / column     group-by counts or sums, or average y per x
    pie / doughnut   row count per category
    line             y against sorted x
    scatter          raw (x, y) points
"""

from __future__ import annotations

from typing import Any, Optional

import pandas as pd

from app.errors import EmptyResultError, InvalidConfigurationError
from app.services import chart_theme
from app.services.column_types import (
    DATE,
    NUMERICAL,
    infer_frame_types,
    parse_date,
    present_mask,
    rows_to_frame,
    to_numeric,
)
from app.services.palette import generate_colors

CHART_TYPE_ALIASES = {
    "bar": "bar",
    "column": "bar",
    "pie": "pie",
    "doughnut": "pie",
    "line": "line",
    "scatter": "scatter",
}


class ChartEngine:
    def __init__(self, rows: list[dict[str, Any]], headers: list[str]):
        self.headers = headers
        self.df = rows_to_frame(rows, headers)
        self._column_types: Optional[dict[str, str]] = None

    @property
    def column_types(self) -> dict[str, str]:
        if self._column_types is None:
            self._column_types = infer_frame_types(self.df)
        return self._column_types

    # ── Validation ───────────────────────────────────────────────────────────

    def validate(
        self,
        chart_type: Optional[str],
        x_col: Optional[str] = None,
        y_col: Optional[str] = None,
        group_by: Optional[str] = None,
    ) -> str:
        """Return the canonical chart type or raise InvalidConfigurationError."""
        if not chart_type:
            raise InvalidConfigurationError("Chart type is required")

        for col in (x_col, y_col, group_by):
            if col and col not in self.headers:
                raise InvalidConfigurationError(f"Column '{col}' not found in file")

        kind = CHART_TYPE_ALIASES.get(chart_type.lower())
        if kind is None:
            raise InvalidConfigurationError(f"Unsupported chart type: {chart_type}")

        if kind == "bar" and not group_by and not (x_col and y_col):
            raise InvalidConfigurationError(
                "Bar charts require either a groupBy column OR both xColumn and yColumn"
            )
        if kind == "pie" and not group_by:
            raise InvalidConfigurationError("groupBy column is required for pie charts")
        if kind == "line" and not (x_col and y_col):
            raise InvalidConfigurationError("Both xColumn and yColumn are required for line charts")
        if kind == "scatter" and not (x_col and y_col):
            raise InvalidConfigurationError("Both xColumn and yColumn are required for scatter plots")
        return kind

    # ── Entry point ──────────────────────────────────────────────────────────

    def build(
        self,
        chart_type: Optional[str],
        x_col: Optional[str] = None,
        y_col: Optional[str] = None,
        group_by: Optional[str] = None,
    ) -> dict:
        """Validate, then dispatch to the builder for the chart type."""
        kind = self.validate(chart_type, x_col, y_col, group_by)

        if kind == "bar":
            payload = self.bar_chart(x_col, y_col, group_by)
        elif kind == "pie":
            payload = self.pie_chart(group_by)
        elif kind == "line":
            payload = self.line_chart(x_col, y_col)
        else:
            payload = self.scatter_chart(x_col, y_col)

        self._ensure_not_empty(payload)
        return payload

    @staticmethod
    def _ensure_not_empty(payload: dict) -> None:
        if "labels" in payload:
            empty = len(payload["labels"]) == 0
        else:
            empty = not any(dataset["data"] for dataset in payload["datasets"])
        if empty:
            raise EmptyResultError(
                "Invalid chart configuration. Please check your column selections.",
                details="No valid data found for the specified configuration",
            )

    # ── Builders ─────────────────────────────────────────────────────────────

    def bar_chart(self, x_col: Optional[str], y_col: Optional[str], group_by: Optional[str]) -> dict:
        if group_by:
            return self._grouped_bar(group_by, y_col)
        if x_col and y_col:
            return self._average_bar(x_col, y_col)
        raise InvalidConfigurationError("Invalid configuration for bar chart")

    def _keys(self, col: str) -> pd.Series:
        """Non-empty cells of a column as string group keys."""
        series = self.df[col]
        return series[present_mask(series)].astype(str)

    def _grouped_bar(self, group_by: str, y_col: Optional[str]) -> dict:
        keys = self._keys(group_by)
        if y_col:
            # a category whose y values never parse still shows up, with 0
            values = to_numeric(self.df.loc[keys.index, y_col])
            grouped = values.groupby(keys, sort=False).sum()
            label = f"Sum of {y_col} by {group_by}"
        else:
            grouped = keys.groupby(keys, sort=False).size()
            label = f"Count by {group_by}"
        return self._bar_payload(grouped.index.tolist(), grouped.tolist(), label)

    def _average_bar(self, x_col: str, y_col: str) -> dict:
        x = self.df[x_col]
        y = to_numeric(self.df[y_col])
        mask = present_mask(x) & y.notna()
        grouped = y[mask].groupby(x[mask].astype(str), sort=False).mean()
        return self._bar_payload(grouped.index.tolist(), grouped.tolist(), f"Average {y_col} by {x_col}")

    @staticmethod
    def _bar_payload(labels: list[str], values: list[float], label: str) -> dict:
        return {
            "labels": labels,
            "datasets": [
                {
                    "label": label,
                    "data": values,
                    "backgroundColor": generate_colors(len(labels)),
                    "borderColor": generate_colors(len(labels), 0.8),
                    "borderWidth": 1,
                }
            ],
            "echartsConfig": chart_theme.bar_config(len(labels)),
        }

    def pie_chart(self, group_by: str) -> dict:
        keys = self._keys(group_by)
        counts = keys.groupby(keys, sort=False).size()

        labels = counts.index.tolist()
        return {
            "labels": labels,
            "datasets": [
                {
                    "data": counts.tolist(),
                    "backgroundColor": generate_colors(len(labels)),
                    "borderColor": generate_colors(len(labels), 0.8),
                    "borderWidth": 2,
                }
            ],
            "echartsConfig": chart_theme.pie_config(group_by),
        }

    def line_chart(self, x_col: str, y_col: str) -> dict:
        x = self.df[x_col]
        y = to_numeric(self.df[y_col])
        mask = present_mask(x) & y.notna()
        x, y = x[mask], y[mask]

        order = self._sort_key(x, self.column_types.get(x_col)).sort_values(
            kind="stable", na_position="last"
        ).index
        labels = x.loc[order].tolist()

        return {
            "labels": labels,
            "datasets": [
                {
                    "label": f"{y_col} over {x_col}",
                    "data": y.loc[order].tolist(),
                    "borderColor": chart_theme.LINE_COLOR,
                    "backgroundColor": chart_theme.LINE_FILL,
                    "fill": True,
                    "tension": 0.4,
                }
            ],
            "echartsConfig": chart_theme.line_config(len(labels)),
        }

    @staticmethod
    def _sort_key(x: pd.Series, x_type: Optional[str]) -> pd.Series:
        """Sort key for the x values; values that fail to parse become NaN/NaT."""
        if x_type == DATE:
            return pd.to_datetime(x.map(parse_date))
        if x_type == NUMERICAL:
            return to_numeric(x)
        return x.astype(str)

    def scatter_chart(self, x_col: str, y_col: str) -> dict:
        xs = to_numeric(self.df[x_col])
        ys = to_numeric(self.df[y_col])
        mask = xs.notna() & ys.notna()
        points = [{"x": x, "y": y} for x, y in zip(xs[mask].tolist(), ys[mask].tolist())]

        return {
            "datasets": [
                {
                    "label": f"{y_col} vs {x_col}",
                    "data": points,
                    "backgroundColor": chart_theme.SCATTER_FILL,
                    "borderColor": chart_theme.LINE_COLOR,
                    "borderWidth": 1,
                }
            ]
        }
