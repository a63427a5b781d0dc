from __future__ import annotations
from typing import Any, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Statistics ───────────────────────────────────────────────────────────────

class NumericalSummary(CamelModel):
    type: Literal["numerical"] = "numerical"
    min: float
    max: float
    avg: float
    count: int


class TopValue(CamelModel):
    value: str
    count: int


class CategoricalSummary(CamelModel):
    type: Literal["categorical"] = "categorical"
    unique_count: int
    total_count: int
    top_values: list[TopValue]


class StatsResponse(CamelModel):
    total_rows: int
    total_columns: int
    headers: list[str]
    numerical_columns: list[str]
    categorical_columns: list[str]
    summary: dict[str, Union[NumericalSummary, CategoricalSummary]]


# ── Charts ───────────────────────────────────────────────────────────────────

class ChartRequest(CamelModel):
    chart_type: Optional[str] = None
    x_column: Optional[str] = None
    y_column: Optional[str] = None
    group_by: Optional[str] = None


class ChartConfig(CamelModel):
    x_column: Optional[str] = None
    y_column: Optional[str] = None
    group_by: Optional[str] = None


class ChartResponse(CamelModel):
    success: bool = True
    chart_type: str
    chart_data: dict[str, Any]
    config: ChartConfig


# ── Suggestions ──────────────────────────────────────────────────────────────

class ChartSuggestion(CamelModel):
    chart_type: str
    x_column: Optional[str] = None
    y_column: Optional[str] = None
    group_by: Optional[str] = None
    title: str
    description: str
    suitability: str
    reason: str


class SuggestionSummary(CamelModel):
    total_columns: int
    numerical_columns: int
    categorical_columns: int
    date_columns: int


class SuggestResponse(CamelModel):
    suggestions: list[ChartSuggestion] = Field(max_length=10)
    column_types: dict[str, str]
    summary: SuggestionSummary
