"""
ECharts layout hints attached to chart payloads.

Pure presentation: nothing here changes labels or dataset values. The title
sits at the top, the legend below it and the grid below the legend so the
three never overlap.
"""

_TITLE = {
    "left": "center",
    "top": "10px",
    "textStyle": {"fontSize": 16, "fontWeight": "bold", "color": "#333"},
}

_LEGEND = {"top": "45px", "left": "center", "itemGap": 15}

_GRID = {"top": "80px", "left": "3%", "right": "4%", "bottom": "3%", "containLabel": True}

LINE_COLOR = "#3B82F6"
LINE_FILL = "rgba(59, 130, 246, 0.1)"
SCATTER_FILL = "rgba(59, 130, 246, 0.6)"


def _rotate(label_count: int, threshold: int) -> int:
    return 45 if label_count > threshold else 0


def bar_config(label_count: int) -> dict:
    return {
        "title": dict(_TITLE),
        "tooltip": {"trigger": "axis", "axisPointer": {"type": "shadow"}},
        "legend": dict(_LEGEND),
        "grid": dict(_GRID),
        "xAxis": {"type": "category", "axisLabel": {"interval": 0, "rotate": _rotate(label_count, 5)}},
        "yAxis": {"type": "value"},
    }


def line_config(label_count: int) -> dict:
    return {
        "title": dict(_TITLE),
        "tooltip": {"trigger": "axis"},
        "legend": dict(_LEGEND),
        "grid": dict(_GRID),
        "xAxis": {
            "type": "category",
            "boundaryGap": False,
            "axisLabel": {"interval": 0, "rotate": _rotate(label_count, 10)},
        },
        "yAxis": {"type": "value"},
    }


def pie_config(series_name: str) -> dict:
    return {
        "title": dict(_TITLE),
        "tooltip": {"trigger": "item", "formatter": "{a} <br/>{b}: {c} ({d}%)"},
        "legend": {
            "orient": "horizontal",
            "left": "center",
            "top": "45px",
            "itemGap": 15,
            "itemWidth": 14,
            "itemHeight": 14,
            "textStyle": {"fontSize": 12, "color": "#666"},
        },
        "series": [
            {
                "name": series_name,
                "type": "pie",
                "radius": ["40%", "70%"],
                "center": ["50%", "65%"],
                "avoidLabelOverlap": True,
                "label": {"show": False, "position": "center"},
                "emphasis": {"label": {"show": True, "fontSize": "16", "fontWeight": "bold"}},
                "labelLine": {"show": False},
            }
        ],
        "grid": {**_GRID, "top": "90px"},
    }
