"""
Analysis of an uploaded spreadsheet: tabular data, column metadata, chart
configuration for the client-side charting library, and the message list for
the generative-text insights service.

Spreadsheet contents are not parsed yet; every upload is analysed against
``SAMPLE_ROWS``.
"""

import logging
from typing import Any

from sheetlens.auth import Identity, authorize, require_identity
from sheetlens.errors import NotFound, SheetLensError, StorageError, ValidationError
from sheetlens.models import AnalyzeRequest, ChartRequest, UploadRecord
from sheetlens.store import UploadStore
from sheetlens.uploads import parse_body

logger = logging.getLogger("sheetlens.analysis")

SAMPLE_ROWS: list[dict[str, Any]] = [
    {"Month": "January", "Sales": 12000, "Expenses": 8000, "Profit": 4000, "Region": "North"},
    {"Month": "February", "Sales": 15000, "Expenses": 9000, "Profit": 6000, "Region": "North"},
    {"Month": "March", "Sales": 18000, "Expenses": 10000, "Profit": 8000, "Region": "South"},
    {"Month": "April", "Sales": 14000, "Expenses": 8500, "Profit": 5500, "Region": "East"},
    {"Month": "May", "Sales": 16000, "Expenses": 9500, "Profit": 6500, "Region": "West"},
    {"Month": "June", "Sales": 20000, "Expenses": 11000, "Profit": 9000, "Region": "North"},
    {"Month": "July", "Sales": 22000, "Expenses": 12000, "Profit": 10000, "Region": "South"},
    {"Month": "August", "Sales": 19000, "Expenses": 10500, "Profit": 8500, "Region": "East"},
    {"Month": "September", "Sales": 17000, "Expenses": 9800, "Profit": 7200, "Region": "West"},
    {"Month": "October", "Sales": 21000, "Expenses": 11500, "Profit": 9500, "Region": "North"},
]

CHART_TYPES = ("bar", "line", "pie", "scatter")
PRIMARY_COLOR = "#357AFF"
BORDER_COLOR = "#2E69DE"
PIE_PALETTE = [
    "#357AFF", "#22C55E", "#F59E0B", "#EF4444", "#8B5CF6",
    "#06B6D4", "#F97316", "#84CC16", "#EC4899", "#6366F1",
]
INSIGHTS_PREVIEW_ROWS = 5


def load_rows(upload: UploadRecord) -> list[dict[str, Any]]:
    # TODO: read the workbook at upload.file_url once object-storage access is wired in.
    return [dict(row) for row in SAMPLE_ROWS]


def columns(rows: list[dict[str, Any]]) -> list[str]:
    return list(rows[0]) if rows else []


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def numeric_columns(rows: list[dict[str, Any]]) -> list[str]:
    """Columns whose value in the first row is a number."""
    if not rows:
        return []
    return [col for col, value in rows[0].items() if _is_number(value)]


def build_chart_config(
    rows: list[dict[str, Any]], x_axis: str, y_axis: str, chart_type: str = "bar"
) -> dict:
    """Declarative chart configuration (type, data, options) for the client."""
    if chart_type == "scatter":
        data = {
            "datasets": [
                {
                    "label": f"{x_axis} vs {y_axis}",
                    "data": [{"x": row.get(x_axis), "y": row.get(y_axis)} for row in rows],
                    "backgroundColor": PRIMARY_COLOR,
                    "borderColor": BORDER_COLOR,
                }
            ]
        }
    else:
        data = {
            "labels": [row.get(x_axis) for row in rows],
            "datasets": [
                {
                    "label": y_axis,
                    "data": [row.get(y_axis) for row in rows],
                    "backgroundColor": PIE_PALETTE if chart_type == "pie" else PRIMARY_COLOR,
                    "borderColor": BORDER_COLOR,
                    "borderWidth": 2,
                    "fill": chart_type != "line",
                }
            ],
        }

    is_pie = chart_type == "pie"
    return {
        "type": chart_type,
        "data": data,
        "options": {
            "responsive": True,
            "maintainAspectRatio": False,
            "plugins": {"legend": {"display": is_pie}},
            "scales": {} if is_pie else {"y": {"beginAtZero": True}},
        },
    }


def build_insights_request(rows: list[dict[str, Any]]) -> dict:
    """Message list for the generative-text service, previewing the first rows."""
    preview = "\n".join(
        ", ".join(f"{key}: {value}" for key, value in row.items())
        for row in rows[:INSIGHTS_PREVIEW_ROWS]
    )
    content = (
        "Analyze this Excel data and provide insights. "
        f"Here's a preview of the data:\n\n{preview}\n\n"
        "Please provide:\n"
        "1. Key trends and patterns\n"
        "2. Notable observations\n"
        "3. Recommendations for further analysis\n"
        "4. Potential business insights\n\n"
        "Keep the analysis concise but comprehensive."
    )
    return {"messages": [{"role": "user", "content": content}], "stream": True}


async def _owned_upload(
    caller: Identity, request: AnalyzeRequest, store: UploadStore
) -> UploadRecord:
    if not (request.user_id and request.upload_id):
        raise ValidationError("Missing required fields")
    authorize(caller, request.user_id)
    upload = await store.get_for_owner(request.user_id, request.upload_id)
    if upload is None:
        raise NotFound("Upload not found")
    return upload


async def analyze_upload(identity: Identity | None, body: dict, store: UploadStore) -> dict:
    try:
        caller = require_identity(identity)
        request = parse_body(AnalyzeRequest, body)
        upload = await _owned_upload(caller, request, store)
    except StorageError:
        logger.exception("Failed to load upload for analysis")
        return {"error": "Failed to fetch upload data", "status": 500}
    except SheetLensError as exc:
        return exc.to_response()

    rows = load_rows(upload)
    return {
        "upload": upload.to_public(),
        "data": rows,
        "columns": columns(rows),
        "numericColumns": numeric_columns(rows),
        "insightsRequest": build_insights_request(rows),
        "status": 200,
    }


async def build_chart(identity: Identity | None, body: dict, store: UploadStore) -> dict:
    try:
        caller = require_identity(identity)
        request = parse_body(ChartRequest, body)
        upload = await _owned_upload(caller, request, store)

        rows = load_rows(upload)
        chart_type = request.chart_type or "bar"
        if chart_type not in CHART_TYPES:
            raise ValidationError(f"Unsupported chart type: {chart_type}")
        if request.x_axis not in columns(rows):
            raise ValidationError("X-axis must be one of the data columns")
        if request.y_axis not in numeric_columns(rows):
            raise ValidationError("Y-axis must be a numeric column")
    except StorageError:
        logger.exception("Failed to load upload for chart")
        return {"error": "Failed to fetch upload data", "status": 500}
    except SheetLensError as exc:
        return exc.to_response()

    logger.info(
        "Chart built: upload=%s type=%s x=%s y=%s",
        upload.id, chart_type, request.x_axis, request.y_axis,
    )
    return {
        "chart": build_chart_config(rows, request.x_axis, request.y_axis, chart_type),
        "status": 200,
    }
