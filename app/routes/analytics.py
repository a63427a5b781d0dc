from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import InvalidConfigurationError, NotFoundError, UpstreamFetchError
from app.models.spreadsheet_file import SpreadsheetFile
from app.models.user import User
from app.schemas.analytics import (
    ChartConfig,
    ChartRequest,
    ChartResponse,
    StatsResponse,
    SuggestResponse,
)
from app.services.auth import get_current_user
from app.services.chart_engine import ChartEngine
from app.services.chart_suggester import build_suggestion_report
from app.services.spreadsheet import ParsedSheet, SpreadsheetParseError, read_spreadsheet
from app.services.statistics import build_stats_report
from app.services.storage import StorageService, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


def load_sheet(file_id: int, user: User, db: Session, storage: StorageService) -> ParsedSheet:
    """Fetch the stored upload and parse it afresh for this request."""
    record = db.query(SpreadsheetFile).filter(
        SpreadsheetFile.id == file_id, SpreadsheetFile.user_id == user.id
    ).first()
    if not record:
        raise NotFoundError("File not found")

    file_bytes = storage.download_file(record.file_path)
    try:
        sheet = read_spreadsheet(file_bytes, record.file_format)
    except SpreadsheetParseError as e:
        raise UpstreamFetchError("Failed to parse stored file", details=str(e)) from e

    # Stored headers are authoritative; fall back to the parsed ones for old records
    if record.headers:
        sheet.headers = list(record.headers)
    return sheet


# ── Statistics ────────────────────────────────────────────────────────────────

@router.get("/stats/{file_id}", response_model=StatsResponse)
def get_stats(
    file_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: StorageService = Depends(get_storage),
):
    sheet = load_sheet(file_id, current_user, db, storage)
    return build_stats_report(sheet.rows, sheet.headers)


# ── Chart Generation ──────────────────────────────────────────────────────────

@router.post("/chart/{file_id}", response_model=ChartResponse)
def generate_chart(
    file_id: int,
    payload: ChartRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: StorageService = Depends(get_storage),
):
    if not payload.chart_type:
        raise InvalidConfigurationError("Chart type is required")

    sheet = load_sheet(file_id, current_user, db, storage)

    engine = ChartEngine(sheet.rows, sheet.headers)
    chart_data = engine.build(payload.chart_type, payload.x_column, payload.y_column, payload.group_by)
    logger.debug("Built %s chart for file %s", payload.chart_type, file_id)

    return ChartResponse(
        chart_type=payload.chart_type,
        chart_data=chart_data,
        config=ChartConfig(x_column=payload.x_column, y_column=payload.y_column, group_by=payload.group_by),
    )


# ── Suggestions ───────────────────────────────────────────────────────────────

@router.get("/suggest/{file_id}", response_model=SuggestResponse)
def suggest(
    file_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: StorageService = Depends(get_storage),
):
    sheet = load_sheet(file_id, current_user, db, storage)
    return build_suggestion_report(sheet.rows, sheet.headers)
