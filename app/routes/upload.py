import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.spreadsheet_file import SpreadsheetFile
from app.models.user import User
from app.schemas.upload import (
    FileDetailResponse,
    FileListResponse,
    UploadMetadata,
    UploadResponse,
)
from app.services.auth import get_current_user
from app.services.column_types import infer_column_types
from app.services.spreadsheet import SpreadsheetParseError, read_spreadsheet
from app.services.storage import StorageError, StorageService, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upload", tags=["upload"])

SAMPLE_ROWS = 5


def get_file_or_404(file_id: int, user: User, db: Session) -> SpreadsheetFile:
    record = db.query(SpreadsheetFile).filter(
        SpreadsheetFile.id == file_id, SpreadsheetFile.user_id == user.id
    ).first()
    if not record:
        raise HTTPException(status_code=404, detail="File not found")
    return record


@router.post("", response_model=UploadResponse)
def upload_file(
    file: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    """Parse a CSV / Excel upload, store the raw bytes and save its metadata."""
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    validation = storage.validate_file(file)
    if not validation["valid"]:
        raise HTTPException(status_code=400, detail=validation["error"])

    file_bytes = file.file.read()
    try:
        sheet = read_spreadsheet(file_bytes, validation["file_type"])
    except SpreadsheetParseError as e:
        logger.warning("Rejected unreadable upload %s: %s", file.filename, e)
        raise HTTPException(status_code=400, detail=str(e))

    key = storage.build_key(settings.S3_UPLOAD_PREFIX, file.filename)
    try:
        file_path = storage.upload_bytes(file_bytes, key, file.content_type)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to process or store file: {e}")

    record = SpreadsheetFile(
        user_id=current_user.id,
        filename=os.path.splitext(os.path.basename(key))[0],
        original_name=file.filename,
        file_path=file_path,
        file_size=validation["file_size"],
        file_format=validation["file_type"],
        sheet_name=sheet.sheet_name,
        headers=sheet.headers,
        row_count=len(sheet.rows),
        column_count=len(sheet.headers),
    )
    try:
        db.add(record)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        storage.delete_file(file_path)
        logger.error("Saving file record for %s failed, removed %s: %s", file.filename, file_path, e)
        raise HTTPException(status_code=500, detail="Failed to save file record")
    db.refresh(record)
    logger.info(
        "Stored %s for user %s as file %s (%d rows, %d columns)",
        file.filename, current_user.id, record.id, record.row_count, record.column_count,
    )

    return UploadResponse(
        message="File uploaded, processed, and stored successfully",
        file_id=record.id,
        data=sheet.rows,
        metadata=UploadMetadata(
            filename=file.filename,
            rows=record.row_count,
            columns=record.column_count,
            headers=sheet.headers,
            column_types=infer_column_types(sheet.rows, sheet.headers),
            sample_data=sheet.rows[:SAMPLE_ROWS],
            file_size=record.file_size,
            file_url=storage.public_url(file_path),
        ),
    )


@router.get("/files", response_model=FileListResponse)
def list_files(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the current user's uploads, newest first."""
    files = (
        db.query(SpreadsheetFile)
        .filter(SpreadsheetFile.user_id == current_user.id)
        .order_by(SpreadsheetFile.created_at.desc(), SpreadsheetFile.id.desc())
        .all()
    )
    return {"files": files}


@router.get("/files/{file_id}", response_model=FileDetailResponse)
def get_file(
    file_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"file": get_file_or_404(file_id, current_user, db)}


@router.delete("/files/{file_id}")
def delete_file(
    file_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    """Delete an upload and its stored object."""
    record = get_file_or_404(file_id, current_user, db)
    if record.file_path:
        storage.delete_file(record.file_path)

    db.delete(record)
    db.commit()
    return {"success": True, "message": "File deleted successfully"}
