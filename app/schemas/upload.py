from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Any, Optional


class FileRecord(BaseModel):
    id: int
    filename: str
    original_name: str
    sheet_name: Optional[str] = None
    headers: list[str]
    row_count: int
    column_count: int
    file_size: int
    file_format: str
    user_id: int
    created_at: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class FileListResponse(BaseModel):
    files: list[FileRecord]


class FileDetailResponse(BaseModel):
    file: FileRecord


class UploadMetadata(BaseModel):
    filename: str
    rows: int
    columns: int
    headers: list[str]
    column_types: dict[str, str]
    sample_data: list[dict[str, Any]]
    file_size: int
    file_url: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadResponse(BaseModel):
    success: bool = True
    message: str
    file_id: int
    data: list[dict[str, Any]]
    metadata: UploadMetadata

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
