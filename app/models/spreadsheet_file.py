from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from app.database import Base


class SpreadsheetFile(Base):
    __tablename__ = "spreadsheet_files"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    # File metadata
    filename = Column(String, nullable=False)        # storage key stem
    original_name = Column(String, nullable=False)
    file_path = Column(String, nullable=False)       # s3://bucket/key
    file_size = Column(Integer, nullable=False)
    file_format = Column(String, nullable=False)     # 'csv', 'xlsx' or 'xls'

    # Sheet shape; cell data stays in object storage
    sheet_name = Column(String, nullable=True)
    headers = Column(JSON, nullable=False, default=list)
    row_count = Column(Integer, default=0)
    column_count = Column(Integer, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="files")
