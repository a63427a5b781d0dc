import logging
import os
import time

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile

from app.config import settings
from app.errors import UpstreamFetchError

logger = logging.getLogger(__name__)

SPREADSHEET_EXTENSIONS = {".csv": "csv", ".xlsx": "xlsx", ".xls": "xls"}
IMAGE_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp"}


class StorageError(Exception):
    pass


class StorageService:
    def __init__(self):
        self.s3_client = boto3.client(
            "s3",
            endpoint_url=settings.S3_ENDPOINT,
            aws_access_key_id=settings.S3_ACCESS_KEY,
            aws_secret_access_key=settings.S3_SECRET_KEY,
            region_name=settings.S3_REGION,
        )
        self.bucket_name = settings.S3_BUCKET

    @staticmethod
    def _size(file: UploadFile) -> int:
        file.file.seek(0, 2)
        size = file.file.tell()
        file.file.seek(0)
        return size

    def validate_file(self, file: UploadFile) -> dict:
        file_ext = os.path.splitext(file.filename or "")[1].lower()

        if file_ext not in SPREADSHEET_EXTENSIONS:
            return {
                "valid": False,
                "error": "Only Excel and CSV files are allowed!",
                "file_type": None,
                "file_size": 0,
            }

        file_size = self._size(file)
        max_size = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
        if file_size > max_size:
            return {
                "valid": False,
                "error": f"File too large ({file_size / 1024 / 1024:.1f}MB). Maximum {settings.MAX_UPLOAD_SIZE_MB}MB.",
                "file_type": None,
                "file_size": file_size,
            }

        return {"valid": True, "error": None, "file_type": SPREADSHEET_EXTENSIONS[file_ext], "file_size": file_size}

    def validate_image(self, file: UploadFile) -> str | None:
        """Return an error message, or None when the image is acceptable."""
        if file.content_type not in IMAGE_CONTENT_TYPES:
            return "Only JPEG, PNG, and WebP images are allowed"
        if self._size(file) > settings.MAX_PHOTO_SIZE_MB * 1024 * 1024:
            return f"Image too large. Maximum {settings.MAX_PHOTO_SIZE_MB}MB."
        return None

    @staticmethod
    def build_key(prefix: str, filename: str) -> str:
        stem = os.path.splitext(os.path.basename(filename))[0]
        ext = os.path.splitext(filename)[1].lower()
        return f"{prefix}/{int(time.time() * 1000)}-{stem}{ext}"

    def upload_bytes(self, data: bytes, key: str, content_type: str | None = None) -> str:
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self.s3_client.put_object(Bucket=self.bucket_name, Key=key, Body=data, **extra)
        except (ClientError, BotoCoreError) as e:
            logger.error("Upload of %s to bucket %s failed: %s", key, self.bucket_name, e)
            raise StorageError(f"File upload failed: {e}") from e
        return f"s3://{self.bucket_name}/{key}"

    def download_file(self, file_path: str) -> bytes:
        try:
            bucket, key = file_path.replace("s3://", "").split("/", 1)
            response = self.s3_client.get_object(Bucket=bucket, Key=key)
            return response["Body"].read()
        except (ClientError, BotoCoreError, ValueError) as e:
            raise UpstreamFetchError("Failed to fetch file data from storage", details=str(e)) from e

    def delete_file(self, file_path: str) -> bool:
        try:
            bucket, key = file_path.replace("s3://", "").split("/", 1)
            self.s3_client.delete_object(Bucket=bucket, Key=key)
            return True
        except (ClientError, BotoCoreError, ValueError) as e:
            logger.warning("Could not delete %s: %s", file_path, e)
            return False

    def public_url(self, file_path: str) -> str:
        bucket, key = file_path.replace("s3://", "").split("/", 1)
        return f"{settings.S3_ENDPOINT.rstrip('/')}/{bucket}/{key}"


storage_service = StorageService()


def get_storage() -> StorageService:
    return storage_service
