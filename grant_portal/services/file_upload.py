"""
File storage for uploaded application documents.

Uploads go to AWS S3 when credentials are configured, otherwise to the local
UPLOAD_DIR.
"""
import logging
import os
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
import boto3
from botocore.exceptions import BotoCoreError, ClientError
from grant_portal.core.config import settings

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png", ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".csv"}
SAFE_NAME = re.compile(r"[^A-Za-z0-9._-]")


class FileUploadError(Exception):
    """Base exception for file upload errors"""
    pass


def generate_unique_filename(original_filename: str, prefix: str = "") -> str:
    """
    Generate a unique storage key.

    Args:
        original_filename: Original file name
        prefix: Optional prefix for the file path (e.g., "applications/12")

    Returns:
        Key of the form prefix/YYYY-MM-DD/uuid_HHMMSS.ext
    """
    _, ext = os.path.splitext(original_filename)
    now = datetime.now(timezone.utc)
    filename = f"{str(uuid.uuid4())[:8]}_{now.strftime('%H%M%S')}{ext.lower()}"
    date_prefix = now.strftime("%Y-%m-%d")

    if prefix:
        return f"{prefix.rstrip('/')}/{date_prefix}/{filename}"
    return f"{date_prefix}/{filename}"


def validate_upload(filename: str, size: int, max_size: int) -> None:
    ext = os.path.splitext(filename)[1].lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise FileUploadError("Only images, PDFs, CSV and Office documents are allowed")
    if size > max_size:
        raise FileUploadError(
            f"File too large. Maximum size: {max_size // (1024 * 1024)}MB. Got: {size / 1024 / 1024:.2f}MB"
        )


class S3FileUploadService:
    """Service for uploading files to AWS S3"""

    def __init__(
        self,
        aws_access_key_id: str,
        aws_secret_access_key: str,
        aws_region: str,
        bucket_name: str,
        s3_client=None,
    ):
        if not all([aws_access_key_id, aws_secret_access_key, bucket_name]):
            raise FileUploadError(
                "AWS credentials and bucket name must be configured "
                "(AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, AWS_BUCKET_NAME)"
            )
        self.aws_region = aws_region
        self.bucket_name = bucket_name
        self.s3_client = s3_client or boto3.client(
            "s3",
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            region_name=aws_region,
        )

    def save(self, content: bytes, original_filename: str, content_type: str, prefix: str = "") -> str:
        """
        Upload bytes to S3.

        Returns:
            Object URL of the uploaded file

        Raises:
            FileUploadError: If upload fails
        """
        key = generate_unique_filename(original_filename, prefix)
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=content,
                ContentType=content_type or "application/octet-stream",
            )
        except (ClientError, BotoCoreError) as e:
            raise FileUploadError(f"Failed to upload file to S3: {e}") from e
        return f"https://{self.bucket_name}.s3.{self.aws_region}.amazonaws.com/{key}"

    def delete(self, url: str) -> bool:
        marker = ".amazonaws.com/"
        if self.bucket_name not in url or marker not in url:
            return False
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=url.split(marker, 1)[1])
        except ClientError:
            logger.exception(f"Failed to delete {url} from S3")
            return False
        return True


class LocalFileStorage:
    """Stores uploads on the local filesystem."""

    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir)

    def save(self, content: bytes, original_filename: str, content_type: str, prefix: str = "") -> str:
        key = generate_unique_filename(SAFE_NAME.sub("_", original_filename), prefix)
        dest = self.base_dir / key
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            tmp = dest.with_suffix(dest.suffix + ".part")
            tmp.write_bytes(content)
            tmp.replace(dest)
        except OSError as e:
            raise FileUploadError(f"Failed to store file: {e}") from e
        return str(dest)

    def delete(self, path: str) -> bool:
        target = Path(path)
        if self.base_dir.resolve() not in target.resolve().parents:
            return False
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        return True


FileStorage = S3FileUploadService | LocalFileStorage

_storage: Optional[FileStorage] = None


def get_file_storage() -> FileStorage:
    global _storage
    if _storage is None:
        if settings.AWS_ACCESS_KEY_ID and settings.AWS_BUCKET_NAME:
            _storage = S3FileUploadService(
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                aws_region=settings.AWS_REGION,
                bucket_name=settings.AWS_BUCKET_NAME,
            )
            logger.info(f"Document uploads stored in S3 bucket {settings.AWS_BUCKET_NAME}")
        else:
            _storage = LocalFileStorage(settings.UPLOAD_DIR)
            logger.info(f"S3 not configured - storing document uploads in {settings.UPLOAD_DIR}")
    return _storage
