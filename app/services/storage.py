import logging
import re
import uuid

import boto3
from botocore.config import Config

from app.config import settings
from app.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


class StorageService:
    @staticmethod
    def is_configured() -> bool:
        return bool(
            settings.s3_endpoint_url
            and settings.s3_access_key
            and settings.s3_secret_key
        )

    @staticmethod
    def _get_client():  # type: ignore[return]
        if not StorageService.is_configured():
            logger.warning("Presigned URL requested but S3 storage is not configured")
            raise ServiceUnavailableError("File storage is not configured")
        return boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
            region_name=settings.s3_region,
            config=Config(signature_version="s3v4"),
        )

    @staticmethod
    def generate_storage_key(project_id, file_name: str) -> str:
        safe_name = _UNSAFE_NAME.sub("_", file_name).strip("_") or "file"
        unique = uuid.uuid4().hex[:12]
        return f"projects/{project_id}/{unique}/{safe_name}"

    @staticmethod
    def generate_upload_url(storage_key: str, mime_type: str) -> str:
        client = StorageService._get_client()
        url: str = client.generate_presigned_url(
            "put_object",
            Params={
                "Bucket": settings.s3_bucket_name,
                "Key": storage_key,
                "ContentType": mime_type,
            },
            ExpiresIn=settings.s3_presigned_url_expiry,
        )
        return url


storage = StorageService()
