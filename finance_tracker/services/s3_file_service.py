"""S3FileService provides S3-backed blob storage for uploaded statements."""

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from finance_tracker.core.exceptions import StorageError
from finance_tracker.core.settings import Settings, get_settings
from finance_tracker.core.utils import get_logger

logger = get_logger("finance-tracker.storage")


class S3FileService:
    """Service for S3 file operations: put with a presigned URL, ensure bucket."""

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize S3FileService and ensure the bucket exists."""
        self.settings = settings or get_settings()
        self.s3 = boto3.client(
            "s3",
            endpoint_url=self.settings.s3_endpoint_url,
            aws_access_key_id=self.settings.s3_access_key,
            aws_secret_access_key=self.settings.s3_secret_key,
        )
        self.bucket = self.settings.s3_bucket
        self.ensure_bucket()

    def ensure_bucket(self) -> None:
        """Ensure the S3 bucket exists, create if not present."""
        try:
            self.s3.head_bucket(Bucket=self.bucket)
        except ClientError:
            logger.info(f"Creating bucket {self.bucket}")
            self.s3.create_bucket(Bucket=self.bucket)

    def put(self, key: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``key`` and return a URL the extractor can fetch it from."""
        try:
            self.s3.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
            return self.s3.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=self.settings.s3_url_expiry_seconds,
            )
        except (BotoCoreError, ClientError) as exc:
            msg = f"Failed to store {key} in bucket {self.bucket}: {exc}"
            logger.exception(msg)
            raise StorageError(msg) from exc
