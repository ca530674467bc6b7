"""Attachment blob storage: local directory or S3/MinIO."""
import logging
import os
from pathlib import Path
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from taskflow.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Blob storage operation failed."""


class StorageService:
    """Stores attachment bytes under a generated key."""

    def __init__(self, backend: Optional[str] = None, upload_dir: Optional[str] = None, s3_client=None):
        self.backend = (backend or settings.STORAGE_BACKEND).lower()
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.bucket_name = settings.S3_BUCKET_NAME
        self.s3_client = None

        if self.backend == "s3":
            self.s3_client = s3_client or boto3.client(
                "s3",
                endpoint_url=settings.S3_ENDPOINT_URL,
                aws_access_key_id=settings.S3_ACCESS_KEY_ID,
                aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY,
                region_name=settings.S3_REGION,
                use_ssl=settings.S3_USE_SSL,
                config=Config(signature_version="s3v4"),
            )
            self._ensure_bucket_exists()
        else:
            self.upload_dir.mkdir(parents=True, exist_ok=True)

    @property
    def is_local(self) -> bool:
        return self.s3_client is None

    def _ensure_bucket_exists(self) -> None:
        """Ensure the target bucket exists, creating it if necessary."""
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
        except (ClientError, BotoCoreError) as exc:
            error_code = exc.response.get("Error", {}).get("Code", "") if hasattr(exc, "response") else ""
            if error_code not in {"404", "NoSuchBucket", "NotFound"}:
                raise StorageError(f"Error checking bucket: {exc}") from exc

            create_params = {"Bucket": self.bucket_name}
            if settings.S3_REGION and settings.S3_REGION != "us-east-1":
                create_params["CreateBucketConfiguration"] = {"LocationConstraint": settings.S3_REGION}
            try:
                self.s3_client.create_bucket(**create_params)
            except (ClientError, BotoCoreError) as create_exc:
                create_error_code = (
                    create_exc.response.get("Error", {}).get("Code", "") if hasattr(create_exc, "response") else ""
                )
                if create_error_code not in {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}:
                    raise StorageError(f"Error creating bucket: {create_exc}") from create_exc

    def _local_path(self, key: str) -> Path:
        # Keys are generated names; refuse anything that escapes the upload dir.
        path = (self.upload_dir / key).resolve()
        if self.upload_dir.resolve() not in path.parents:
            raise StorageError(f"Invalid storage key: {key}")
        return path

    def save(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store ``data`` under ``key`` and return the key."""
        if self.is_local:
            path = self._local_path(key)
            path.write_bytes(data)
            return key
        extra_args = {"ContentType": content_type} if content_type else {}
        try:
            self.s3_client.put_object(Bucket=self.bucket_name, Key=key, Body=data, **extra_args)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Error uploading file: {e}") from e
        return key

    def read(self, key: str) -> bytes:
        if self.is_local:
            path = self._local_path(key)
            if not path.exists():
                raise StorageError(f"File not found: {key}")
            return path.read_bytes()
        try:
            return self.s3_client.get_object(Bucket=self.bucket_name, Key=key)["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Error downloading file: {e}") from e

    def exists(self, key: str) -> bool:
        if self.is_local:
            return self._local_path(key).exists()
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=key)
            return True
        except (ClientError, BotoCoreError):
            return False

    def delete(self, key: str) -> bool:
        """Remove a blob; returns False if it was already gone."""
        if self.is_local:
            path = self._local_path(key)
            try:
                os.remove(path)
            except FileNotFoundError:
                logger.warning("Attachment blob already missing: %s", key)
                return False
            return True
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
            return True
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Error deleting file: {e}") from e

    def generate_download_url(self, key: str, expires_in: int = 3600) -> Optional[str]:
        """Presigned GET URL; None for local storage."""
        if self.is_local:
            return None
        try:
            return self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": key},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Error generating download URL: {e}") from e
