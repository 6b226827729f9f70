"""
Object storage access for uploaded documents.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import aiofiles
import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.core.exceptions import StorageException

logger = logging.getLogger(__name__)


class StorageService:
    """Read uploaded documents from local disk or an S3-compatible bucket."""

    def __init__(
        self,
        storage_type: Optional[str] = None,
        storage_path: Optional[str] = None,
        bucket_name: Optional[str] = None,
        s3_client=None,
    ):
        """Initialize the storage service."""
        self.storage_type = (storage_type or settings.STORAGE_TYPE).lower()
        self.storage_path = Path(storage_path or settings.STORAGE_PATH)
        self.bucket_name = bucket_name or settings.S3_BUCKET_NAME
        self.s3_client = s3_client

        if self.storage_type == "s3":
            if self.s3_client is None:
                self._init_s3_client()
        elif self.storage_type != "local":
            raise StorageException(f"Unsupported storage type: {self.storage_type}")

    def _init_s3_client(self):
        """Initialize S3 client."""
        try:
            self.s3_client = boto3.client(
                "s3",
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                region_name=settings.AWS_REGION,
                endpoint_url=settings.S3_ENDPOINT_URL,
            )
            logger.info(f"Initialized S3 storage with bucket: {self.bucket_name}")
        except Exception as e:
            logger.error(f"Failed to initialize S3 client: {e}")
            raise StorageException(f"S3 initialization failed: {str(e)}")

    async def download(self, file_path: str) -> bytes:
        """Return the raw bytes stored at ``file_path``."""
        logger.debug(f"Downloading file: {file_path}")
        if self.storage_type == "s3":
            return await self._get_s3_content(file_path)
        return await self._get_local_content(file_path)

    async def _get_s3_content(self, file_path: str) -> bytes:
        """Get file content from S3."""
        try:
            loop = asyncio.get_running_loop()
            response = await loop.run_in_executor(
                None,
                lambda: self.s3_client.get_object(Bucket=self.bucket_name, Key=file_path)
            )
            return response["Body"].read()
        except ClientError as e:
            if e.response["Error"]["Code"] == "NoSuchKey":
                raise StorageException(f"File not found in S3: {file_path}")
            raise StorageException(f"S3 retrieval failed: {str(e)}")
        except BotoCoreError as e:
            raise StorageException(f"S3 retrieval failed: {str(e)}")

    async def _get_local_content(self, file_path: str) -> bytes:
        """Get file content from local storage."""
        base = self.storage_path.resolve()
        full_path = (base / file_path).resolve()
        if base not in full_path.parents and full_path != base:
            raise StorageException(f"Path escapes storage root: {file_path}")

        try:
            async with aiofiles.open(full_path, "rb") as f:
                return await f.read()
        except FileNotFoundError:
            raise StorageException(f"File not found locally: {file_path}")
        except OSError as e:
            raise StorageException(f"Local file retrieval failed: {str(e)}")
