"""
Blob storage for uploaded documents.

Files are addressed by a path of the form `<user_id>/<millis>_<safe_name>`.
Two backings: the local filesystem (default) and an S3 bucket.

Dependencies: boto3 (S3 backing only)
"""

import logging
import re
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from resume_assistant.config import (
    AWS_REGION,
    BLOB_TIMEOUT_SECONDS,
    STORAGE_BUCKET,
)
from resume_assistant.errors import NotFound, StoreUnavailable

logger = logging.getLogger(__name__)


_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def sanitize_filename(filename: str) -> str:
    """Replace every character outside [a-zA-Z0-9.-] with an underscore."""
    return _UNSAFE_CHARS.sub("_", filename)


def generate_file_path(user_id: str, filename: str) -> str:
    """Unique storage path for a user's upload."""
    millis = int(time.time() * 1000)
    return f"{user_id}/{millis}_{sanitize_filename(filename)}"


class BlobStore(ABC):

    @abstractmethod
    def upload(self, path: str, data: bytes) -> str:
        """Store bytes at path and return the path."""

    @abstractmethod
    def download(self, path: str) -> bytes:
        """Raises NotFound for a missing object, StoreUnavailable otherwise."""


class LocalBlobStore(BlobStore):
    """Filesystem backing rooted at a bucket directory."""

    def __init__(self, root: str, bucket: str = STORAGE_BUCKET):

        self._root = (Path(root) / bucket).resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:

        target = (self._root / path).resolve()

        if self._root not in target.parents:
            raise NotFound("File not found", details=path)

        return target

    def upload(self, path: str, data: bytes) -> str:

        target = self._resolve(path)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StoreUnavailable("Failed to store file", details=str(e)) from e

        logger.info(
            "File stored",
            extra={"path": path, "size_bytes": len(data)},
        )

        return path

    def download(self, path: str) -> bytes:

        target = self._resolve(path)

        if not target.is_file():
            raise NotFound("File not found", details=path)

        try:
            return target.read_bytes()
        except OSError as e:
            raise StoreUnavailable("Failed to read file", details=str(e)) from e


class S3BlobStore(BlobStore):
    """S3 backing; the storage path is the object key."""

    def __init__(
        self,
        bucket: str = STORAGE_BUCKET,
        region: str = AWS_REGION,
        client=None,
    ) -> None:

        self._bucket = bucket
        self._s3_client = client or boto3.client(
            "s3",
            region_name=region,
            config=Config(
                connect_timeout=BLOB_TIMEOUT_SECONDS,
                read_timeout=BLOB_TIMEOUT_SECONDS,
                retries={"max_attempts": 1},
            ),
        )

    def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:

        params = {"Bucket": self._bucket, "Key": path, "Body": data}

        if content_type:
            params["ContentType"] = content_type

        try:
            self._s3_client.put_object(**params)
        except (ClientError, BotoCoreError) as e:
            raise StoreUnavailable("Failed to upload file", details=str(e)) from e

        return path

    def download(self, path: str) -> bytes:

        try:
            response = self._s3_client.get_object(Bucket=self._bucket, Key=path)
            return response["Body"].read()

        except ClientError as e:

            code = e.response.get("Error", {}).get("Code")

            if code in ("NoSuchKey", "404"):
                raise NotFound("File not found", details=path) from e

            raise StoreUnavailable("Failed to download file", details=str(e)) from e

        except BotoCoreError as e:
            raise StoreUnavailable("Failed to download file", details=str(e)) from e
