"""
S3 object storage access.

Thin wrapper around a boto3 S3 client bound to the target bucket. Every object
is written world-readable since the bucket backs a public download site.
"""

from pathlib import Path
from typing import Any, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from release_publisher.constants import S3_API_VERSION, S3_OBJECT_ACL
from release_publisher.exceptions import StorageError
from release_publisher.log_utils import logger


class S3Storage:
    """Put and list objects in a single S3 bucket."""

    def __init__(self, bucket: str, region: str, client: Optional[Any] = None):
        """
        Parameters:
            bucket (str): Target bucket name.
            region (str): AWS region of the bucket.
            client (Optional[Any]): Pre-built boto3 S3 client; one is created when omitted.
        """
        self.bucket = bucket
        self.region = region
        self._client = client or boto3.client(
            "s3", region_name=region, api_version=S3_API_VERSION
        )
        logger.info(f"Uploads will target S3 bucket {bucket}.")

    def put_object(
        self, key: str, body: bytes, content_type: Optional[str] = None
    ) -> None:
        """
        Upload `body` under `key` with a public-read ACL.

        Raises:
            StorageError: If S3 rejects the request or it cannot be sent.
        """
        params = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": body,
            "ACL": S3_OBJECT_ACL,
        }
        if content_type:
            params["ContentType"] = content_type
        try:
            response = self._client.put_object(**params)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(
                f"Failed to upload s3://{self.bucket}/{key}", key=key, details=str(exc)
            ) from exc
        logger.debug(f"Uploaded s3://{self.bucket}/{key}: {response}")

    def put_file(
        self, path: Path, key: Optional[str] = None, content_type: Optional[str] = None
    ) -> None:
        """Upload a local file; the key defaults to the file name."""
        key = key or path.name
        try:
            body = path.read_bytes()
        except OSError as exc:
            raise StorageError(
                f"Unable to read {path} for upload", key=key, details=str(exc)
            ) from exc
        self.put_object(key, body, content_type)

    def list_objects(self) -> List[str]:
        """
        Return the keys stored in the bucket.

        Raises:
            StorageError: If the listing fails.
        """
        try:
            response = self._client.list_objects(Bucket=self.bucket)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(
                f"Failed to list s3://{self.bucket}", details=str(exc)
            ) from exc
        return [item["Key"] for item in response.get("Contents", [])]
