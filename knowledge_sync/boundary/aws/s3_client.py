"""
S3 client for document bucket operations.

Blob upload/download for source documents and the page-window artifacts
produced by the batch splitter. Calls are synchronous boto3; pipeline
code runs them in a worker thread under an explicit timeout.

Dependencies: boto3
System role: Object store boundary
"""

import boto3
from botocore.exceptions import ClientError

from knowledge_sync.core.exceptions import StorageError

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class S3DocumentClient:
    """S3 client for document bucket operations."""

    def __init__(self, bucket: str, region: str = "ap-southeast-2", client=None) -> None:
        """
        Initialize S3 client for document bucket.

        Args:
            bucket: S3 bucket name for document storage
            region: AWS region for S3 bucket
            client: Pre-built boto3 S3 client (tests inject a stub)
        """
        self._bucket = bucket
        self._region = region
        self._s3_client = client or boto3.client("s3", region_name=region)

    @property
    def bucket(self) -> str:
        return self._bucket

    def upload_bytes(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        """
        Upload bytes, overwriting any existing object at the key.

        Args:
            key: S3 object key
            data: Object body
            content_type: MIME type of the object

        Returns:
            str: The key written

        Raises:
            StorageError: When the upload fails
        """
        try:
            self._s3_client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
            return key
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            raise StorageError(
                f"Failed to upload to S3: {error_code}", key
            ) from e

    def download_bytes(self, key: str) -> bytes:
        """
        Download an object's body.

        Args:
            key: S3 object key (e.g., "uploads/uuid/file.pdf")

        Returns:
            bytes: Object body

        Raises:
            StorageError: When the object is missing or the download fails
        """
        if not key:
            raise StorageError("S3 key is required", key)
        try:
            response = self._s3_client.get_object(Bucket=self._bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in _NOT_FOUND_CODES:
                raise StorageError(f"File not found in S3: {key}", key) from e
            raise StorageError(f"Failed to download from S3: {error_code}", key) from e

    def file_exists(self, key: str) -> bool:
        """
        Check if a file exists in S3.

        Args:
            key: S3 object key to check

        Returns:
            bool: True if file exists, False otherwise
        """
        try:
            self._s3_client.head_object(Bucket=self._bucket, Key=key)
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
                return False
            raise StorageError(f"Failed to check S3 object: {key}", key) from e

    def delete(self, key: str) -> None:
        """Delete an object; missing objects are ignored by S3."""
        try:
            self._s3_client.delete_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            raise StorageError(f"Failed to delete from S3: {key}", key) from e
