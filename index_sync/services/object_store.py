"""MinIO service for reading stored documents.

The object store is the source of truth; this worker only ever reads
object bodies from it when a created/updated notification arrives.
"""

from typing import Optional

import urllib3
from minio import Minio
from minio.error import S3Error

from ..config import settings

NOT_FOUND_CODES = {"NoSuchKey", "NoSuchBucket", "NoSuchObject"}


class ObjectStoreError(Exception):
    """Custom exception for object store errors."""

    def __init__(self, message: str, not_found: bool = False):
        super().__init__(message)
        self.not_found = not_found


def build_http_client() -> urllib3.PoolManager:
    """HTTP pool for the MinIO client with bounded timeouts and retries."""
    return urllib3.PoolManager(
        timeout=urllib3.Timeout(
            connect=settings.minio_connect_timeout,
            read=settings.minio_read_timeout,
        ),
        retries=urllib3.Retry(
            total=settings.minio_max_retries,
            backoff_factor=0.2,
            status_forcelist=[500, 502, 503, 504],
        ),
    )


class ObjectStoreService:
    """
    Service for reading objects from MinIO (or any S3-compatible store).

    The client is created lazily on first use.
    """

    def __init__(self):
        """Initialize the service without connecting."""
        self._client: Optional[Minio] = None

    @property
    def client(self) -> Minio:
        """
        Get the MinIO client instance, creating it if necessary.

        Raises:
            ObjectStoreError: If client creation fails
        """
        if self._client is None:
            try:
                self._client = Minio(
                    endpoint=settings.minio_endpoint,
                    access_key=settings.minio_access_key,
                    secret_key=settings.minio_secret_key,
                    secure=settings.minio_secure,
                    http_client=build_http_client(),
                )
            except Exception as e:
                raise ObjectStoreError(f"Failed to create MinIO client: {str(e)}") from e
        return self._client

    def get_object(self, bucket: str, object_name: str) -> bytes:
        """
        Read the full body of an object.

        Args:
            bucket: Name of the bucket
            object_name: Object key (path) in the bucket

        Returns:
            The object body as bytes

        Raises:
            ObjectStoreError: If the object is missing (not_found=True) or the
                read fails
        """
        response = None
        try:
            response = self.client.get_object(bucket, object_name)
            return response.read()
        except S3Error as e:
            raise ObjectStoreError(
                f"Failed to read {bucket}/{object_name}: {str(e)}",
                not_found=e.code in NOT_FOUND_CODES,
            ) from e
        finally:
            if response is not None:
                response.close()
                response.release_conn()


# Global service instance
object_store_service = ObjectStoreService()


def get_object_store_service() -> ObjectStoreService:
    """Return the shared object store service instance."""
    return object_store_service
