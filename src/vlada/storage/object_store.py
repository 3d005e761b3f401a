"""Cloud Storage object store bound to the resolved Firebase credential."""

from datetime import timedelta
import logging

from google.api_core.exceptions import NotFound
from google.cloud.storage import Bucket

from vlada.core.exceptions import ObjectNotFoundError
from vlada.ports.storage import ObjectStorePort, StoredObject

logger = logging.getLogger(__name__)


class ObjectStore(ObjectStorePort):
    """Object store backed by a Firebase Storage bucket."""

    def __init__(self, bucket: Bucket) -> None:
        self.bucket = bucket

    @property
    def bucket_name(self) -> str:
        return self.bucket.name

    def write(
        self,
        path: str,
        data: bytes,
        *,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> str:
        blob = self.bucket.blob(path)
        if metadata:
            blob.metadata = metadata
        blob.upload_from_string(data, content_type=content_type)
        logger.info("Stored %d bytes at %s/%s", len(data), self.bucket_name, path)
        return path

    def signed_url(self, path: str, *, expires_in: timedelta) -> str:
        blob = self.bucket.blob(path)
        return blob.generate_signed_url(
            version="v4", expiration=expires_in, method="GET"
        )

    def delete(self, path: str) -> None:
        try:
            self.bucket.blob(path).delete()
        except NotFound as e:
            raise ObjectNotFoundError(path) from e
        logger.info("Deleted %s/%s", self.bucket_name, path)

    def list_objects(
        self, prefix: str | None = None, *, max_results: int
    ) -> list[StoredObject]:
        blobs = self.bucket.list_blobs(prefix=prefix, max_results=max_results)
        return [
            StoredObject(
                path=blob.name,
                size=blob.size,
                content_type=blob.content_type,
                updated=blob.updated,
                metadata=dict(blob.metadata or {}),
            )
            for blob in blobs
        ]
