"""Storage port interfaces.

The HTTP layer depends on these abstractions; the Firebase-backed
implementations live in ``vlada.storage``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any


@dataclass(frozen=True)
class StoredObject:
    """Listing entry for an object in the bucket."""

    path: str
    size: int | None = None
    content_type: str | None = None
    updated: datetime | None = None
    metadata: dict[str, str] = field(default_factory=dict)


class ObjectStorePort(ABC):
    """Abstract interface for object storage operations."""

    @abstractmethod
    def write(
        self,
        path: str,
        data: bytes,
        *,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> str:
        """Store ``data`` at ``path`` and return the path."""

    @abstractmethod
    def signed_url(self, path: str, *, expires_in: timedelta) -> str:
        """Generate a time-bounded read URL for the object at ``path``."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Delete the object at ``path``.

        Raises:
            ObjectNotFoundError: If nothing is stored at ``path``.
        """

    @abstractmethod
    def list_objects(
        self, prefix: str | None = None, *, max_results: int
    ) -> list[StoredObject]:
        """List at most ``max_results`` objects, optionally under ``prefix``."""


class DocumentStorePort(ABC):
    """Abstract interface for document store operations."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Return the document data, or None if it does not exist."""

    @abstractmethod
    def set(
        self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = False
    ) -> None:
        """Create or overwrite a document (or merge into it)."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Update fields of an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """

    @abstractmethod
    def query(
        self,
        collection: str,
        *,
        field: str,
        value: Any,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Run an equality query with optional ordering and limit.

        Each result carries its document id under ``"id"``.
        """
