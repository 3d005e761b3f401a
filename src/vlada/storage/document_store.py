"""Firestore document store bound to the resolved Firebase credential."""

import logging
from typing import Any

from google.api_core.exceptions import NotFound
from google.cloud import firestore_v1 as firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from vlada.core.exceptions import DocumentNotFoundError
from vlada.ports.storage import DocumentStorePort

logger = logging.getLogger(__name__)


class DocumentStore(DocumentStorePort):
    """Document store backed by a Firestore client."""

    def __init__(self, client: firestore.Client) -> None:
        self.client = client

    def _document(self, collection: str, doc_id: str) -> firestore.DocumentReference:
        return self.client.collection(collection).document(doc_id)

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        snapshot = self._document(collection, doc_id).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    def set(
        self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = False
    ) -> None:
        self._document(collection, doc_id).set(data, merge=merge)
        logger.debug("Set document %s/%s (merge=%s)", collection, doc_id, merge)

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        try:
            self._document(collection, doc_id).update(data)
        except NotFound as e:
            raise DocumentNotFoundError(collection, doc_id) from e
        logger.debug("Updated document %s/%s", collection, doc_id)

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
        query = self.client.collection(collection).where(
            filter=FieldFilter(field, "==", value)
        )
        if order_by:
            direction = (
                firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            )
            query = query.order_by(order_by, direction=direction)
        if limit is not None:
            query = query.limit(limit)

        return [
            {"id": snapshot.id, **(snapshot.to_dict() or {})}
            for snapshot in query.stream()
        ]
