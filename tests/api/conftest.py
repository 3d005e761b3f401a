"""Fixtures for API tests: in-memory stores behind a mocked provider."""

from datetime import timedelta
from typing import Any
from unittest.mock import MagicMock

from fastapi.testclient import TestClient
import pytest

from vlada.core.exceptions import DocumentNotFoundError, ObjectNotFoundError
from vlada.main import create_app
from vlada.observability.diagnostics import get_recent_diagnostics
from vlada.ports.storage import DocumentStorePort, ObjectStorePort, StoredObject
from vlada.services.firebase_provider import get_firebase_provider


class InMemoryObjectStore(ObjectStorePort):
    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str, dict[str, str]]] = {}

    def write(
        self,
        path: str,
        data: bytes,
        *,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> str:
        self.objects[path] = (data, content_type, dict(metadata or {}))
        return path

    def signed_url(self, path: str, *, expires_in: timedelta) -> str:
        return f"https://storage.test/{path}?expires={int(expires_in.total_seconds())}"

    def delete(self, path: str) -> None:
        if path not in self.objects:
            raise ObjectNotFoundError(path)
        del self.objects[path]

    def list_objects(
        self, prefix: str | None = None, *, max_results: int
    ) -> list[StoredObject]:
        paths = sorted(p for p in self.objects if p.startswith(prefix or ""))
        return [
            StoredObject(
                path=p,
                size=len(self.objects[p][0]),
                content_type=self.objects[p][1],
                updated=None,
                metadata=self.objects[p][2],
            )
            for p in paths[:max_results]
        ]


class InMemoryDocumentStore(DocumentStorePort):
    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        document = self.collections.get(collection, {}).get(doc_id)
        return dict(document) if document is not None else None

    def set(
        self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = False
    ) -> None:
        documents = self.collections.setdefault(collection, {})
        if merge and doc_id in documents:
            documents[doc_id] = {**documents[doc_id], **data}
        else:
            documents[doc_id] = dict(data)

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        documents = self.collections.get(collection, {})
        if doc_id not in documents:
            raise DocumentNotFoundError(collection, doc_id)
        documents[doc_id].update(data)

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
        matches = [
            {"id": doc_id, **document}
            for doc_id, document in self.collections.get(collection, {}).items()
            if document.get(field) == value
        ]
        if order_by:
            matches.sort(key=lambda item: item[order_by], reverse=descending)
        return matches[:limit] if limit is not None else matches


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def provider(object_store, document_store) -> MagicMock:
    provider = MagicMock()
    provider.get_object_store.return_value = object_store
    provider.get_document_store.return_value = document_store
    return provider


@pytest.fixture
def app(provider, recent):
    app = create_app()
    app.dependency_overrides[get_firebase_provider] = lambda: provider
    app.dependency_overrides[get_recent_diagnostics] = lambda: recent
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
