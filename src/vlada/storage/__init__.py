"""Vlada billing backend - Storage Layer.

Firestore document store and Cloud Storage object store, both bound to the
Firebase app built from the resolved credential.
"""

from vlada.storage.document_store import DocumentStore
from vlada.storage.object_store import ObjectStore

__all__ = ["DocumentStore", "ObjectStore"]
