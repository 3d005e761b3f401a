"""Ports (abstract interfaces) for the Vlada billing backend."""

from vlada.ports.storage import DocumentStorePort, ObjectStorePort, StoredObject

__all__ = ["DocumentStorePort", "ObjectStorePort", "StoredObject"]
