"""Vlada billing backend - Services Layer."""

from __future__ import annotations

from vlada.services.firebase_provider import (
    ClientState,
    FirebaseProvider,
    get_firebase_provider,
    reset_firebase_provider,
)

__all__ = [
    "ClientState",
    "FirebaseProvider",
    "get_firebase_provider",
    "reset_firebase_provider",
]
