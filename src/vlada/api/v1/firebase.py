"""Firebase Connection and Diagnostics API.

Operator-facing endpoints for checking Firebase bootstrapping: provider
status, an explicit connection attempt, a shape report of the configured
keys and the recent sanitized diagnostic events.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from vlada.core.config import Settings, get_settings
from vlada.core.exceptions import CredentialResolutionFailedError
from vlada.credentials.inspection import inspect_key_sources
from vlada.credentials.models import RawCredentialInputs
from vlada.observability.diagnostics import RecentDiagnostics, get_recent_diagnostics
from vlada.services.firebase_provider import FirebaseProvider, get_firebase_provider

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Firebase"])


def credential_failure_response(error: CredentialResolutionFailedError) -> JSONResponse:
    """503 body shared by every endpoint that needs the Firebase client."""
    return JSONResponse(
        status_code=503,
        content={
            "error": "Firebase initialization failed",
            "code": error.error_code,
            "attemptedSources": error.attempted_sources,
            "message": str(error.last_error) if error.last_error else str(error),
        },
    )


@router.get("/firebase/status")
async def firebase_status(
    provider: FirebaseProvider = Depends(get_firebase_provider),
) -> dict[str, Any]:
    """Report the client lifecycle state without initializing it."""
    return provider.status()


@router.post("/firebase/connect", response_model=None)
def firebase_connect(
    provider: FirebaseProvider = Depends(get_firebase_provider),
) -> dict[str, Any] | JSONResponse:
    """Initialize the client if needed and report which source was used."""
    try:
        client = provider.get_client()
    except CredentialResolutionFailedError as e:
        logger.warning("Firebase connection check failed: %s", e)
        return credential_failure_response(e)

    return {
        "success": True,
        "source": client.source.value,
        "storageBucket": client.bucket_name,
    }


@router.get("/firebase/key-diagnostics")
def key_diagnostics(
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """Report how each configured key source parses, never the key text."""
    sources = inspect_key_sources(RawCredentialInputs.from_settings(settings))
    return {
        "success": any(entry["decoded"] for entry in sources),
        "sources": sources,
    }


@router.get("/logs")
async def recent_logs(
    limit: int = Query(default=100, ge=1, le=1000),
    recent: RecentDiagnostics = Depends(get_recent_diagnostics),
) -> dict[str, Any]:
    """Return recent diagnostic events, newest first."""
    events = recent.snapshot()[:limit]
    return {
        "success": True,
        "logs": [json.loads(event.to_json()) for event in events],
    }
