"""Bill Upload API.

Medical bills are stored in the Firebase Storage bucket under
``bills/{user_id}/`` and recorded twice in Firestore: in the ``bills`` list
of the ``users/{user_id}`` document and as an entry of the ``uploads``
collection used for the recent-uploads view.
"""

from datetime import timedelta
import logging
from pathlib import PurePosixPath
import time
from typing import Any

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    UploadFile,
    status,
)
from fastapi.responses import JSONResponse

from vlada.api.v1.firebase import credential_failure_response
from vlada.core.config import Settings, get_settings
from vlada.core.exceptions import (
    CredentialResolutionFailedError,
    DocumentNotFoundError,
    ObjectNotFoundError,
)
from vlada.ports.storage import ObjectStorePort
from vlada.services.firebase_provider import FirebaseProvider, get_firebase_provider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bills", tags=["Bills"])

USERS_COLLECTION = "users"
UPLOADS_COLLECTION = "uploads"
DELETED_STATUS = "deleted"


def _upload_id(user_id: str, timestamp: int) -> str:
    return f"{user_id}_{timestamp}"


def _discard_object(object_store: ObjectStorePort, file_path: str) -> None:
    try:
        object_store.delete(file_path)
    except ObjectNotFoundError:
        logger.debug("Bill %s was already gone from storage", file_path)
    except Exception:
        logger.exception("Could not remove orphaned bill %s", file_path)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=None)
def upload_bill(
    file: UploadFile = File(...),
    user_id: str = Form(...),
    provider: FirebaseProvider = Depends(get_firebase_provider),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any] | JSONResponse:
    """Store an uploaded bill and return a time-limited download URL."""
    user_id = user_id.strip()
    if not user_id:
        raise HTTPException(status_code=400, detail="No user ID provided")

    data = file.file.read()
    if not data:
        raise HTTPException(status_code=400, detail="No file uploaded")

    file_name = PurePosixPath(file.filename or "upload").name
    content_type = file.content_type or "application/octet-stream"
    timestamp = int(time.time() * 1000)
    file_path = f"bills/{user_id}/{timestamp}_{file_name}"

    try:
        object_store = provider.get_object_store()
        document_store = provider.get_document_store()
    except CredentialResolutionFailedError as e:
        return credential_failure_response(e)

    object_store.write(
        file_path,
        data,
        content_type=content_type,
        metadata={"userId": user_id, "fileName": file_name, "timestamp": str(timestamp)},
    )
    try:
        download_url = object_store.signed_url(
            file_path, expires_in=timedelta(days=settings.signed_url_ttl_days)
        )

        bill = {
            "uploadId": _upload_id(user_id, timestamp),
            "fileName": file_name,
            "filePath": file_path,
            "fileUrl": download_url,
            "fileType": content_type,
            "fileSize": len(data),
            "uploadedAt": timestamp,
        }
        user = document_store.get(USERS_COLLECTION, user_id) or {}
        bills = [*user.get("bills", []), bill]
        document_store.set(USERS_COLLECTION, user_id, {"bills": bills}, merge=True)
        document_store.set(
            UPLOADS_COLLECTION, bill["uploadId"], {**bill, "userId": user_id}
        )
    except Exception:
        logger.exception("Recording bill %s failed, removing stored object", file_path)
        _discard_object(object_store, file_path)
        raise

    logger.info("Stored bill %s for user %s", file_path, user_id)
    return {"success": True, "downloadURL": download_url, **bill}


@router.get("/recent", response_model=None)
def recent_bills(
    user_id: str = Query(...),
    limit: int = Query(default=10, ge=1, le=100),
    provider: FirebaseProvider = Depends(get_firebase_provider),
) -> dict[str, Any] | JSONResponse:
    """List the newest bills of a user."""
    try:
        document_store = provider.get_document_store()
    except CredentialResolutionFailedError as e:
        return credential_failure_response(e)

    uploads = document_store.query(
        UPLOADS_COLLECTION,
        field="userId",
        value=user_id,
        order_by="uploadedAt",
        descending=True,
        limit=limit,
    )
    return {
        "success": True,
        "uploads": [item for item in uploads if item.get("status") != DELETED_STATUS],
    }


@router.delete("", response_model=None)
def delete_bill(
    user_id: str = Query(...),
    file_path: str = Query(...),
    provider: FirebaseProvider = Depends(get_firebase_provider),
) -> dict[str, Any] | JSONResponse:
    """Delete a bill from storage and from the user's records.

    A bill whose object is already gone from storage is still removed from
    the records.
    """
    try:
        object_store = provider.get_object_store()
        document_store = provider.get_document_store()
    except CredentialResolutionFailedError as e:
        return credential_failure_response(e)

    user = document_store.get(USERS_COLLECTION, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    bills = list(user.get("bills", []))
    bill = next((item for item in bills if item.get("filePath") == file_path), None)
    if bill is None:
        raise HTTPException(status_code=404, detail="File not found in user records")

    message = "File deleted successfully"
    try:
        object_store.delete(file_path)
    except ObjectNotFoundError:
        logger.warning("Bill %s missing from storage, removing record anyway", file_path)
        message = "File reference removed, but file was not found in storage"

    bills.remove(bill)
    document_store.update(USERS_COLLECTION, user_id, {"bills": bills})
    if bill.get("uploadId"):
        try:
            document_store.update(
                UPLOADS_COLLECTION, bill["uploadId"], {"status": DELETED_STATUS}
            )
        except DocumentNotFoundError:
            logger.warning("No upload entry %s to mark deleted", bill["uploadId"])

    return {"success": True, "message": message}
