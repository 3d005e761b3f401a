"""Firebase Admin client construction from a resolved credential.

Key material is handed to the SDK in memory by default. With
``FIREBASE_KEY_TRANSPORT=file`` it goes through a temporary key file that is
removed as soon as the SDK has read it.
"""

from dataclasses import dataclass
import logging
from typing import Any
import uuid

import firebase_admin
from firebase_admin import credentials, firestore, storage
from google.api_core.exceptions import Forbidden, Unauthorized
from google.auth.exceptions import RefreshError

from vlada.core.config import Settings
from vlada.core.exceptions import (
    BackendRejectedError,
    MalformedKeyError,
    StorageTargetUnavailableError,
)
from vlada.credentials.key_file import temporary_key_file
from vlada.credentials.models import (
    CredentialSource,
    Resolution,
    ResolvedCredential,
)
from vlada.observability.diagnostics import DiagnosticEmitter
from vlada.storage.document_store import DocumentStore
from vlada.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)

DIAGNOSTIC_SOURCE = "firebase-client"


@dataclass(frozen=True)
class FirebaseClientHandle:
    """Authenticated Firebase app with its document and object stores."""

    app: firebase_admin.App
    document_store: DocumentStore
    object_store: ObjectStore
    source: CredentialSource

    @property
    def bucket_name(self) -> str:
        return self.object_store.bucket_name


class FirebaseClientFactory:
    """Build ``FirebaseClientHandle`` instances from resolved credentials."""

    def __init__(self, settings: Settings, emitter: DiagnosticEmitter) -> None:
        self.settings = settings
        self.emitter = emitter

    def create(self, resolution: Resolution) -> FirebaseClientHandle:
        """Initialize a Firebase app for ``resolution`` and verify its bucket.

        Raises:
            MalformedKeyError: If the SDK cannot load the key.
            BackendRejectedError: If the backend refuses the credential.
            StorageTargetUnavailableError: If the bucket is missing or
                inaccessible.
        """
        certificate = self._certificate(resolution)
        options: dict[str, Any] = {"storageBucket": resolution.storage_bucket}
        if resolution.project_id:
            options["projectId"] = resolution.project_id

        app_name = f"vlada-{uuid.uuid4().hex[:12]}"
        app = firebase_admin.initialize_app(certificate, options, name=app_name)

        try:
            bucket = storage.bucket(app=app)
            handle = FirebaseClientHandle(
                app=app,
                document_store=DocumentStore(firestore.client(app=app)),
                object_store=ObjectStore(bucket),
                source=resolution.source,
            )
            if self.settings.firebase_verify_storage_target:
                self._verify_bucket(handle)
        except Exception:
            firebase_admin.delete_app(app)
            raise

        self.emitter.firebase_init(
            DIAGNOSTIC_SOURCE,
            "Firebase Admin initialized successfully",
            {
                "appName": app_name,
                "source": resolution.source.value,
                "projectId": resolution.project_id,
                "storageBucket": resolution.storage_bucket,
                "keyTransport": self.settings.firebase_key_transport,
                "credential": certificate,
            },
        )
        return handle

    def _certificate(self, resolution: Resolution) -> credentials.Base:
        if not isinstance(resolution, ResolvedCredential):
            return credentials.ApplicationDefault()

        info = resolution.to_service_account_info()
        try:
            if self.settings.firebase_key_transport == "file":
                with temporary_key_file(info) as key_path:
                    self.emitter.info(
                        DIAGNOSTIC_SOURCE, "Using temporary key file for authentication"
                    )
                    return credentials.Certificate(str(key_path))
            return credentials.Certificate(info)
        except ValueError as e:
            msg = f"Firebase could not load the private key: {e}"
            raise MalformedKeyError(msg, source=resolution.source) from e

    def _verify_bucket(self, handle: FirebaseClientHandle) -> None:
        bucket_name = handle.bucket_name
        try:
            exists = handle.object_store.bucket.exists()
        except (RefreshError, Unauthorized) as e:
            raise BackendRejectedError(str(e), source=handle.source) from e
        except Forbidden as e:
            raise StorageTargetUnavailableError(bucket_name, str(e)) from e

        if not exists:
            raise StorageTargetUnavailableError(bucket_name, "bucket does not exist")
        logger.info("Verified storage bucket %s", bucket_name)
