"""Custom exception hierarchy for the Vlada billing backend.

Credential bootstrapping distinguishes per-source failures, which only move
resolution on to the next source, from terminal failures that are surfaced
to the caller of ``FirebaseProvider.get_client()``.
"""

from typing import Any


class VladaBaseError(Exception):
    """Base exception for all Vlada specific errors."""

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {super().__str__()}"
        return super().__str__()


# ==============================================================================
# Configuration Exceptions
# ==============================================================================


class ConfigurationError(VladaBaseError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self, message: str, *, config_key: str | None = None, **kwargs: Any
    ) -> None:
        super().__init__(message, error_code="CONFIGURATION_ERROR", **kwargs)
        self.config_key = config_key


# ==============================================================================
# Per-source Credential Exceptions (non-fatal, resolution moves on)
# ==============================================================================


class CredentialSourceError(VladaBaseError):
    """Base class for failures of a single credential source."""

    default_code = "CREDENTIAL_SOURCE_ERROR"

    def __init__(
        self, message: str, *, source: str | None = None, **kwargs: Any
    ) -> None:
        kwargs.setdefault("error_code", self.default_code)
        super().__init__(message, **kwargs)
        self.source = source


class SourceNotConfiguredError(CredentialSourceError):
    """Raised when a credential source has no input at all."""

    default_code = "SOURCE_NOT_CONFIGURED"


class MalformedKeyError(CredentialSourceError):
    """Raised when key text holds no usable private key body."""

    default_code = "MALFORMED_KEY"


class DecodeFailureError(CredentialSourceError):
    """Raised when base64 or JSON decoding of a source fails."""

    default_code = "DECODE_FAILURE"


class IncompleteCredentialError(CredentialSourceError):
    """Raised when a source lacks a required credential field."""

    default_code = "INCOMPLETE_CREDENTIAL"

    def __init__(
        self, missing_fields: list[str], *, source: str | None = None
    ) -> None:
        message = f"Missing required credential fields: {', '.join(missing_fields)}"
        super().__init__(message, source=source)
        self.missing_fields = missing_fields


class AmbientCredentialsUnavailableError(CredentialSourceError):
    """Raised when platform default credential discovery finds nothing."""

    default_code = "AMBIENT_CREDENTIALS_UNAVAILABLE"


# ==============================================================================
# Terminal Credential Exceptions
# ==============================================================================


class NoCredentialAvailableError(VladaBaseError):
    """Raised when every credential source has been tried and failed."""

    def __init__(
        self,
        attempted_sources: list[str],
        last_error: BaseException | None = None,
    ) -> None:
        message = f"No credential available (attempted: {', '.join(attempted_sources)})"
        if last_error is not None:
            message += f"; last error: {last_error}"
        super().__init__(message, error_code="NO_CREDENTIAL_AVAILABLE")
        self.attempted_sources = attempted_sources
        self.last_error = last_error


class BackendRejectedError(VladaBaseError):
    """Raised when the backend rejects a syntactically valid credential."""

    def __init__(self, message: str, *, source: str | None = None) -> None:
        super().__init__(message, error_code="BACKEND_REJECTED")
        self.source = source


class StorageTargetUnavailableError(VladaBaseError):
    """Raised when the configured storage bucket is missing or inaccessible."""

    def __init__(self, bucket_name: str, reason: str | None = None) -> None:
        message = f"Storage bucket {bucket_name!r} is unavailable"
        if reason:
            message += f": {reason}"
        super().__init__(message, error_code="STORAGE_TARGET_UNAVAILABLE")
        self.bucket_name = bucket_name
        self.reason = reason


class CredentialResolutionFailedError(VladaBaseError):
    """Caller-facing failure of Firebase client initialization."""

    def __init__(
        self,
        attempted_sources: list[str],
        last_error: BaseException | None = None,
    ) -> None:
        message = "Firebase client initialization failed"
        if attempted_sources:
            message += f" (attempted: {', '.join(attempted_sources)})"
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message, error_code="CREDENTIAL_RESOLUTION_FAILED")
        self.attempted_sources = attempted_sources
        self.last_error = last_error


# ==============================================================================
# Storage Exceptions
# ==============================================================================


class StorageError(VladaBaseError):
    """Base class for object and document store errors."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "STORAGE_ERROR")
        super().__init__(message, **kwargs)


class ObjectNotFoundError(StorageError):
    """Raised when an object path does not exist in the bucket."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Object not found: {path}", error_code="OBJECT_NOT_FOUND")
        self.path = path


class DocumentNotFoundError(StorageError):
    """Raised when updating a document that does not exist."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(
            f"Document not found: {collection}/{doc_id}",
            error_code="DOCUMENT_NOT_FOUND",
        )
        self.collection = collection
        self.doc_id = doc_id
