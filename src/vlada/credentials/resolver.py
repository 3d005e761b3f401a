"""Firebase credential resolution.

Turns ``RawCredentialInputs`` into a usable credential by trying an ordered
chain of sources. Each source is a plain function from the inputs to a
resolution; it raises a ``CredentialSourceError`` when it cannot produce one,
which only moves the chain on to the next source.
"""

from collections.abc import Callable, Mapping
from functools import partial
import json
import logging
from typing import Any

import google.auth
from google.auth import exceptions as google_auth_exceptions
from google.oauth2 import service_account
from pydantic import ValidationError

from vlada.core.exceptions import (
    AmbientCredentialsUnavailableError,
    CredentialSourceError,
    DecodeFailureError,
    IncompleteCredentialError,
    MalformedKeyError,
    NoCredentialAvailableError,
    SourceNotConfiguredError,
)
from vlada.credentials.keys import (
    decode_base64_key,
    key_fingerprint,
    normalize_key,
    unescape_raw_key,
)
from vlada.credentials.models import (
    AmbientCredential,
    CredentialSource,
    RawCredentialInputs,
    Resolution,
    ResolvedCredential,
)
from vlada.observability.diagnostics import DiagnosticEmitter

logger = logging.getLogger(__name__)

DIAGNOSTIC_SOURCE = "credential-resolver"

FIREBASE_SCOPES = (
    "https://www.googleapis.com/auth/cloud-platform",
    "https://www.googleapis.com/auth/datastore",
    "https://www.googleapis.com/auth/devstorage.read_write",
)

KeyLoader = Callable[[Mapping[str, str]], Any]
Strategy = Callable[[RawCredentialInputs], Resolution]

DOCUMENT_TEXT_FIELDS = (
    "project_id",
    "client_email",
    "private_key",
    "private_key_id",
    "client_id",
)


def load_service_account_key(info: Mapping[str, str]) -> Any:
    """Parse service-account info into Google credentials.

    Used as a local check that the normalized key is a loadable RSA key
    before the backend ever sees it.
    """
    return service_account.Credentials.from_service_account_info(dict(info))


def default_bucket_name(project_id: str) -> str:
    """Default Firebase Storage bucket of a project."""
    return f"{project_id}.appspot.com"


def _build_credential(
    source: CredentialSource,
    private_key: str,
    *,
    project_id: str | None,
    client_email: str | None,
    storage_bucket: str | None,
    key_loader: KeyLoader,
    private_key_id: str | None = None,
    client_id: str | None = None,
) -> ResolvedCredential:
    project_id = (project_id or "").strip() or None
    client_email = (client_email or "").strip() or None
    storage_bucket = (storage_bucket or "").strip() or None
    if project_id and not storage_bucket:
        storage_bucket = default_bucket_name(project_id)

    missing = [
        name
        for name, value in (
            ("project_id", project_id),
            ("client_email", client_email),
            ("storage_bucket", storage_bucket),
        )
        if not value
    ]
    if missing:
        raise IncompleteCredentialError(missing, source=source)

    normalized = normalize_key(private_key)
    try:
        credential = ResolvedCredential(
            project_id=project_id,
            client_email=client_email,
            private_key=normalized,
            storage_bucket=storage_bucket,
            source=source,
            private_key_id=private_key_id,
            client_id=client_id,
        )
    except ValidationError as e:
        msg = f"Credential fields are invalid: {e.error_count()} validation error(s)"
        raise DecodeFailureError(msg, source=source) from e

    try:
        key_loader(credential.to_service_account_info())
    except (ValueError, TypeError) as e:
        msg = f"Private key could not be loaded: {e}"
        raise MalformedKeyError(msg, source=source) from e

    return credential


def _parse_service_account_document(text: str) -> dict[str, Any]:
    document = text.strip()
    if len(document) >= 2 and document[0] == document[-1] and document[0] in "'\"":
        document = document[1:-1].strip()
    if not document.startswith("{"):
        # Some deployments store the whole document base64-encoded
        document = decode_base64_key(document)

    try:
        parsed = json.loads(document)
    except json.JSONDecodeError as e:
        msg = f"Service account JSON could not be parsed: {e.msg} (position {e.pos})"
        raise DecodeFailureError(msg) from e

    if not isinstance(parsed, dict):
        msg = "Service account JSON is not an object"
        raise DecodeFailureError(msg)
    return parsed


def _document_field(
    document: Mapping[str, Any], name: str, fallback: str | None
) -> str | None:
    # A field present in the document is authoritative, even when blank
    if name in document:
        return document[name]
    return fallback


def from_service_account_json(
    inputs: RawCredentialInputs, *, key_loader: KeyLoader = load_service_account_key
) -> ResolvedCredential:
    """Resolve from a full service-account JSON document."""
    source = CredentialSource.SERVICE_ACCOUNT_JSON
    if inputs.service_account_json is None:
        msg = "FIREBASE_SERVICE_ACCOUNT_JSON is not set"
        raise SourceNotConfiguredError(msg, source=source)

    try:
        document = _parse_service_account_document(inputs.service_account_json)
    except DecodeFailureError as e:
        e.source = source
        raise

    for name in DOCUMENT_TEXT_FIELDS:
        value = document.get(name)
        if value is not None and not isinstance(value, str):
            msg = (
                f"Service account field {name} must be a string, "
                f"got {type(value).__name__}"
            )
            raise DecodeFailureError(msg, source=source)

    private_key = document.get("private_key")
    if not private_key or not private_key.strip():
        raise IncompleteCredentialError(["private_key"], source=source)

    try:
        return _build_credential(
            source,
            private_key,
            project_id=_document_field(document, "project_id", inputs.project_id),
            client_email=_document_field(document, "client_email", inputs.client_email),
            storage_bucket=inputs.storage_bucket,
            key_loader=key_loader,
            private_key_id=document.get("private_key_id"),
            client_id=document.get("client_id"),
        )
    except MalformedKeyError as e:
        e.source = source
        raise


def from_base64_key(
    inputs: RawCredentialInputs, *, key_loader: KeyLoader = load_service_account_key
) -> ResolvedCredential:
    """Resolve from a base64-encoded PEM private key."""
    source = CredentialSource.PRIVATE_KEY_BASE64
    if inputs.private_key_base64 is None:
        msg = "FIREBASE_PRIVATE_KEY_BASE64 is not set"
        raise SourceNotConfiguredError(msg, source=source)

    try:
        decoded = decode_base64_key(inputs.private_key_base64)
        return _build_credential(
            source,
            decoded,
            project_id=inputs.project_id,
            client_email=inputs.client_email,
            storage_bucket=inputs.storage_bucket,
            key_loader=key_loader,
        )
    except CredentialSourceError as e:
        e.source = source
        raise


def from_raw_key(
    inputs: RawCredentialInputs, *, key_loader: KeyLoader = load_service_account_key
) -> ResolvedCredential:
    """Resolve from a raw PEM key, possibly quoted and newline-escaped."""
    source = CredentialSource.PRIVATE_KEY
    if inputs.private_key is None:
        msg = "FIREBASE_PRIVATE_KEY is not set"
        raise SourceNotConfiguredError(msg, source=source)

    try:
        return _build_credential(
            source,
            unescape_raw_key(inputs.private_key),
            project_id=inputs.project_id,
            client_email=inputs.client_email,
            storage_bucket=inputs.storage_bucket,
            key_loader=key_loader,
        )
    except CredentialSourceError as e:
        e.source = source
        raise


def from_application_default(inputs: RawCredentialInputs) -> AmbientCredential:
    """Resolve from the platform's application default credentials.

    Discovery failures of any kind are reported as
    ``AmbientCredentialsUnavailableError``.
    """
    source = CredentialSource.APPLICATION_DEFAULT
    try:
        _, discovered_project = google.auth.default(scopes=FIREBASE_SCOPES)
    except google_auth_exceptions.GoogleAuthError as e:
        msg = f"Application default credentials unavailable: {e}"
        raise AmbientCredentialsUnavailableError(msg, source=source) from e

    project_id = inputs.project_id or discovered_project
    storage_bucket = inputs.storage_bucket or (
        default_bucket_name(project_id) if project_id else None
    )
    if not storage_bucket:
        raise IncompleteCredentialError(["storage_bucket"], source=source)

    return AmbientCredential(
        project_id=project_id,
        storage_bucket=storage_bucket,
    )


class CredentialResolver:
    """Resolve Firebase credentials through the ordered source chain."""

    def __init__(
        self,
        inputs: RawCredentialInputs,
        *,
        emitter: DiagnosticEmitter | None = None,
        key_loader: KeyLoader = load_service_account_key,
    ) -> None:
        self.inputs = inputs
        self.emitter = emitter or DiagnosticEmitter()
        self.strategies: tuple[tuple[CredentialSource, Strategy], ...] = (
            (
                CredentialSource.SERVICE_ACCOUNT_JSON,
                partial(from_service_account_json, key_loader=key_loader),
            ),
            (
                CredentialSource.PRIVATE_KEY_BASE64,
                partial(from_base64_key, key_loader=key_loader),
            ),
            (
                CredentialSource.PRIVATE_KEY,
                partial(from_raw_key, key_loader=key_loader),
            ),
            (CredentialSource.APPLICATION_DEFAULT, from_application_default),
        )

    def resolve(self) -> Resolution:
        """Return the first credential any source produces.

        Raises:
            NoCredentialAvailableError: If every source failed or was absent.
        """
        attempted: list[str] = []
        last_error: CredentialSourceError | None = None

        for source, strategy in self.strategies:
            attempted.append(source.value)
            try:
                resolution = strategy(self.inputs)
            except SourceNotConfiguredError as e:
                self.emitter.debug(DIAGNOSTIC_SOURCE, f"Skipping {source}: {e}")
                last_error = last_error or e
                continue
            except CredentialSourceError as e:
                self.emitter.warning(
                    DIAGNOSTIC_SOURCE, f"Credential source {source} failed", e
                )
                last_error = e
                continue

            self._record_success(resolution)
            return resolution

        self.emitter.error(
            DIAGNOSTIC_SOURCE,
            "All credential sources failed",
            {"attemptedSources": attempted},
        )
        raise NoCredentialAvailableError(attempted, last_error)

    def _record_success(self, resolution: Resolution) -> None:
        if isinstance(resolution, ResolvedCredential):
            self.emitter.firebase_init(
                DIAGNOSTIC_SOURCE,
                f"Resolved credential from {resolution.source}",
                {
                    "source": resolution.source.value,
                    "projectId": resolution.project_id,
                    "clientEmail": resolution.client_email,
                    "privateKeyLength": len(resolution.private_key),
                    "keyFingerprint": key_fingerprint(resolution.private_key),
                    "storageBucket": resolution.storage_bucket,
                },
            )
        else:
            self.emitter.firebase_init(
                DIAGNOSTIC_SOURCE,
                "Using application default credentials",
                {
                    "source": resolution.source.value,
                    "projectId": resolution.project_id,
                    "storageBucket": resolution.storage_bucket,
                },
            )
