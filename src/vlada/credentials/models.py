"""Credential data models.

``RawCredentialInputs`` is what the deployment supplies, ``ResolvedCredential``
and ``AmbientCredential`` are what resolution produces.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vlada.core.config import Settings

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class CredentialSource(StrEnum):
    """Credential sources in resolution priority order."""

    SERVICE_ACCOUNT_JSON = "service_account_json"
    PRIVATE_KEY_BASE64 = "private_key_base64"
    PRIVATE_KEY = "private_key"
    APPLICATION_DEFAULT = "application_default"


class RawCredentialInputs(BaseModel):
    """Operator-supplied credential inputs of uncertain format.

    Blank values are stored as ``None`` so every source checks presence the
    same way.
    """

    model_config = ConfigDict(frozen=True)

    service_account_json: str | None = None
    private_key_base64: str | None = None
    private_key: str | None = None
    project_id: str | None = None
    client_email: str | None = None
    storage_bucket: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @classmethod
    def from_settings(cls, settings: Settings) -> "RawCredentialInputs":
        """Collect the Firebase inputs from application settings."""
        return cls(
            service_account_json=settings.firebase_service_account_json,
            private_key_base64=settings.firebase_private_key_base64,
            private_key=settings.firebase_private_key,
            project_id=settings.firebase_project_id.strip(),
            client_email=settings.firebase_client_email.strip(),
            storage_bucket=settings.firebase_storage_bucket.strip(),
        )


class ResolvedCredential(BaseModel):
    """A validated service-account credential ready for client construction."""

    model_config = ConfigDict(frozen=True)

    project_id: str
    client_email: str
    private_key: str = Field(repr=False)
    storage_bucket: str
    source: CredentialSource
    private_key_id: str | None = None
    client_id: str | None = None

    @field_validator("project_id", "client_email", "private_key", "storage_bucket")
    @classmethod
    def require_non_empty(cls, value: str) -> str:
        if not value or not value.strip():
            msg = "must not be empty"
            raise ValueError(msg)
        return value

    def to_service_account_info(self) -> dict[str, str]:
        """Service-account mapping in the format Google SDKs accept."""
        info = {
            "type": "service_account",
            "project_id": self.project_id,
            "client_email": self.client_email,
            "private_key": self.private_key,
            "token_uri": GOOGLE_TOKEN_URI,
        }
        if self.private_key_id:
            info["private_key_id"] = self.private_key_id
        if self.client_id:
            info["client_id"] = self.client_id
        return info


class AmbientCredential(BaseModel):
    """Platform default credentials are available for the project.

    Only the discovered identity is kept. The Firebase SDK runs its own
    discovery when the app is built from ``ApplicationDefault()``.
    """

    model_config = ConfigDict(frozen=True)

    project_id: str | None = None
    storage_bucket: str
    source: CredentialSource = CredentialSource.APPLICATION_DEFAULT


Resolution = ResolvedCredential | AmbientCredential
