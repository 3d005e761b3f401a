"""Shared test fixtures for the Vlada test suite."""

import os
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
import pytest

from vlada.core.config import Settings, get_settings
from vlada.observability.diagnostics import (
    DiagnosticEmitter,
    RecentDiagnostics,
    get_diagnostic_emitter,
    get_recent_diagnostics,
)
from vlada.services.firebase_provider import reset_firebase_provider

# Set testing environment
os.environ["TESTING"] = "1"
os.environ["ENVIRONMENT"] = "testing"

FIREBASE_ENV_VARS = (
    "FIREBASE_SERVICE_ACCOUNT_JSON",
    "FIREBASE_PRIVATE_KEY_BASE64",
    "FIREBASE_PRIVATE_KEY",
    "FIREBASE_PROJECT_ID",
    "FIREBASE_CLIENT_EMAIL",
    "FIREBASE_STORAGE_BUCKET",
    "FIREBASE_KEY_TRANSPORT",
    "GOOGLE_APPLICATION_CREDENTIALS",
)

PROJECT_ID = "vlada-test"
CLIENT_EMAIL = "firebase-adminsdk@vlada-test.iam.gserviceaccount.com"
BUCKET = "vlada-test.appspot.com"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> Any:
    """Isolate every test from real Firebase configuration and cached state."""
    for name in FIREBASE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    get_settings.cache_clear()
    get_recent_diagnostics.cache_clear()
    get_diagnostic_emitter.cache_clear()
    reset_firebase_provider()

    yield

    reset_firebase_provider()
    get_settings.cache_clear()
    get_recent_diagnostics.cache_clear()
    get_diagnostic_emitter.cache_clear()


@pytest.fixture(scope="session")
def private_key_pem() -> str:
    """A real PKCS#8 RSA private key in canonical PEM form."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def service_account_info(private_key_pem: str) -> dict[str, str]:
    """Sample service-account document as downloaded from the console."""
    return {
        "type": "service_account",
        "project_id": PROJECT_ID,
        "private_key_id": "0123456789abcdef",
        "private_key": private_key_pem,
        "client_email": CLIENT_EMAIL,
        "client_id": "123456789",
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": "https://oauth2.googleapis.com/token",
    }


@pytest.fixture
def recent() -> RecentDiagnostics:
    return RecentDiagnostics()


@pytest.fixture
def emitter(recent: RecentDiagnostics) -> DiagnosticEmitter:
    return DiagnosticEmitter(name="vlada.diagnostics.test", listeners=[recent])


@pytest.fixture
def settings() -> Settings:
    """Testing settings with project identity but no key material."""
    return Settings(
        _env_file=None,
        environment="testing",
        firebase_project_id=PROJECT_ID,
        firebase_client_email=CLIENT_EMAIL,
        firebase_storage_bucket=BUCKET,
        firebase_init_timeout=5.0,
    )
