"""Firebase credential acquisition and normalization."""

from vlada.credentials.keys import decode_base64_key, normalize_key, unescape_raw_key
from vlada.credentials.models import (
    AmbientCredential,
    CredentialSource,
    RawCredentialInputs,
    ResolvedCredential,
)
from vlada.credentials.resolver import CredentialResolver

__all__ = [
    "AmbientCredential",
    "CredentialResolver",
    "CredentialSource",
    "RawCredentialInputs",
    "ResolvedCredential",
    "decode_base64_key",
    "normalize_key",
    "unescape_raw_key",
]
