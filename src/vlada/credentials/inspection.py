"""Shape report for the explicitly configured key sources.

Lets an operator see why a pasted key does not load without ever showing
the key itself: only lengths, formatting flags, the decode outcome and a
fingerprint of the normalized key leave this module.
"""

from typing import Any

from vlada.core.exceptions import CredentialSourceError
from vlada.credentials.keys import key_fingerprint
from vlada.credentials.models import CredentialSource, RawCredentialInputs
from vlada.credentials.resolver import (
    CredentialResolver,
    KeyLoader,
    load_service_account_key,
)

BEGIN_MARKER = "-----BEGIN"

_SOURCE_INPUTS = {
    CredentialSource.SERVICE_ACCOUNT_JSON: "service_account_json",
    CredentialSource.PRIVATE_KEY_BASE64: "private_key_base64",
    CredentialSource.PRIVATE_KEY: "private_key",
}


def _text_shape(text: str | None) -> dict[str, Any]:
    if text is None:
        return {
            "present": False,
            "length": 0,
            "quoted": False,
            "literalNewlines": False,
            "beginMarker": False,
        }
    stripped = text.strip()
    return {
        "present": True,
        "length": len(text),
        "quoted": (
            len(stripped) >= 2 and stripped[0] == stripped[-1] and stripped[0] in "'\""
        ),
        "literalNewlines": "\\n" in text,
        "beginMarker": BEGIN_MARKER in text,
    }


def inspect_key_sources(
    inputs: RawCredentialInputs, *, key_loader: KeyLoader = load_service_account_key
) -> list[dict[str, Any]]:
    """Describe every explicit key source and whether it yields a credential.

    Application default credentials are left out; discovering them may
    reach the metadata server.
    """
    resolver = CredentialResolver(inputs, key_loader=key_loader)
    report = []
    for source, strategy in resolver.strategies:
        field = _SOURCE_INPUTS.get(source)
        if field is None:
            continue

        entry: dict[str, Any] = {"source": source.value}
        entry.update(_text_shape(getattr(inputs, field)))
        entry.update(
            decoded=False,
            errorCode=None,
            error=None,
            formattedKeyLength=None,
            keyFingerprint=None,
        )
        if entry["present"]:
            try:
                credential = strategy(inputs)
            except CredentialSourceError as e:
                entry["errorCode"] = e.error_code
                entry["error"] = e.args[0]
            else:
                entry["decoded"] = True
                entry["formattedKeyLength"] = len(credential.private_key)
                entry["keyFingerprint"] = key_fingerprint(credential.private_key)
        report.append(entry)
    return report
