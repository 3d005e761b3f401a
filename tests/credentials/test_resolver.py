"""Tests for the credential source chain."""

import base64
import json
from unittest.mock import MagicMock, patch

from google.auth.exceptions import DefaultCredentialsError
import pytest

from tests.conftest import BUCKET, CLIENT_EMAIL, PROJECT_ID
from vlada.core.exceptions import (
    AmbientCredentialsUnavailableError,
    DecodeFailureError,
    IncompleteCredentialError,
    NoCredentialAvailableError,
)
from vlada.credentials.keys import PEM_FOOTER, PEM_HEADER, normalize_key
from vlada.credentials.models import (
    AmbientCredential,
    CredentialSource,
    RawCredentialInputs,
    ResolvedCredential,
)
from vlada.credentials.resolver import (
    FIREBASE_SCOPES,
    CredentialResolver,
    from_application_default,
    from_raw_key,
    from_service_account_json,
)

ALL_SOURCES = [
    "service_account_json",
    "private_key_base64",
    "private_key",
    "application_default",
]


@pytest.fixture
def identity() -> dict[str, str]:
    return {
        "project_id": PROJECT_ID,
        "client_email": CLIENT_EMAIL,
        "storage_bucket": BUCKET,
    }


@pytest.fixture
def no_ambient_credentials():
    with patch(
        "google.auth.default",
        side_effect=DefaultCredentialsError("Could not automatically determine credentials"),
    ) as mock_default:
        yield mock_default


def warnings_of(recent):
    return [event for event in recent.snapshot() if event.level == "WARNING"]


def escaped(pem: str) -> str:
    """Key as it typically arrives through a .env file or CI secret."""
    return '"' + pem.strip().replace("\n", "\\n") + '"'


class TestResolutionOrder:
    def test_strategies_are_in_priority_order(self):
        resolver = CredentialResolver(RawCredentialInputs())
        assert [source.value for source, _ in resolver.strategies] == ALL_SOURCES

    def test_json_document_wins_over_keys(
        self, service_account_info, private_key_pem, emitter
    ):
        inputs = RawCredentialInputs(
            service_account_json=json.dumps(service_account_info),
            private_key=escaped(private_key_pem),
            storage_bucket=BUCKET,
        )

        result = CredentialResolver(inputs, emitter=emitter).resolve()

        assert isinstance(result, ResolvedCredential)
        assert result.source is CredentialSource.SERVICE_ACCOUNT_JSON
        assert result.project_id == PROJECT_ID
        assert result.client_email == CLIENT_EMAIL
        assert result.private_key_id == "0123456789abcdef"
        assert result.private_key == normalize_key(private_key_pem)


class TestServiceAccountJson:
    def test_escaped_private_key_inside_document(self, service_account_info):
        service_account_info["private_key"] = service_account_info[
            "private_key"
        ].replace("\n", "\\n")
        inputs = RawCredentialInputs(service_account_json=json.dumps(service_account_info))

        result = from_service_account_json(inputs)

        assert "\\n" not in result.private_key
        assert result.private_key.startswith(PEM_HEADER)

    def test_default_bucket_from_project(self, service_account_info):
        inputs = RawCredentialInputs(service_account_json=json.dumps(service_account_info))
        assert from_service_account_json(inputs).storage_bucket == f"{PROJECT_ID}.appspot.com"

    def test_base64_encoded_document(self, service_account_info):
        blob = base64.b64encode(json.dumps(service_account_info).encode()).decode()
        result = from_service_account_json(RawCredentialInputs(service_account_json=blob))
        assert result.source is CredentialSource.SERVICE_ACCOUNT_JSON

    def test_single_quoted_document(self, service_account_info):
        document = f"'{json.dumps(service_account_info)}'"
        result = from_service_account_json(
            RawCredentialInputs(service_account_json=document)
        )
        assert result.project_id == PROJECT_ID

    def test_invalid_json_is_decode_failure(self):
        with pytest.raises(DecodeFailureError) as exc_info:
            from_service_account_json(RawCredentialInputs(service_account_json="{not json"))
        assert exc_info.value.source is CredentialSource.SERVICE_ACCOUNT_JSON

    def test_non_object_json_is_decode_failure(self):
        with pytest.raises(DecodeFailureError):
            from_service_account_json(RawCredentialInputs(service_account_json="[1, 2]"))

    def test_missing_private_key(self, service_account_info):
        del service_account_info["private_key"]
        inputs = RawCredentialInputs(service_account_json=json.dumps(service_account_info))
        with pytest.raises(IncompleteCredentialError) as exc_info:
            from_service_account_json(inputs)
        assert exc_info.value.missing_fields == ["private_key"]


class TestFallback:
    def test_base64_key_without_raw_key(self, private_key_pem, identity, emitter):
        inputs = RawCredentialInputs(
            private_key_base64=base64.b64encode(private_key_pem.encode()).decode(),
            **identity,
        )

        result = CredentialResolver(inputs, emitter=emitter).resolve()

        assert result.source is CredentialSource.PRIVATE_KEY_BASE64
        assert result.private_key == normalize_key(private_key_pem)

    def test_malformed_json_falls_back_to_base64(
        self, private_key_pem, identity, emitter, recent
    ):
        inputs = RawCredentialInputs(
            service_account_json='{"type": "service_account", "project_id": ',
            private_key_base64=base64.b64encode(private_key_pem.encode()).decode(),
            **identity,
        )

        result = CredentialResolver(inputs, emitter=emitter).resolve()

        assert result.source is CredentialSource.PRIVATE_KEY_BASE64
        failures = warnings_of(recent)
        assert len(failures) == 1
        assert failures[0].error_type == "DecodeFailureError"
        assert "service_account_json" in failures[0].message

    def test_garbage_base64_falls_back_to_raw_key(
        self, private_key_pem, identity, emitter, recent
    ):
        garbage = "!@#$%^&*()" * 4
        assert len(garbage) == 40
        inputs = RawCredentialInputs(
            private_key_base64=garbage,
            private_key=escaped(private_key_pem),
            **identity,
        )

        result = CredentialResolver(inputs, emitter=emitter).resolve()

        assert result.source is CredentialSource.PRIVATE_KEY
        failures = warnings_of(recent)
        assert len(failures) == 1
        assert failures[0].error_type == "DecodeFailureError"

    def test_base64_of_non_key_text_is_malformed(
        self, private_key_pem, identity, emitter, recent
    ):
        inputs = RawCredentialInputs(
            private_key_base64=base64.b64encode(b"just some text").decode(),
            private_key=private_key_pem,
            **identity,
        )

        result = CredentialResolver(inputs, emitter=emitter).resolve()

        assert result.source is CredentialSource.PRIVATE_KEY
        assert [event.error_type for event in warnings_of(recent)] == [
            "MalformedKeyError"
        ]

    @pytest.mark.parametrize(
        ("field", "value", "error_type"),
        [
            ("client_email", 12345, "DecodeFailureError"),
            ("client_id", 123456789, "DecodeFailureError"),
            ("private_key_id", 42, "DecodeFailureError"),
            ("project_id", "   ", "IncompleteCredentialError"),
            ("project_id", None, "IncompleteCredentialError"),
        ],
    )
    def test_bad_document_field_falls_back_to_base64(
        self,
        service_account_info,
        private_key_pem,
        identity,
        emitter,
        recent,
        field,
        value,
        error_type,
    ):
        service_account_info[field] = value
        inputs = RawCredentialInputs(
            service_account_json=json.dumps(service_account_info),
            private_key_base64=base64.b64encode(private_key_pem.encode()).decode(),
            **identity,
        )

        result = CredentialResolver(inputs, emitter=emitter).resolve()

        assert result.source is CredentialSource.PRIVATE_KEY_BASE64
        assert [event.error_type for event in warnings_of(recent)] == [error_type]

    def test_bad_document_field_alone_exhausts_chain(
        self, service_account_info, no_ambient_credentials
    ):
        service_account_info["client_id"] = 123456789
        inputs = RawCredentialInputs(service_account_json=json.dumps(service_account_info))

        with pytest.raises(NoCredentialAvailableError) as exc_info:
            CredentialResolver(inputs).resolve()

        assert exc_info.value.attempted_sources == ALL_SOURCES

    def test_invalid_credential_fields_are_decode_failures(self, private_key_pem):
        inputs = RawCredentialInputs(
            private_key=private_key_pem,
            project_id=PROJECT_ID,
            client_email=CLIENT_EMAIL,
        )

        # A blank key body fails model validation rather than the key loader
        with patch("vlada.credentials.resolver.normalize_key", return_value="  "):
            with pytest.raises(DecodeFailureError) as exc_info:
                from_raw_key(inputs)

        assert exc_info.value.source is CredentialSource.PRIVATE_KEY

    def test_key_loader_rejection_moves_on(self, private_key_pem, identity):
        loader = MagicMock(side_effect=[ValueError("bad key"), None])
        inputs = RawCredentialInputs(
            private_key_base64=base64.b64encode(private_key_pem.encode()).decode(),
            private_key=private_key_pem,
            **identity,
        )

        result = CredentialResolver(inputs, key_loader=loader).resolve()

        assert result.source is CredentialSource.PRIVATE_KEY
        assert loader.call_count == 2

    def test_raw_key_without_identity_is_incomplete(
        self, private_key_pem, no_ambient_credentials
    ):
        inputs = RawCredentialInputs(private_key=private_key_pem)

        with pytest.raises(NoCredentialAvailableError) as exc_info:
            CredentialResolver(inputs).resolve()

        assert exc_info.value.attempted_sources == ALL_SOURCES


class TestRawKeyEndToEnd:
    def test_quoted_escaped_key(self, private_key_pem, identity):
        inputs = RawCredentialInputs(private_key=escaped(private_key_pem), **identity)

        result = CredentialResolver(inputs).resolve()

        assert isinstance(result, ResolvedCredential)
        assert result.private_key.startswith(PEM_HEADER)
        assert result.private_key.endswith(PEM_FOOTER)
        assert "\\n" not in result.private_key
        assert "\n" in result.private_key


class TestExhaustion:
    def test_no_sources_lists_all_four(self, no_ambient_credentials, emitter, recent):
        with pytest.raises(NoCredentialAvailableError) as exc_info:
            CredentialResolver(RawCredentialInputs(), emitter=emitter).resolve()

        error = exc_info.value
        assert error.attempted_sources == ALL_SOURCES
        assert isinstance(error.last_error, AmbientCredentialsUnavailableError)
        for name in ALL_SOURCES:
            assert name in str(error)
        assert recent.snapshot()[0].level == "ERROR"

    def test_skipped_sources_are_not_warnings(self, no_ambient_credentials, emitter, recent):
        with pytest.raises(NoCredentialAvailableError):
            CredentialResolver(RawCredentialInputs(), emitter=emitter).resolve()

        # Only the ambient discovery actually failed
        assert len(warnings_of(recent)) == 1

    def test_blank_inputs_count_as_absent(self, no_ambient_credentials):
        inputs = RawCredentialInputs(
            service_account_json="   ", private_key_base64="", private_key="\n"
        )
        assert inputs.service_account_json is None
        assert inputs.private_key is None
        with pytest.raises(NoCredentialAvailableError):
            CredentialResolver(inputs).resolve()


class TestApplicationDefault:
    def test_uses_discovered_project(self):
        with patch(
            "google.auth.default", return_value=(MagicMock(), "ambient-project")
        ) as mock_default:
            result = from_application_default(RawCredentialInputs())

        mock_default.assert_called_once_with(scopes=FIREBASE_SCOPES)
        assert isinstance(result, AmbientCredential)
        # Only the identity is kept; the SDK rediscovers the credentials itself
        assert "credentials" not in result.model_dump()
        assert result.project_id == "ambient-project"
        assert result.storage_bucket == "ambient-project.appspot.com"

    def test_configured_values_take_precedence(self, identity):
        with patch("google.auth.default", return_value=(MagicMock(), "other")):
            result = from_application_default(RawCredentialInputs(**identity))

        assert result.project_id == PROJECT_ID
        assert result.storage_bucket == BUCKET

    def test_no_project_and_no_bucket_is_incomplete(self):
        with patch("google.auth.default", return_value=(MagicMock(), None)):
            with pytest.raises(IncompleteCredentialError):
                from_application_default(RawCredentialInputs())

    def test_discovery_failure_is_structured(self, no_ambient_credentials):
        with pytest.raises(AmbientCredentialsUnavailableError) as exc_info:
            from_application_default(RawCredentialInputs())
        assert exc_info.value.source is CredentialSource.APPLICATION_DEFAULT


class TestResolvedCredential:
    def test_rejects_empty_fields(self):
        with pytest.raises(ValueError):
            ResolvedCredential(
                project_id="",
                client_email=CLIENT_EMAIL,
                private_key="key",
                storage_bucket=BUCKET,
                source=CredentialSource.PRIVATE_KEY,
            )

    def test_repr_hides_private_key(self, private_key_pem, identity):
        result = CredentialResolver(
            RawCredentialInputs(private_key=private_key_pem, **identity)
        ).resolve()
        assert "PRIVATE KEY" not in repr(result)

    def test_empty_raw_key_is_reported_as_malformed(
        self, identity, no_ambient_credentials, emitter, recent
    ):
        inputs = RawCredentialInputs(private_key='""', **identity)

        with pytest.raises(NoCredentialAvailableError):
            CredentialResolver(inputs, emitter=emitter).resolve()

        failures = warnings_of(recent)
        # Newest first: ambient discovery, then the raw key
        assert [event.error_type for event in failures] == [
            "AmbientCredentialsUnavailableError",
            "MalformedKeyError",
        ]
        assert "private_key" in failures[1].message
