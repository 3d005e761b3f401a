"""Firebase client lifecycle.

``FirebaseProvider`` owns the process-wide Firebase client handle. The
handle is created lazily on first use, at most once at a time: concurrent
first callers share one in-flight initialization and all observe its result
or its failure. A failure is not cached, so the next call starts over from
the first credential source.
"""

from collections.abc import Callable
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from enum import StrEnum
from functools import lru_cache
import logging
import threading
from typing import Any

import firebase_admin

from vlada.core.config import Settings, get_settings
from vlada.core.exceptions import (
    CredentialResolutionFailedError,
    NoCredentialAvailableError,
)
from vlada.credentials.models import CredentialSource, RawCredentialInputs
from vlada.credentials.resolver import CredentialResolver
from vlada.observability.diagnostics import DiagnosticEmitter, get_diagnostic_emitter
from vlada.storage.document_store import DocumentStore
from vlada.storage.firebase_client import FirebaseClientFactory, FirebaseClientHandle
from vlada.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)

DIAGNOSTIC_SOURCE = "firebase-provider"


class ClientState(StrEnum):
    """Lifecycle states of the Firebase client handle."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


def _sources_through(source: CredentialSource) -> list[str]:
    ordered = list(CredentialSource)
    return [item.value for item in ordered[: ordered.index(source) + 1]]


class FirebaseProvider:
    """Lazily initialized, single-flight holder of the Firebase client."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        emitter: DiagnosticEmitter | None = None,
        resolver_factory: Callable[[], CredentialResolver] | None = None,
        client_factory: FirebaseClientFactory | None = None,
        reload_settings: bool = False,
    ) -> None:
        self.settings = settings or get_settings()
        self._reload_settings = reload_settings
        self.emitter = emitter or DiagnosticEmitter()
        self._resolver_factory = resolver_factory or self._default_resolver
        self._client_factory = client_factory or FirebaseClientFactory(
            self.settings, self.emitter
        )

        self._lock = threading.Lock()
        self._state = ClientState.UNINITIALIZED
        self._client: FirebaseClientHandle | None = None
        self._inflight: Future[FirebaseClientHandle] | None = None
        self._attempts = 0
        self._last_error: CredentialResolutionFailedError | None = None

    @property
    def state(self) -> ClientState:
        return self._state

    def _default_resolver(self) -> CredentialResolver:
        # A retry after a failure must see environment values that arrived late
        settings = Settings() if self._reload_settings else self.settings
        return CredentialResolver(
            RawCredentialInputs.from_settings(settings), emitter=self.emitter
        )

    def get_client(self) -> FirebaseClientHandle:
        """Return the Firebase client, initializing it on first use.

        Raises:
            CredentialResolutionFailedError: If initialization failed or did
                not finish within ``FIREBASE_INIT_TIMEOUT`` seconds.
        """
        with self._lock:
            if self._state is ClientState.READY and self._client is not None:
                return self._client

            future = self._inflight
            owner = future is None
            if future is None:
                future = Future()
                self._inflight = future
                self._state = ClientState.INITIALIZING
                self._attempts += 1

        if owner:
            self._initialize(future)

        timeout = self.settings.firebase_init_timeout
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as e:
            msg = f"Firebase initialization did not finish within {timeout}s"
            raise CredentialResolutionFailedError([], TimeoutError(msg)) from e

    def get_document_store(self) -> DocumentStore:
        return self.get_client().document_store

    def get_object_store(self) -> ObjectStore:
        return self.get_client().object_store

    def status(self) -> dict[str, Any]:
        """Current lifecycle status, without triggering initialization."""
        with self._lock:
            client = self._client
            last_error = self._last_error
            return {
                "state": self._state.value,
                "source": client.source.value if client else None,
                "storageBucket": client.bucket_name if client else None,
                "attempts": self._attempts,
                "attemptedSources": last_error.attempted_sources if last_error else [],
                "lastError": str(last_error) if last_error else None,
            }

    def reset(self) -> None:
        """Drop the cached client so the next access initializes again."""
        with self._lock:
            client = self._client
            self._client = None
            self._inflight = None
            self._last_error = None
            self._attempts = 0
            self._state = ClientState.UNINITIALIZED
        if client is not None:
            firebase_admin.delete_app(client.app)

    def _initialize(self, future: Future[FirebaseClientHandle]) -> None:
        self.emitter.info(DIAGNOSTIC_SOURCE, "Initializing Firebase Admin")
        try:
            client = self._build_client()
        except CredentialResolutionFailedError as e:
            self._fail(future, e)
        except Exception as e:
            logger.exception("Unexpected error during Firebase initialization")
            self._fail(future, CredentialResolutionFailedError([], e))
        except BaseException as e:
            # Waiters must not hang on an interrupted initialization
            self._fail(future, CredentialResolutionFailedError([], e))
            raise
        else:
            with self._lock:
                self._client = client
                self._last_error = None
                self._inflight = None
                self._state = ClientState.READY
            future.set_result(client)

    def _build_client(self) -> FirebaseClientHandle:
        resolver = self._resolver_factory()
        try:
            resolution = resolver.resolve()
        except NoCredentialAvailableError as e:
            raise CredentialResolutionFailedError(
                e.attempted_sources, e.last_error
            ) from e

        try:
            return self._client_factory.create(resolution)
        except Exception as e:
            raise CredentialResolutionFailedError(
                _sources_through(resolution.source), e
            ) from e

    def _fail(
        self,
        future: Future[FirebaseClientHandle],
        error: CredentialResolutionFailedError,
    ) -> None:
        with self._lock:
            self._client = None
            self._last_error = error
            self._inflight = None
            self._state = ClientState.FAILED
        self.emitter.error(
            DIAGNOSTIC_SOURCE,
            "Firebase Admin initialization failed",
            {
                "attemptedSources": error.attempted_sources,
                "lastError": str(error.last_error) if error.last_error else None,
                "lastErrorType": (
                    type(error.last_error).__name__ if error.last_error else None
                ),
            },
        )
        future.set_exception(error)


@lru_cache
def get_firebase_provider() -> FirebaseProvider:
    """Process-wide Firebase provider."""
    return FirebaseProvider(
        get_settings(), emitter=get_diagnostic_emitter(), reload_settings=True
    )


def reset_firebase_provider() -> None:
    """Tear down the process-wide provider; used between tests."""
    if get_firebase_provider.cache_info().currsize:
        get_firebase_provider().reset()
    get_firebase_provider.cache_clear()
