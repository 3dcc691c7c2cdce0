"""
FormBridge Backend — Firestore Connection Management
======================================================

What:  Lazy, retryable initialization of the Firestore client and the FastAPI
       dependency that hands it to route handlers.
How:   FirestoreConnector resolves a service-account credential, validates it,
       initializes a named firebase_admin App and opens an async Firestore
       client. Success is memoized; failure leaves the connector retryable.
Who:   Owned by the application instance (app.state.connector), created in
       create_app(); used by get_firestore() on every data request.
When:  First attempted during startup (lifespan), then on demand until it
       succeeds once.

State machine:
    UNINITIALIZED ──ensure_ready() ok──▶ READY   (terminal)
          │
          └──ensure_ready() fails──▶ FAILED ──next call──▶ (re-attempt)
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
import firebase_admin
from fastapi import Request
from firebase_admin import credentials, firestore_async
from google.cloud.firestore import AsyncClient

from formbridge.config import Settings
from formbridge.exceptions import InitializationError

logger = logging.getLogger(__name__)

# Fields every Google service-account document carries
REQUIRED_SERVICE_ACCOUNT_FIELDS = (
    "type",
    "project_id",
    "private_key_id",
    "private_key",
    "client_email",
    "client_id",
)


class FirestoreConnector:
    """
    Guarded "initialize once, retry on failure" accessor for the Firestore client.

    Attributes:
        last_error: Reason of the most recent failed attempt (None once ready)

    Concurrency:
        The first calls of concurrent requests are serialized on an asyncio.Lock
        so the firebase_admin App is created at most once. After success,
        ensure_ready() returns without touching the lock.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._lock = asyncio.Lock()
        self._app: Optional[firebase_admin.App] = None
        self._client: Optional[AsyncClient] = None
        self.last_error: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> AsyncClient:
        """The Firestore client. Only valid after ensure_ready() returned True."""
        if self._client is None:
            raise InitializationError()
        return self._client

    async def ensure_ready(self) -> bool:
        """
        Make sure the Firestore client exists, creating it if needed.

        Returns:
            True when the client is available, False when this attempt failed.
            The failure reason is logged and stored on `last_error`.
        """
        if self._client is not None:
            return True

        async with self._lock:
            # Another request may have finished initialization while we waited
            if self._client is not None:
                return True

            try:
                service_account = await self._load_service_account()
                validate_service_account(service_account)
                self._client = self._open_client(service_account)
            except InitializationError as e:
                self.last_error = e.message
                logger.error("Failed to initialize Firebase: %s", e.message)
                return False

            self.last_error = None
            logger.info(
                "Firebase initialized successfully (project=%s)",
                service_account.get("project_id"),
            )
            return True

    async def _load_service_account(self) -> Dict[str, Any]:
        """
        Resolve the credential document from configuration.

        Priority: FIREBASE_SERVICE_ACCOUNT_FILE, then FIREBASE_SERVICE_ACCOUNT.
        """
        file_setting = self._settings.firebase_service_account_file
        inline_setting = self._settings.firebase_service_account

        if file_setting:
            path = Path(file_setting)
            if not path.is_absolute():
                path = Path.cwd() / path
            logger.info("Loading service account from: %s", path)

            if not path.is_file():
                raise InitializationError(f"Service account file not found at: {path}")

            try:
                async with aiofiles.open(path, mode="rb") as f:
                    raw = await f.read()
            except OSError as e:
                raise InitializationError(
                    f"Failed to read service account file {path}: {e}"
                ) from e

            # Undecodable bytes and bad JSON are both a parse failure
            try:
                data = json.loads(raw.decode("utf-8"))
            except ValueError as e:
                raise InitializationError(
                    f"Failed to parse service account file {path}: {e}"
                ) from e

        elif inline_setting:
            logger.info("Loading service account from environment variable")
            try:
                data = json.loads(inline_setting)
            except ValueError as e:
                raise InitializationError(
                    f"Failed to parse FIREBASE_SERVICE_ACCOUNT JSON: {e}"
                ) from e

        else:
            raise InitializationError(
                "Firebase service account not provided. "
                "Set FIREBASE_SERVICE_ACCOUNT_FILE or FIREBASE_SERVICE_ACCOUNT"
            )

        if not isinstance(data, dict):
            raise InitializationError("Service account must be a JSON object")
        return data

    def _open_client(self, service_account: Dict[str, Any]) -> AsyncClient:
        """
        Create the firebase_admin App and the async Firestore client.

        A half-created App is deleted before re-raising, so the next attempt
        can register the same app name again.
        """
        app: Optional[firebase_admin.App] = None
        try:
            cert = credentials.Certificate(service_account)
            app = firebase_admin.initialize_app(cert, name=self._settings.firebase_app_name)
            client = firestore_async.client(app)
        except Exception as e:
            if app is not None:
                firebase_admin.delete_app(app)
            raise InitializationError(
                f"Firebase SDK rejected the service account: {e}",
                context={"error_type": type(e).__name__},
            ) from e

        self._app = app
        return client

    def close(self) -> None:
        """Release the firebase_admin App. Called once at shutdown."""
        if self._app is not None:
            firebase_admin.delete_app(self._app)
            logger.info("Firebase app '%s' deleted", self._app.name)
        self._app = None
        self._client = None


def validate_service_account(service_account: Dict[str, Any]) -> None:
    """Raise InitializationError for the first required field that is missing or empty."""
    for field in REQUIRED_SERVICE_ACCOUNT_FIELDS:
        if not service_account.get(field):
            raise InitializationError(f"Service account missing required field: {field}")


# ── Request Dependency ────────────────────────────────────────────────────
async def get_firestore(request: Request) -> AsyncClient:
    """
    FastAPI dependency that provides the Firestore client for a request.

    Triggers initialization on demand. When that attempt fails, the request is
    aborted with InitializationError (→ 500 "Firebase not initialized").

    Example usage in a route:
        @router.get("/form-submissions")
        async def list_submissions(db: AsyncClient = Depends(get_firestore)):
            ...
    """
    connector: FirestoreConnector = request.app.state.connector
    if not await connector.ensure_ready():
        raise InitializationError(context={"reason": connector.last_error})
    return connector.client
