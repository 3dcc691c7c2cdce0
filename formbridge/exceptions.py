"""
FormBridge Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for the three failure families of the API.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return the `{success: false, error: <message>}` envelope with the
       matching HTTP status code.
Who:   Raised by the Firestore connector, services and middleware.

Exception Hierarchy:
    FormBridgeError (base)
    ├── InitializationError      → 500 (credential missing/invalid/unreadable)
    ├── ValidationError          → 400 (client can fix the input)
    │   ├── MissingFieldError    → 400 (kind: MissingField)
    │   └── InvalidFormatError   → 400 (kind: InvalidFormat)
    ├── StoreError               → 500 (Firestore read/write/count failed)
    └── PayloadTooLargeError     → 413 (body above the configured ceiling)
"""

from typing import Any, Dict, Optional


class FormBridgeError(Exception):
    """
    Base exception for all FormBridge application errors.

    Attributes:
        message:  User-facing error description (returned in the API response)
        context:  Additional debug info (logged, not returned to the client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class InitializationError(FormBridgeError):
    """
    Raised when the Firestore connection cannot be established.

    When:    No credential configured, credential file missing or unparseable,
             required service-account field absent, SDK rejected the key.
    HTTP:    500 Internal Server Error

    Inside the connector the specific reason is logged and kept on
    `FirestoreConnector.last_error`; request handlers report the generic
    "Firebase not initialized" message.
    """

    def __init__(
        self,
        message: str = "Firebase not initialized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ValidationError(FormBridgeError):
    """
    Raised when client input fails validation.

    HTTP:    400 Bad Request

    `kind` is a short machine-readable label for the failed rule.
    """

    kind = "Validation"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        ctx["kind"] = self.kind
        super().__init__(message=message, context=ctx)
        self.field = field


class MissingFieldError(ValidationError):
    """A required submission field is absent or empty."""

    kind = "MissingField"

    def __init__(
        self,
        message: str = "Missing required fields: username, email, password",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, field=field, context=context)


class InvalidFormatError(ValidationError):
    """A submission field is present but malformed (e.g. the email shape)."""

    kind = "InvalidFormat"

    def __init__(
        self,
        message: str = "Invalid email format",
        field: Optional[str] = "email",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, field=field, context=context)


class StoreError(FormBridgeError):
    """
    Raised when a Firestore operation fails.

    What:    Connectivity, permission, quota or query errors from the store.
    HTTP:    500 Internal Server Error

    The message is the store's own message, passed through verbatim so the
    caller sees what the store reported.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PayloadTooLargeError(FormBridgeError):
    """
    Raised when a request body exceeds the configured size ceiling.

    HTTP:    413 Payload Too Large
    """

    def __init__(
        self,
        max_size: int,
        actual_size: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["max_size"] = max_size
        if actual_size is not None:
            ctx["actual_size"] = actual_size
        super().__init__(
            message=f"Request body exceeds {max_size} bytes",
            context=ctx,
        )
        self.max_size = max_size
