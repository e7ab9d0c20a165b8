"""
Application-level exceptions raised by the repository and service layers.
"""

from typing import Iterable

# canonical app-level exception

class ServiceError(Exception):
    """
    Base exception for repository/service errors.

    - message: human-friendly message (safe to show to clients)
    - fields: optional list of field names related to the error (e.g., ['username'])
    - constraint: optional DB constraint name or identifier (for logs only)
    - error_code: canonical short code (e.g., 'duplicate', 'invalid_input') used by clients
    """

    # Map canonical error_code -> default HTTP status.
    ERROR_CODE_TO_STATUS = {
        "invalid_input": 400,
        "not_found": 404,
        "duplicate": 409,
        "operation_failed": 500,
        "storage_failure": 503,
        # fallback: default to 400 for codes not listed here
    }

    def __init__(self, message: str, *, fields: Iterable[str] | None = None,
                 constraint: str | None = None, error_code: str | None = None):
        super().__init__(message)
        self.message = message  # user-friendly message
        self.fields = list(fields) if fields else None
        self.constraint = constraint
        self.error_code = error_code

    def __str__(self) -> str:
        base = self.message
        parts = []
        if self.fields:
            parts.append(f"fields: {', '.join(self.fields)}")
        if self.constraint:
            parts.append(f"constraint: {self.constraint}")
        if self.error_code:
            parts.append(f"code: {self.error_code}")
        if parts:
            return f"{base} ({'; '.join(parts)})"
        return base

    def to_payload(self) -> dict:
        """
        Return a JSON-serializable dict suitable for HTTP responses.
        Standard shape:
            {
                "detail": "A human-friendly message",
                "code": "duplicate",           # optional canonical code
                "fields": ["username"],        # optional list for client usage
            }
        The `constraint` value and raw DB messages are never part of the payload.
        """
        payload = {"detail": self.message}
        if self.error_code:
            payload["code"] = self.error_code
        if self.fields:
            payload["fields"] = list(self.fields)
        return payload

    def http_status(self) -> int:
        """
        Return the HTTP status code that should accompany this error
        (looked up from error_code; 400 when the code is unknown or missing).
        """
        if self.error_code:
            return self.ERROR_CODE_TO_STATUS.get(self.error_code, 400)
        return 400


class InvalidInputError(ServiceError):
    """Caller supplied missing, blank or malformed arguments. Never retried."""

    def __init__(self, message: str, *, fields: Iterable[str] | None = None):
        super().__init__(message, fields=fields, error_code="invalid_input")


class UserNotFoundError(ServiceError):
    def __init__(self, message: str = "User not found", *, fields: Iterable[str] | None = None):
        super().__init__(message, fields=fields, error_code="not_found")


class DuplicateUsernameError(ServiceError):
    """
    The username is already taken.

    Raised both by the service pre-check and by the repository when the unique
    constraint rejects a write, so callers see one error kind regardless of timing.
    """

    def __init__(self, username: str | None = None, *, message: str | None = None,
                 constraint: str | None = None):
        if message is None:
            message = (
                f"Username '{username}' already exists" if username else "Username already exists"
            )
        super().__init__(message, fields=["username"], constraint=constraint, error_code="duplicate")
        self.username = username


class StorageError(ServiceError):
    """
    Infrastructure failure while talking to the database (connectivity, timeout,
    constraint errors unrelated to username uniqueness). The original exception is
    kept as __cause__.
    """

    def __init__(self, message: str = "Storage operation failed", *, fields: Iterable[str] | None = None,
                 constraint: str | None = None):
        super().__init__(message, fields=fields, constraint=constraint, error_code="storage_failure")


class OperationFailedError(ServiceError):
    """Unexpected failure surfaced by the service layer; the cause is preserved."""

    def __init__(self, message: str = "Operation failed"):
        super().__init__(message, error_code="operation_failed")


__all__ = [
    "ServiceError",
    "InvalidInputError",
    "UserNotFoundError",
    "DuplicateUsernameError",
    "StorageError",
    "OperationFailedError",
]
