"""Exceptions raised by the CouchDB client and the sync engine."""


class CouchAPIError(Exception):
    """Base exception for CouchDB API errors."""


class CouchConfigError(CouchAPIError):
    """Raised when the database URL or credentials are missing or invalid."""


class CouchAuthenticationError(CouchAPIError):
    """Raised when the server rejects the supplied credentials (401)."""


class CouchPermissionError(CouchAPIError):
    """Raised when the user may not access the database (403)."""


class CouchNotFoundError(CouchAPIError):
    """Raised when the database or endpoint does not exist (404)."""


class CouchNetworkError(CouchAPIError):
    """Raised when the server cannot be reached."""


class CouchInvalidResponseError(CouchAPIError):
    """Raised when the server returns something that is not JSON."""


class SyncCancelledError(Exception):
    """Raised when a push is interrupted before its network calls complete."""
