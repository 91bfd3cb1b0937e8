"""couchassembler - assemble folders into CouchDB documents and push them."""

from .api import CouchClient
from .exceptions import (
    CouchAPIError,
    CouchAuthenticationError,
    CouchConfigError,
    CouchInvalidResponseError,
    CouchNetworkError,
    CouchNotFoundError,
    CouchPermissionError,
    SyncCancelledError,
)

__all__ = [
    "CouchClient",
    "CouchAPIError",
    "CouchAuthenticationError",
    "CouchConfigError",
    "CouchInvalidResponseError",
    "CouchNetworkError",
    "CouchNotFoundError",
    "CouchPermissionError",
    "SyncCancelledError",
]
