"""API client for a CouchDB database."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from .config import config
from .exceptions import (
    CouchAPIError,
    CouchAuthenticationError,
    CouchConfigError,
    CouchInvalidResponseError,
    CouchNetworkError,
    CouchNotFoundError,
    CouchPermissionError,
)
from .models import BulkResult, RemoteRevision
from .utils import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


class CouchClient:
    """Client for the CouchDB endpoints used to push documents.

    Only two endpoints matter for a push: ``_all_docs`` to learn current
    revisions and ``_bulk_docs`` to write everything in one request. Failed
    requests are not retried.
    """

    def __init__(
        self,
        database_url: str | None = None,
        username: str | None = None,
        password: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize CouchDB client.

        Args:
            database_url: URL of the database, e.g. http://localhost:5984/app
                (uses config if not provided). Credentials embedded in the
                URL are honoured.
            username: Optional username for basic authentication
            password: Optional password for basic authentication
            timeout: Request timeout in seconds (default: 30.0)
            transport: Optional httpx transport, mainly for tests
        """
        self.database_url = (database_url or config.database_url or "").rstrip("/")
        self.username = username
        self.password = password
        self.timeout = timeout
        self.transport = transport

        if not self.database_url:
            raise CouchConfigError(
                "Database URL not configured. Pass it on the command line "
                "or set the COUCHDB_URL environment variable."
            )

        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            auth = None
            if self.username or self.password:
                auth = httpx.BasicAuth(self.username or "", self.password or "")
            self._client = httpx.Client(
                auth=auth,
                headers={"Accept": "application/json"},
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self.transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def _handle_http_error(self, e: httpx.HTTPStatusError) -> CouchAPIError:
        """Translate an HTTP error into a CouchAPIError.

        Args:
            e: The HTTP error exception

        Returns:
            Exception to raise
        """
        status_code = e.response.status_code

        if status_code == 401:
            return CouchAuthenticationError("Invalid credentials or unauthorized")
        elif status_code == 403:
            return CouchPermissionError("Access forbidden - check your permissions")
        elif status_code == 404:
            return CouchNotFoundError(f"Database not found: {self.database_url}")

        error_msg = f"Request failed with status {status_code}"

        # CouchDB reports failures as {"error": ..., "reason": ...}
        try:
            if e.response.content:
                error_data = e.response.json()
                if isinstance(error_data, dict):
                    msg = error_data.get("reason") or error_data.get("error")
                    if msg:
                        error_msg = f"{error_msg}: {msg}"
        except ValueError:
            pass

        return CouchAPIError(error_msg)

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Make a request against the database.

        Args:
            method: HTTP method
            endpoint: Path relative to the database URL
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data

        Raises:
            CouchAPIError: If the request fails
        """
        url = self.database_url
        if endpoint:
            url = f"{url}/{endpoint.lstrip('/')}"
        client = self._get_client()

        try:
            response = client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._handle_http_error(e) from e
        except httpx.RequestError as e:
            raise CouchNetworkError(f"Network error: {e}") from e

        content_type = response.headers.get("Content-Type", "")
        if response.content and "text/html" in content_type:
            raise CouchInvalidResponseError(
                "Server returned HTML instead of JSON - check the database URL"
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise CouchInvalidResponseError("Invalid JSON response from server") from e

    # =========================
    # Database Operations
    # =========================

    def get_database_info(self) -> dict[str, Any]:
        """Get database metadata (name, document count, ...).

        Returns:
            Database info dictionary
        """
        result: dict[str, Any] = self._request("GET", "")
        return result

    def all_docs(
        self,
        start_key: str | None = None,
        end_key: str | None = None,
        inclusive_end: bool = True,
        keys: list[str] | None = None,
    ) -> dict[str, Any]:
        """Query the ``_all_docs`` view.

        Either a key range or an explicit key list is used. Key lists are
        posted in the request body, so there is no limit on their length.

        Args:
            start_key: First key of the range
            end_key: Last key of the range
            inclusive_end: Whether end_key itself is included
            keys: Explicit list of keys; overrides the range

        Returns:
            Raw response with a ``rows`` list
        """
        if keys is not None:
            result: dict[str, Any] = self._request(
                "POST", "_all_docs", json={"keys": keys}
            )
            return result

        params: dict[str, str] = {}
        if start_key is not None:
            params["startkey"] = json.dumps(start_key)
        if end_key is not None:
            params["endkey"] = json.dumps(end_key)
        if not inclusive_end:
            params["inclusive_end"] = "false"
        result = self._request("GET", "_all_docs", params=params)
        return result

    def list_revisions(
        self,
        start_key: str | None = None,
        end_key: str | None = None,
        inclusive_end: bool = True,
        keys: list[str] | None = None,
    ) -> list[RemoteRevision]:
        """List current revisions for a key range or a key list.

        Pass ``start_key``/``end_key`` for a range query (a GET) or ``keys``
        for a key list (a POST). Rows for missing documents are skipped;
        deleted documents are kept with ``deleted=True``.
        """
        data = self.all_docs(
            start_key=start_key,
            end_key=end_key,
            inclusive_end=inclusive_end,
            keys=keys,
        )
        revisions = RemoteRevision.from_api_response(data)
        logger.debug(f"Fetched {len(revisions)} remote revision(s)")
        return revisions

    def bulk_docs(self, body: str) -> list[BulkResult]:
        """Write documents with one ``_bulk_docs`` request.

        Args:
            body: Serialized request body (``{"docs": [...]}``)

        Returns:
            One BulkResult per submitted document

        Raises:
            CouchAPIError: If the request as a whole fails
        """
        data = self._request(
            "POST",
            "_bulk_docs",
            content=body.encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )
        return BulkResult.from_api_response(data)
