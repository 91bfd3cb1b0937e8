"""Data models for CouchDB API responses."""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class RemoteRevision:
    """Current revision of one remote document, from an ``_all_docs`` row."""

    id: str
    """Document identifier"""

    rev: Optional[str]
    """Revision token, None for keys the database does not know"""

    deleted: bool = False
    """True if the latest revision is a deletion tombstone"""

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Optional["RemoteRevision"]:
        """Create a RemoteRevision from an ``_all_docs`` row.

        Rows for unknown keys (``{"key": ..., "error": "not_found"}``) carry
        no id and yield None.

        Args:
            row: Row dictionary from the response

        Returns:
            RemoteRevision instance, or None for error rows
        """
        doc_id = row.get("id")
        if doc_id is None or "error" in row:
            return None
        value = row.get("value") or {}
        return cls(
            id=doc_id,
            rev=value.get("rev"),
            deleted=bool(value.get("deleted", False)),
        )

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> list["RemoteRevision"]:
        """Parse every row of an ``_all_docs`` response."""
        revisions = []
        for row in data.get("rows", []):
            revision = cls.from_row(row)
            if revision is not None:
                revisions.append(revision)
        return revisions


@dataclass
class BulkResult:
    """Outcome for one document of a ``_bulk_docs`` request."""

    id: Optional[str]
    rev: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BulkResult":
        return cls(
            id=data.get("id"),
            rev=data.get("rev"),
            error=data.get("error"),
            reason=data.get("reason"),
        )

    @classmethod
    def from_api_response(cls, data: Any) -> list["BulkResult"]:
        """Parse a ``_bulk_docs`` response, a JSON array of per-item results."""
        if not isinstance(data, list):
            return []
        return [cls.from_dict(item) for item in data if isinstance(item, dict)]
