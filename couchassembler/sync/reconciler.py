"""Revision reconciliation between built documents and the database."""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from ..assembler.values import Document
from ..models import RemoteRevision

logger = logging.getLogger(__name__)


@dataclass
class Deletion:
    """A remote document scheduled for removal."""

    id: str
    """Document identifier"""

    rev: str
    """Last observed revision"""

    def to_json(self) -> dict[str, Any]:
        return {"_id": self.id, "_rev": self.rev, "_deleted": True}


@dataclass
class ChangeSet:
    """Writes produced by one reconciliation."""

    upserts: list[Document] = field(default_factory=list)
    """Documents to create or update (updates carry ``rev``)"""

    deletions: list[Deletion] = field(default_factory=list)
    """Remote documents with no local counterpart"""

    @property
    def is_empty(self) -> bool:
        return not self.upserts and not self.deletions


class RevisionIndex:
    """Current remote revisions keyed by document id.

    Entries are removed as documents claim them; whatever is left after
    reconciliation exists remotely but not locally.

    Examples:
        >>> index = RevisionIndex({"_design/a": "1-x"})
        >>> index.claim("_design/a")
        '1-x'
        >>> index.claim("_design/a") is None
        True
    """

    def __init__(self, revisions: Optional[dict[str, str]] = None):
        self._revisions: dict[str, str] = dict(revisions or {})

    @classmethod
    def from_revisions(cls, revisions: list[RemoteRevision]) -> "RevisionIndex":
        """Index remote rows, ignoring deleted documents and rows without a rev."""
        index = cls()
        for revision in revisions:
            if revision.deleted or revision.rev is None:
                continue
            index._revisions[revision.id] = revision.rev
        return index

    def __len__(self) -> int:
        return len(self._revisions)

    def __contains__(self, doc_id: str) -> bool:
        return doc_id in self._revisions

    def claim(self, doc_id: str) -> Optional[str]:
        """Remove and return the revision for ``doc_id``, or None."""
        return self._revisions.pop(doc_id, None)

    def unclaimed(self) -> list[tuple[str, str]]:
        """Return the remaining (id, rev) pairs, sorted by id."""
        return sorted(self._revisions.items())


class RevisionReconciler:
    """Matches built documents to remote revisions."""

    def reconcile(
        self, documents: list[Document], index: RevisionIndex, prune: bool = False
    ) -> ChangeSet:
        """Compute the writes needed to make the database match ``documents``.

        A document whose id is in the index becomes an update and its entry
        is claimed; any other document is an insert. With ``prune`` every
        entry left unclaimed is scheduled for deletion.

        Args:
            documents: Documents with resolved identifiers
            index: Remote revisions; consumed by this call
            prune: Whether to delete remote documents with no local counterpart

        Returns:
            ChangeSet with upserts in input order and deletions sorted by id
        """
        changes = ChangeSet()

        for document in documents:
            if document.id is None:
                logger.debug(f"Skipping document without id from {document.origin}")
                continue
            rev = index.claim(document.id)
            if rev is not None:
                document.rev = rev
            changes.upserts.append(document)

        if prune:
            for doc_id, rev in index.unclaimed():
                changes.deletions.append(Deletion(id=doc_id, rev=rev))

        logger.debug(
            f"Reconciled {len(changes.upserts)} upsert(s), "
            f"{len(changes.deletions)} deletion(s)"
        )
        return changes
