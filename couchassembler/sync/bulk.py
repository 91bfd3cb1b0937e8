"""Thread-safe builder for the single ``_bulk_docs`` request body."""

import json
import threading

from .reconciler import ChangeSet, Deletion


class BulkRequest:
    """Accumulates serialized documents from concurrent pipelines.

    Each pipeline appends its whole change set in one call, so the entries
    of one pipeline are contiguous in the body. The relative order of the
    pipelines is not fixed.

    Examples:
        >>> request = BulkRequest()
        >>> request.extend(ChangeSet(deletions=[Deletion("_design/old", "2-b")]))
        >>> request.body()
        '{"docs":[{"_id":"_design/old","_rev":"2-b","_deleted":true}]}'
    """

    def __init__(self) -> None:
        self._entries: list[tuple[str, str]] = []
        self._upserts = 0
        self._deletions = 0
        self._lock = threading.Lock()

    def extend(self, changes: ChangeSet) -> None:
        """Append every write of a change set."""
        entries = [
            (document.id or "", document.serialize()) for document in changes.upserts
        ]
        entries.extend(
            (deletion.id, self._serialize_deletion(deletion))
            for deletion in changes.deletions
        )
        with self._lock:
            self._entries.extend(entries)
            self._upserts += len(changes.upserts)
            self._deletions += len(changes.deletions)

    @staticmethod
    def _serialize_deletion(deletion: Deletion) -> str:
        return json.dumps(deletion.to_json(), separators=(",", ":"), ensure_ascii=False)

    @property
    def upserts(self) -> int:
        with self._lock:
            return self._upserts

    @property
    def deletions(self) -> int:
        with self._lock:
            return self._deletions

    @property
    def ids(self) -> list[str]:
        """Document ids in body order."""
        with self._lock:
            return [doc_id for doc_id, _ in self._entries]

    @property
    def size(self) -> int:
        """Length of the encoded body in bytes."""
        return len(self.body().encode("utf-8"))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def body(self) -> str:
        """Return the request body, ``{"docs":[...]}``."""
        with self._lock:
            docs = ",".join(serialized for _, serialized in self._entries)
        return '{"docs":[' + docs + "]}"
