"""Sync engine for couchassembler - revision reconciliation and bulk writes."""

from .bulk import BulkRequest
from .engine import SyncEngine
from .reconciler import ChangeSet, Deletion, RevisionIndex, RevisionReconciler

__all__ = [
    "SyncEngine",
    "BulkRequest",
    "ChangeSet",
    "Deletion",
    "RevisionIndex",
    "RevisionReconciler",
]
