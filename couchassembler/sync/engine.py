"""Core sync engine: assembles a source tree and pushes it in one request."""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Optional

from ..api import CouchClient
from ..assembler.builder import DocumentTreeBuilder, design_root_for
from ..assembler.context import BuildContext, ErrorKind
from ..assembler.identifiers import IdentifierResolver
from ..assembler.values import Document
from ..exceptions import CouchAPIError, SyncCancelledError
from ..output import OutputFormatter
from ..utils import DESIGN_FOLDER, DESIGN_PREFIX, format_size
from .bulk import BulkRequest
from .reconciler import ChangeSet, RevisionIndex, RevisionReconciler

logger = logging.getLogger(__name__)

# Exclusive upper bound of the design document key range
DESIGN_END_KEY = "_design0"

DESIGN = "design"
AUXILIARY = "auxiliary"


class SyncEngine:
    """Orchestrates assembly, reconciliation and the bulk write.

    Design documents and loose documents are handled by two pipelines
    running concurrently. Both report into the same BuildContext and append
    their change sets to one BulkRequest; nothing is written unless the
    whole run is free of errors.
    """

    def __init__(
        self,
        client: Optional[CouchClient] = None,
        output: Optional[OutputFormatter] = None,
    ):
        """Initialize sync engine.

        Args:
            client: CouchDB client; only needed for push
            output: Output formatter for displaying progress/status
        """
        self.client = client
        self.output = output or OutputFormatter()
        self.reconciler = RevisionReconciler()

    @staticmethod
    def _validate_source(source: Path) -> None:
        if not source.exists():
            raise ValueError(f"Source directory does not exist: {source}")
        if not source.is_dir():
            raise ValueError(f"Source path is not a directory: {source}")

    def build(self, source: Path, context: BuildContext) -> list[Document]:
        """Assemble every document below ``source`` without touching the database.

        Args:
            source: Source root, or the ``_design`` folder itself
            context: Run context receiving diagnostics

        Returns:
            Design documents followed by loose documents, with identifiers
        """
        self._validate_source(source)
        builder = DocumentTreeBuilder(context)
        resolver = IdentifierResolver(context)

        documents = resolver.resolve_design_documents(
            builder.build_design_documents(design_root_for(source))
        )
        if source.name != DESIGN_FOLDER:
            documents.extend(
                resolver.resolve_documents(builder.build_documents(source))
            )
        return documents

    def push(
        self, source: Path, context: BuildContext, dry_run: bool = False
    ) -> dict:
        """Push a source tree to the database.

        Args:
            source: Source root, or the ``_design`` folder itself
            context: Run context receiving diagnostics
            dry_run: If True, reconcile and show the plan without writing

        Returns:
            Dictionary with push statistics

        Raises:
            ValueError: If the source is not an existing directory
            SyncCancelledError: If the push was interrupted
        """
        self._validate_source(source)
        self._require_client()

        start = time.time()
        stats = self._create_empty_stats()
        bulk = BulkRequest()
        cancel = threading.Event()

        plans = self._run_pipelines(source, context, bulk, cancel)
        stats["design_documents"] = len(plans.get(DESIGN, ChangeSet()).upserts)
        stats["documents"] = len(plans.get(AUXILIARY, ChangeSet()).upserts)
        stats["upserts"] = bulk.upserts
        stats["deletions"] = bulk.deletions
        logger.debug(f"Pipelines finished in {time.time() - start:.2f}s")

        if context.has_failed:
            self.output.warning("Aborting.")
            stats["aborted"] = True
        elif dry_run:
            self._display_plan(plans, bulk)
        else:
            stats["failed_writes"] = self._upload(bulk, context)

        stats["files_assembled"] = context.files_assembled
        stats["errors"] = len(context.errors)
        stats["warnings"] = len(context.warnings)
        return stats

    def _create_empty_stats(self) -> dict:
        return {
            "design_documents": 0,
            "documents": 0,
            "upserts": 0,
            "deletions": 0,
            "failed_writes": 0,
            "files_assembled": 0,
            "errors": 0,
            "warnings": 0,
            "aborted": False,
        }

    def _run_pipelines(
        self,
        source: Path,
        context: BuildContext,
        bulk: BulkRequest,
        cancel: threading.Event,
    ) -> dict[str, ChangeSet]:
        """Run both pipelines concurrently and wait for them."""
        plans: dict[str, ChangeSet] = {}
        executor = ThreadPoolExecutor(max_workers=2)
        futures: dict[Future, str] = {
            executor.submit(
                self._update_design_documents, source, context, bulk, cancel
            ): DESIGN,
            executor.submit(
                self._update_other_documents, source, context, bulk, cancel
            ): AUXILIARY,
        }

        try:
            for future in as_completed(futures):
                kind = futures[future]
                try:
                    plans[kind] = future.result()
                except CouchAPIError as e:
                    context.fatal(str(e))
                except Exception as e:
                    logger.debug(f"The {kind} pipeline failed", exc_info=True)
                    context.fatal(f"Unexpected error: {e}")
        except KeyboardInterrupt:
            cancel.set()
            for future in futures:
                future.cancel()
            if self.client is not None:
                self.client.close()
            executor.shutdown(wait=False, cancel_futures=True)
            raise SyncCancelledError("Push cancelled") from None

        executor.shutdown()
        return plans

    def _require_client(self) -> CouchClient:
        if self.client is None:
            raise ValueError("A database client is required to push")
        return self.client

    @staticmethod
    def _check_cancelled(cancel: threading.Event) -> None:
        if cancel.is_set():
            raise SyncCancelledError("Push cancelled")

    def _update_design_documents(
        self,
        source: Path,
        context: BuildContext,
        bulk: BulkRequest,
        cancel: threading.Event,
    ) -> ChangeSet:
        """Build design documents and reconcile them, deleting orphans."""
        builder = DocumentTreeBuilder(context)
        resolver = IdentifierResolver(context)
        documents = resolver.resolve_design_documents(
            builder.build_design_documents(design_root_for(source))
        )

        self._check_cancelled(cancel)
        revisions = self._require_client().list_revisions(
            start_key=DESIGN_PREFIX, end_key=DESIGN_END_KEY, inclusive_end=False
        )
        index = RevisionIndex.from_revisions(revisions)
        logger.debug(f"Found {len(index)} remote design document(s)")

        changes = self.reconciler.reconcile(documents, index, prune=True)
        bulk.extend(changes)
        return changes

    def _update_other_documents(
        self,
        source: Path,
        context: BuildContext,
        bulk: BulkRequest,
        cancel: threading.Event,
    ) -> ChangeSet:
        """Build loose documents and reconcile them without deleting anything."""
        if source.name == DESIGN_FOLDER:
            return ChangeSet()

        builder = DocumentTreeBuilder(context)
        resolver = IdentifierResolver(context)
        documents = resolver.resolve_documents(builder.build_documents(source))
        if not documents:
            return ChangeSet()

        self._check_cancelled(cancel)
        revisions = self._require_client().list_revisions(
            keys=[document.id for document in documents if document.id is not None]
        )
        index = RevisionIndex.from_revisions(revisions)

        changes = self.reconciler.reconcile(documents, index, prune=False)
        bulk.extend(changes)
        return changes

    def _upload(self, bulk: BulkRequest, context: BuildContext) -> int:
        """Send the bulk request and report per-document failures.

        Returns:
            Number of documents the database refused
        """
        client = self._require_client()
        self.output.info("Uploading...")
        failed = 0
        try:
            results = client.bulk_docs(bulk.body())
        except CouchAPIError as e:
            context.fatal(str(e))
        else:
            for result in results:
                if result.succeeded:
                    continue
                failed += 1
                context.error(
                    result.id or "<unknown>",
                    result.reason or result.error or "Write failed",
                    ErrorKind.REMOTE_WRITE,
                )
            logger.debug(
                f"Wrote {len(results) - failed} of {len(results)} document(s)"
            )
        self.output.success("Done!")
        return failed

    def _display_plan(self, plans: dict[str, ChangeSet], bulk: BulkRequest) -> None:
        """Show what a push would write."""
        self.output.info("Dry run: no changes will be made")
        for kind in (DESIGN, AUXILIARY):
            changes = plans.get(kind)
            if changes is None:
                continue
            for document in changes.upserts:
                action = "update" if document.rev else "create"
                self.output.info(f"  {action:<7} {document.id} ({document.origin})")
            for deletion in changes.deletions:
                self.output.info(f"  {'delete':<7} {deletion.id}")
        self.output.info(
            f"{bulk.upserts} upsert(s), {bulk.deletions} deletion(s), "
            f"{format_size(bulk.size)} request"
        )
