"""Manual follow-up for reports and documents the engine could not resolve."""

from dataclasses import replace

from app.database.connection import get_connection
from app.database.repositories.documents_repository import DocumentsRepository
from app.database.repositories.unmatched_reports_repository import UnmatchedReportsRepository
from app.logging.logger import Log
from app.notifications.base import BaseCompletionNotifier
from app.notifications.dispatch import notify_completed
from app.reconciliation.exceptions import DocumentStateConflictError, ReportAlreadyResolvedError
from app.reconciliation.models import (
    SLOT_AI,
    SLOT_ORDER,
    SLOT_SIMILARITY,
    STATUS_COMPLETED,
    Document,
    DocumentUpdate,
    UnmatchedReport,
)


class ManualResolutionService:
    """Staff operations behind the unmatched-reports and needs-review queues."""

    def __init__(
        self,
        doc_repo: DocumentsRepository,
        unmatched_repo: UnmatchedReportsRepository,
        notifier: BaseCompletionNotifier,
    ) -> None:
        self._doc_repo = doc_repo
        self._unmatched_repo = unmatched_repo
        self._notifier = notifier

    def list_pending_unmatched(self, identity_key: str | None = None) -> list[UnmatchedReport]:
        return self._unmatched_repo.find_pending(identity_key)

    def assign_unmatched_report(
        self,
        report_id: int,
        document_id: str,
        slot: str,
        staff_id: str | None = None,
    ) -> Document:
        """Attach an unmatched report to a document slot chosen by staff.

        The report is marked resolved in the same transaction. When both slots
        are filled the document is completed, its review flag cleared, and the
        completion notification fired.

        Raises:
            ValueError: on an unknown slot.
            ReportAlreadyResolvedError: if the report was already resolved.
            DocumentStateConflictError: if the document is completed or the slot
                holds a different report.
        """
        if slot not in SLOT_ORDER:
            raise ValueError(f"Unknown report slot '{slot}'. Choose from: {list(SLOT_ORDER)}")

        report = self._unmatched_repo.find_by_id(report_id)
        if report.resolved:
            raise ReportAlreadyResolvedError(f"Unmatched report {report_id} is already resolved")

        document = self._doc_repo.find_by_id(document_id)
        if document.is_completed:
            raise DocumentStateConflictError(f"Document {document_id} is already completed")
        current = document.slot_path(slot)
        if current is not None and current != report.file_path:
            raise DocumentStateConflictError(
                f"Document {document_id} already holds a {slot} report"
            )

        other = SLOT_AI if slot == SLOT_SIMILARITY else SLOT_SIMILARITY
        complete = document.slot_path(other) is not None
        update = DocumentUpdate(
            document_id=document.id,
            similarity_report_path=report.file_path if slot == SLOT_SIMILARITY else None,
            ai_report_path=report.file_path if slot == SLOT_AI else None,
            complete=complete,
            clear_review=complete,
        )

        with get_connection() as conn:
            try:
                self._doc_repo.apply_update(conn, update)
                self._unmatched_repo.mark_resolved(conn, report.id, document.id, staff_id)
                conn.commit()
            except Exception:
                conn.rollback()
                raise

        Log.info(f"Assigned report {report.file_name} to document {document.id} as {slot}")
        assigned = replace(
            document,
            similarity_report_path=update.similarity_report_path or document.similarity_report_path,
            ai_report_path=update.ai_report_path or document.ai_report_path,
        )
        if complete:
            assigned = replace(assigned, status=STATUS_COMPLETED, needs_review=False, review_reason=None)
            notify_completed(self._notifier, [assigned])
        return assigned

    def clear_review(self, document_id: str) -> None:
        """Return a flagged document to automatic matching."""
        self._doc_repo.clear_review(document_id)
        Log.info(f"Cleared review flag on document {document_id}")


def build_resolution_service(notifier: BaseCompletionNotifier) -> ManualResolutionService:
    """Build a ManualResolutionService with all required adapters."""
    return ManualResolutionService(
        doc_repo=DocumentsRepository(),
        unmatched_repo=UnmatchedReportsRepository(),
        notifier=notifier,
    )
