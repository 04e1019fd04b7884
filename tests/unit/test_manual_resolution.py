from unittest.mock import MagicMock, patch

import pytest

from app.database.repositories.documents_repository import DocumentsRepository
from app.database.repositories.unmatched_reports_repository import UnmatchedReportsRepository
from app.notifications.base import BaseCompletionNotifier
from app.reconciliation.exceptions import DocumentStateConflictError, ReportAlreadyResolvedError
from app.reconciliation.models import (
    REASON_EXCESS_REPORTS,
    SLOT_AI,
    SLOT_SIMILARITY,
    STATUS_COMPLETED,
    DocumentUpdate,
    UnmatchedReport,
)
from app.reconciliation.resolution import ManualResolutionService


def _mock_connection(mock_get_conn: MagicMock) -> MagicMock:
    mock_conn = MagicMock()
    mock_get_conn.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_get_conn.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn


def _report(resolved: bool = False) -> UnmatchedReport:
    return UnmatchedReport(
        id=5,
        file_name="essay (3).pdf",
        identity_key="essay",
        file_path="reports/essay (3).pdf",
        reason=REASON_EXCESS_REPORTS,
        resolved=resolved,
    )


def _make_service(document, report=None) -> tuple[ManualResolutionService, MagicMock, MagicMock, MagicMock]:
    doc_repo = MagicMock(spec=DocumentsRepository)
    doc_repo.find_by_id.return_value = document
    unmatched_repo = MagicMock(spec=UnmatchedReportsRepository)
    unmatched_repo.find_by_id.return_value = report or _report()
    notifier = MagicMock(spec=BaseCompletionNotifier)
    service = ManualResolutionService(doc_repo, unmatched_repo, notifier)
    return service, doc_repo, unmatched_repo, notifier


class TestAssignUnmatchedReport:
    @patch("app.reconciliation.resolution.get_connection")
    def test_fills_slot_and_resolves_report(self, mock_get_conn: MagicMock, make_document) -> None:
        mock_conn = _mock_connection(mock_get_conn)
        service, doc_repo, unmatched_repo, notifier = _make_service(make_document("1"))

        assigned = service.assign_unmatched_report(5, "1", SLOT_SIMILARITY, staff_id="staff-2")

        doc_repo.apply_update.assert_called_once_with(
            mock_conn,
            DocumentUpdate(document_id="1", similarity_report_path="reports/essay (3).pdf"),
        )
        unmatched_repo.mark_resolved.assert_called_once_with(mock_conn, 5, "1", "staff-2")
        mock_conn.commit.assert_called_once()
        assert assigned.similarity_report_path == "reports/essay (3).pdf"
        assert not assigned.is_completed
        notifier.notify.assert_not_called()

    @patch("app.reconciliation.resolution.get_connection")
    def test_completes_flagged_document(self, mock_get_conn: MagicMock, make_document) -> None:
        mock_conn = _mock_connection(mock_get_conn)
        doc = make_document(
            "1",
            similarity_report_path="reports/essay.pdf",
            needs_review=True,
            review_reason="3 reports share normalized identity key (at most 2 expected)",
        )
        service, doc_repo, _unmatched_repo, notifier = _make_service(doc)

        assigned = service.assign_unmatched_report(5, "1", SLOT_AI)

        doc_repo.apply_update.assert_called_once_with(
            mock_conn,
            DocumentUpdate(
                document_id="1",
                ai_report_path="reports/essay (3).pdf",
                complete=True,
                clear_review=True,
            ),
        )
        assert assigned.status == STATUS_COMPLETED
        assert assigned.needs_review is False
        assert assigned.review_reason is None
        notifier.notify.assert_called_once()
        assert notifier.notify.call_args.args[0].document_id == "1"

    @patch("app.reconciliation.resolution.get_connection")
    def test_rolls_back_on_failure(self, mock_get_conn: MagicMock, make_document) -> None:
        mock_conn = _mock_connection(mock_get_conn)
        service, doc_repo, unmatched_repo, _notifier = _make_service(make_document("1"))
        doc_repo.apply_update.side_effect = DocumentStateConflictError("raced")

        with pytest.raises(DocumentStateConflictError):
            service.assign_unmatched_report(5, "1", SLOT_SIMILARITY)

        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()
        unmatched_repo.mark_resolved.assert_not_called()

    def test_unknown_slot_raises(self, make_document) -> None:
        service, _doc_repo, unmatched_repo, _notifier = _make_service(make_document("1"))

        with pytest.raises(ValueError, match="Unknown report slot"):
            service.assign_unmatched_report(5, "1", "plagiarism")

        unmatched_repo.find_by_id.assert_not_called()

    def test_already_resolved_report_raises(self, make_document) -> None:
        service, doc_repo, _unmatched_repo, _notifier = _make_service(
            make_document("1"), report=_report(resolved=True)
        )

        with pytest.raises(ReportAlreadyResolvedError):
            service.assign_unmatched_report(5, "1", SLOT_SIMILARITY)

        doc_repo.find_by_id.assert_not_called()

    def test_completed_document_raises(self, make_document) -> None:
        service, _doc_repo, _unmatched_repo, _notifier = _make_service(
            make_document("1", status=STATUS_COMPLETED)
        )

        with pytest.raises(DocumentStateConflictError, match="already completed"):
            service.assign_unmatched_report(5, "1", SLOT_SIMILARITY)

    def test_occupied_slot_raises(self, make_document) -> None:
        service, doc_repo, _unmatched_repo, _notifier = _make_service(
            make_document("1", ai_report_path="reports/other.pdf")
        )

        with pytest.raises(DocumentStateConflictError, match="already holds"):
            service.assign_unmatched_report(5, "1", SLOT_AI)

        doc_repo.apply_update.assert_not_called()


class TestQueues:
    def test_list_pending_unmatched(self, make_document) -> None:
        service, _doc_repo, unmatched_repo, _notifier = _make_service(make_document())
        unmatched_repo.find_pending.return_value = [_report()]

        assert service.list_pending_unmatched("essay") == [_report()]
        unmatched_repo.find_pending.assert_called_once_with("essay")

    def test_clear_review(self, make_document) -> None:
        service, doc_repo, _unmatched_repo, _notifier = _make_service(make_document())

        service.clear_review("1")

        doc_repo.clear_review.assert_called_once_with("1")
