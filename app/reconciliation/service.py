from typing import Any

from app.database.repositories.documents_repository import DocumentsRepository
from app.database.repositories.unmatched_reports_repository import UnmatchedReportsRepository
from app.database.repositories.user_roles_repository import UserRolesRepository
from app.logging.logger import Log
from app.notifications.base import BaseCompletionNotifier
from app.reconciliation.applier import ReconciliationApplier
from app.reconciliation.batch import parse_batch
from app.reconciliation.engine import reconcile
from app.reconciliation.exceptions import UnauthorizedCallerError
from app.reconciliation.grouping import (
    build_document_index,
    group_reports,
    index_attached_reports,
)
from app.reconciliation.models import ReconciliationResult
from app.reconciliation.normalizer import has_trailing_counter

ALLOWED_ROLES = frozenset({"staff", "admin"})


class ReconciliationService:
    """Reconciles one batch of uploaded reports against awaiting documents.

    Pipeline: authorize -> validate -> load -> group -> reconcile -> persist.
    Completion notifications are fired by the applier as each key commits.
    """

    def __init__(
        self,
        doc_repo: DocumentsRepository,
        roles_repo: UserRolesRepository,
        applier: ReconciliationApplier,
    ) -> None:
        self._doc_repo = doc_repo
        self._roles_repo = roles_repo
        self._applier = applier

    def process_batch(self, caller_id: str, raw_reports: Any) -> ReconciliationResult:
        """Run the full reconciliation for one batch.

        Raises:
            UnauthorizedCallerError: if the caller is not staff or admin.
            InvalidBatchError: if the batch is empty or malformed.
        """
        self.authorize(caller_id)
        reports = parse_batch(raw_reports)
        Log.info(f"Reconciling {len(reports)} reports uploaded by {caller_id}")

        documents = self._doc_repo.find_awaiting()
        holders = self._doc_repo.find_holding_paths([r.file_path for r in reports])
        Log.info(
            f"Loaded {len(documents)} awaiting documents, "
            f"{len(holders)} already holding batch reports"
        )

        docs_by_key = build_document_index(documents)
        reports_by_key = group_reports(reports)
        for report in reports:
            Log.debug(
                f"'{report.file_name}' -> '{report.report_key}'"
                + (" (counter stripped)" if has_trailing_counter(report.file_name) else "")
            )

        plan = reconcile(
            docs_by_key,
            reports_by_key,
            index_attached_reports(holders, reports),
        )
        applied = self._applier.apply(plan, uploaded_by=caller_id)
        result = applied.result()

        stats = result.stats
        Log.info(
            f"Batch reconciled: total={stats.total_reports} mapped={stats.mapped_count} "
            f"unmatched={stats.unmatched_count} needs_review={stats.needs_review_count} "
            f"completed={stats.completed_count} failed_keys={stats.failed_key_count}"
        )
        if stats.failed_key_count:
            Log.warning(f"Persistence failed for keys: {applied.failed_keys}")
        return result

    def authorize(self, caller_id: str) -> None:
        """Reject callers that are not staff or admin.

        Raises:
            UnauthorizedCallerError: on a missing caller or a disallowed role.
        """
        if not caller_id:
            raise UnauthorizedCallerError("Unauthorized: no caller")
        role = self._roles_repo.get_role(caller_id)
        if role not in ALLOWED_ROLES:
            raise UnauthorizedCallerError(
                f"Forbidden: user {caller_id} is not staff or admin"
            )


def build_service(notifier: BaseCompletionNotifier) -> ReconciliationService:
    """Build a ReconciliationService with all required adapters."""
    doc_repo = DocumentsRepository()
    applier = ReconciliationApplier(doc_repo, UnmatchedReportsRepository(), notifier)
    return ReconciliationService(
        doc_repo=doc_repo,
        roles_repo=UserRolesRepository(),
        applier=applier,
    )
