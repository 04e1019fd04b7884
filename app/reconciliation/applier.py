from app.database.connection import get_connection
from app.database.repositories.documents_repository import DocumentsRepository
from app.database.repositories.unmatched_reports_repository import UnmatchedReportsRepository
from app.logging.logger import Log
from app.notifications.base import BaseCompletionNotifier
from app.notifications.dispatch import notify_completed
from app.reconciliation.models import KeyOutcome, ReconciliationPlan, UnmatchedEntry


class ReconciliationApplier:
    """Persists a ReconciliationPlan, one transaction per identity key.

    A key whose writes fail is rolled back and reported with its reports as
    unmatched; other keys are unaffected. Documents completed by a key are
    announced to the notifier as soon as that key has committed.
    """

    def __init__(
        self,
        doc_repo: DocumentsRepository,
        unmatched_repo: UnmatchedReportsRepository,
        notifier: BaseCompletionNotifier,
    ) -> None:
        self._doc_repo = doc_repo
        self._unmatched_repo = unmatched_repo
        self._notifier = notifier

    def apply(self, plan: ReconciliationPlan, uploaded_by: str | None) -> ReconciliationPlan:
        """Write every outcome and return the plan as it was actually persisted."""
        applied = ReconciliationPlan(total_reports=plan.total_reports)
        for outcome in plan.outcomes:
            if not outcome.has_mutations:
                applied.outcomes.append(outcome)
                continue
            try:
                self._apply_outcome(outcome, uploaded_by)
            except Exception as exc:
                Log.exception(f"Failed to persist outcome for key '{outcome.key}': {exc}")
                failed = outcome.as_failed()
                self._requeue(failed.unmatched, uploaded_by)
                applied.outcomes.append(failed)
                applied.failed_keys.append(outcome.key)
                continue
            applied.outcomes.append(outcome)
            notify_completed(self._notifier, outcome.completed)
        return applied

    def _apply_outcome(self, outcome: KeyOutcome, uploaded_by: str | None) -> None:
        with get_connection() as conn:
            try:
                for update in outcome.updates:
                    self._doc_repo.apply_update(conn, update)
                for flag in outcome.review_flags:
                    self._doc_repo.flag_for_review(conn, flag)
                inserted = sum(
                    1
                    for entry in outcome.unmatched
                    if self._unmatched_repo.record(conn, entry, uploaded_by)
                )
                conn.commit()
            except Exception:
                conn.rollback()
                raise
        Log.debug(
            f"Key '{outcome.key}': {len(outcome.updates)} document updates, "
            f"{len(outcome.review_flags)} review flags, "
            f"{inserted}/{len(outcome.unmatched)} unmatched rows written"
        )

    def _requeue(self, entries: list[UnmatchedEntry], uploaded_by: str | None) -> None:
        if not entries:
            return
        try:
            with get_connection() as conn:
                try:
                    for entry in entries:
                        self._unmatched_repo.record(conn, entry, uploaded_by)
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
        except Exception as exc:
            Log.error(
                f"Failed to record {len(entries)} unmatched reports after a write "
                f"failure: {exc}"
            )
