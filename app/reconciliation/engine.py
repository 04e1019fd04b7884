"""Pure matching policy between batch reports and awaiting documents.

The engine performs no I/O. It turns the two key maps into a
ReconciliationPlan: per-key decisions plus the document and unmatched-report
mutations that realise them. Persisting the plan is the applier's job.
"""

from collections.abc import Mapping as MappingType

from app.reconciliation.models import (
    REASON_AMBIGUOUS_DOCUMENT_KEY,
    REASON_EXCESS_REPORTS,
    REASON_NO_MATCHING_DOCUMENT,
    REASON_SLOTS_FULL,
    SLOT_AI,
    SLOT_ORDER,
    SLOT_SIMILARITY,
    Document,
    DocumentUpdate,
    KeyOutcome,
    Mapping,
    ReconciliationPlan,
    ReportFile,
    ReviewFlag,
    UnmatchedEntry,
)

MAX_REPORTS_PER_DOCUMENT = len(SLOT_ORDER)

AMBIGUOUS_KEY_REVIEW_REASON = "multiple documents share normalized identity key"


def excess_reports_review_reason(count: int) -> str:
    return (
        f"{count} reports share normalized identity key "
        f"(at most {MAX_REPORTS_PER_DOCUMENT} expected)"
    )


def reconcile(
    docs_by_key: MappingType[str, list[Document]],
    reports_by_key: MappingType[str, list[ReportFile]],
    attached: MappingType[str, Document] | None = None,
) -> ReconciliationPlan:
    """Decide, for every report key, where its reports go.

    Args:
        docs_by_key: Eligible documents grouped by document key.
        reports_by_key: Batch reports grouped by report key, in batch order.
        attached: Batch paths already stored in a document slot, mapped to
            that document. Such reports are reported as mapped without a
            mutation, which makes replaying a batch a no-op.
    """
    attached = attached or {}
    plan = ReconciliationPlan()
    for key, reports in reports_by_key.items():
        plan.total_reports += len(reports)
        plan.outcomes.append(
            _reconcile_key(key, docs_by_key.get(key, []), reports, attached)
        )
    return plan


def _reconcile_key(
    key: str,
    docs: list[Document],
    reports: list[ReportFile],
    attached: MappingType[str, Document],
) -> KeyOutcome:
    outcome = KeyOutcome(key=key)
    if len(docs) == 1 and len(reports) > MAX_REPORTS_PER_DOCUMENT:
        # Counted over the whole group, including reports already attached.
        outcome.review_flags.append(
            ReviewFlag(docs[0].id, excess_reports_review_reason(len(reports)))
        )
        _unmatch(outcome, reports, REASON_EXCESS_REPORTS)
        return outcome

    pending = _split_already_applied(outcome, reports, attached)
    if not pending:
        return outcome

    if not docs:
        _unmatch(outcome, pending, REASON_NO_MATCHING_DOCUMENT)
        return outcome

    if len(docs) > 1:
        for doc in docs:
            outcome.review_flags.append(ReviewFlag(doc.id, AMBIGUOUS_KEY_REVIEW_REASON))
        _unmatch(outcome, pending, REASON_AMBIGUOUS_DOCUMENT_KEY)
        return outcome

    _assign_slots(outcome, docs[0], pending)
    return outcome


def _split_already_applied(
    outcome: KeyOutcome,
    reports: list[ReportFile],
    attached: MappingType[str, Document],
) -> list[ReportFile]:
    pending: list[ReportFile] = []
    for report in reports:
        holder = attached.get(report.file_path)
        slot = holder.slot_holding(report.file_path) if holder is not None else None
        if holder is None or slot is None:
            pending.append(report)
            continue
        outcome.mapped.append(
            Mapping(
                document_id=holder.id,
                file_name=report.file_name,
                file_path=report.file_path,
                slot=slot,
                already_applied=True,
            )
        )
    return pending


def _unmatch(outcome: KeyOutcome, reports: list[ReportFile], reason: str) -> None:
    outcome.unmatched.extend(
        UnmatchedEntry(
            file_name=report.file_name,
            file_path=report.file_path,
            identity_key=outcome.key,
            reason=reason,
        )
        for report in reports
    )


def _assign_slots(outcome: KeyOutcome, doc: Document, reports: list[ReportFile]) -> None:
    # Batch order decides the slot: first empty of similarity, then AI.
    slots = {slot: doc.slot_path(slot) for slot in SLOT_ORDER}
    assigned: dict[str, str] = {}
    for report in reports:
        slot = next((s for s in SLOT_ORDER if slots[s] is None), None)
        if slot is None:
            _unmatch(outcome, [report], REASON_SLOTS_FULL)
            continue
        slots[slot] = report.file_path
        assigned[slot] = report.file_path
        outcome.mapped.append(
            Mapping(
                document_id=doc.id,
                file_name=report.file_name,
                file_path=report.file_path,
                slot=slot,
            )
        )

    complete = all(slots.values()) and not doc.is_completed
    if not assigned and not complete:
        return
    outcome.updates.append(
        DocumentUpdate(
            document_id=doc.id,
            similarity_report_path=assigned.get(SLOT_SIMILARITY),
            ai_report_path=assigned.get(SLOT_AI),
            complete=complete,
        )
    )
    if complete:
        outcome.completed.append(doc)
