from dataclasses import dataclass, field
from datetime import datetime

from app.reconciliation.normalizer import document_key, report_key

STATUS_AWAITING = "awaiting"
STATUS_COMPLETED = "completed"

SLOT_SIMILARITY = "similarity"
SLOT_AI = "ai"
SLOT_ORDER = (SLOT_SIMILARITY, SLOT_AI)

REASON_NO_MATCHING_DOCUMENT = "no_matching_document"
REASON_AMBIGUOUS_DOCUMENT_KEY = "ambiguous_document_key"
REASON_EXCESS_REPORTS = "excess_reports"
REASON_SLOTS_FULL = "slots_full"
REASON_PERSISTENCE_FAILED = "persistence_failed"


@dataclass(frozen=True)
class Document:
    """Customer submission awaiting its similarity and AI reports."""

    id: str
    file_name: str
    status: str = STATUS_AWAITING
    similarity_report_path: str | None = None
    ai_report_path: str | None = None
    needs_review: bool = False
    review_reason: str | None = None
    customer_id: str | None = None

    @property
    def document_key(self) -> str:
        return document_key(self.file_name)

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED

    def slot_path(self, slot: str) -> str | None:
        if slot == SLOT_SIMILARITY:
            return self.similarity_report_path or None
        if slot == SLOT_AI:
            return self.ai_report_path or None
        raise ValueError(f"Unknown report slot '{slot}'. Choose from: {list(SLOT_ORDER)}")

    def slot_holding(self, file_path: str) -> str | None:
        """Return the slot that already references ``file_path``, if any."""
        for slot in SLOT_ORDER:
            if self.slot_path(slot) == file_path:
                return slot
        return None


@dataclass(frozen=True)
class ReportFile:
    """Admin-uploaded report already placed in durable storage."""

    file_name: str
    file_path: str

    @property
    def report_key(self) -> str:
        return report_key(self.file_name)


@dataclass(frozen=True)
class UnmatchedReport:
    """Represents a row from the unmatched_reports table."""

    id: int
    file_name: str
    identity_key: str
    file_path: str
    reason: str | None = None
    resolved: bool = False
    matched_document_id: str | None = None
    uploaded_by: str | None = None
    resolved_by: str | None = None
    created_at: datetime | None = None
    resolved_at: datetime | None = None


@dataclass(frozen=True)
class Mapping:
    """A report attached to one of a document's slots.

    ``already_applied`` marks a report that a previous run of the same batch
    already stored in that slot; it produces no mutation.
    """

    document_id: str
    file_name: str
    file_path: str
    slot: str
    already_applied: bool = False

    def as_json(self) -> dict[str, object]:
        return {
            "documentId": self.document_id,
            "fileName": self.file_name,
            "filePath": self.file_path,
            "reportType": self.slot,
            "alreadyApplied": self.already_applied,
        }


@dataclass(frozen=True)
class UnmatchedEntry:
    file_name: str
    file_path: str
    identity_key: str
    reason: str

    def as_json(self) -> dict[str, object]:
        return {
            "fileName": self.file_name,
            "filePath": self.file_path,
            "documentKey": self.identity_key,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ReviewFlag:
    document_id: str
    reason: str

    def as_json(self) -> dict[str, object]:
        return {"documentId": self.document_id, "reason": self.reason}


@dataclass(frozen=True)
class DocumentUpdate:
    """Slot writes and status transition for one document.

    A slot left as None is not touched.
    """

    document_id: str
    similarity_report_path: str | None = None
    ai_report_path: str | None = None
    complete: bool = False
    clear_review: bool = False


@dataclass
class KeyOutcome:
    """Decision for one identity key plus the mutations that realise it."""

    key: str
    mapped: list[Mapping] = field(default_factory=list)
    unmatched: list[UnmatchedEntry] = field(default_factory=list)
    review_flags: list[ReviewFlag] = field(default_factory=list)
    updates: list[DocumentUpdate] = field(default_factory=list)
    completed: list[Document] = field(default_factory=list)

    @property
    def has_mutations(self) -> bool:
        return bool(self.updates or self.review_flags or self.unmatched)

    def as_failed(self) -> "KeyOutcome":
        """Outcome to report when this key's writes could not be persisted.

        Reports mapped by this run fall back to unmatched. Mappings that were
        already durable before the run are kept.
        """
        kept = [m for m in self.mapped if m.already_applied]
        requeued = [
            UnmatchedEntry(
                file_name=m.file_name,
                file_path=m.file_path,
                identity_key=self.key,
                reason=REASON_PERSISTENCE_FAILED,
            )
            for m in self.mapped
            if not m.already_applied
        ]
        requeued.extend(self.unmatched)
        return KeyOutcome(key=self.key, mapped=kept, unmatched=requeued)


@dataclass(frozen=True)
class ReconciliationStats:
    total_reports: int = 0
    mapped_count: int = 0
    unmatched_count: int = 0
    needs_review_count: int = 0
    completed_count: int = 0
    failed_key_count: int = 0

    def as_json(self) -> dict[str, int]:
        return {
            "totalReports": self.total_reports,
            "mappedCount": self.mapped_count,
            "unmatchedCount": self.unmatched_count,
            "needsReviewCount": self.needs_review_count,
            "completedCount": self.completed_count,
            "failedKeyCount": self.failed_key_count,
        }


@dataclass(frozen=True)
class ReconciliationResult:
    """Return contract of one processed batch."""

    mapped: list[Mapping] = field(default_factory=list)
    unmatched: list[UnmatchedEntry] = field(default_factory=list)
    needs_review: list[ReviewFlag] = field(default_factory=list)
    completed_documents: list[str] = field(default_factory=list)
    stats: ReconciliationStats = field(default_factory=ReconciliationStats)

    def as_json(self) -> dict[str, object]:
        return {
            "success": True,
            "mapped": [m.as_json() for m in self.mapped],
            "unmatched": [u.as_json() for u in self.unmatched],
            "needsReview": [r.as_json() for r in self.needs_review],
            "completedDocuments": list(self.completed_documents),
            "stats": self.stats.as_json(),
        }


@dataclass
class ReconciliationPlan:
    """Per-key outcomes of one batch, in the order the keys were first seen."""

    outcomes: list[KeyOutcome] = field(default_factory=list)
    total_reports: int = 0
    failed_keys: list[str] = field(default_factory=list)

    @property
    def completed(self) -> list[Document]:
        return [doc for outcome in self.outcomes for doc in outcome.completed]

    def result(self) -> ReconciliationResult:
        mapped = [m for o in self.outcomes for m in o.mapped]
        unmatched = [u for o in self.outcomes for u in o.unmatched]
        needs_review = [r for o in self.outcomes for r in o.review_flags]
        completed = [doc.id for doc in self.completed]
        stats = ReconciliationStats(
            total_reports=self.total_reports,
            mapped_count=len(mapped),
            unmatched_count=len(unmatched),
            needs_review_count=len(needs_review),
            completed_count=len(completed),
            failed_key_count=len(self.failed_keys),
        )
        return ReconciliationResult(
            mapped=mapped,
            unmatched=unmatched,
            needs_review=needs_review,
            completed_documents=completed,
            stats=stats,
        )
