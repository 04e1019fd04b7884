from dataclasses import dataclass

from app.reconciliation.models import Document


@dataclass(frozen=True)
class CompletionEvent:
    """Trigger fired once a document holds both of its reports."""

    document_id: str
    customer_id: str | None
    file_name: str

    @classmethod
    def from_document(cls, document: Document) -> "CompletionEvent":
        return cls(
            document_id=document.id,
            customer_id=document.customer_id,
            file_name=document.file_name,
        )

    def as_json(self) -> dict[str, object]:
        return {
            "documentId": self.document_id,
            "userId": self.customer_id,
            "fileName": self.file_name,
            "eventType": "document_completed",
        }
