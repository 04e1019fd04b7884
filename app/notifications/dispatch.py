from collections.abc import Iterable

from app.logging.logger import Log
from app.notifications.base import BaseCompletionNotifier
from app.notifications.models import CompletionEvent
from app.reconciliation.models import Document


def notify_completed(notifier: BaseCompletionNotifier, documents: Iterable[Document]) -> None:
    """Fire one completion trigger per document; failures are logged, never raised."""
    for document in documents:
        try:
            notifier.notify(CompletionEvent.from_document(document))
        except Exception as exc:
            Log.error(f"Completion notification failed for document {document.id}: {exc}")
