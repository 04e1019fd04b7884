from app.database.repositories.user_notifications_repository import UserNotificationsRepository
from app.logging.logger import Log
from app.notifications.base import BaseCompletionNotifier
from app.notifications.exceptions import NotificationError
from app.notifications.models import CompletionEvent

TITLE = "Document Completed"


class DatabaseNotifier(BaseCompletionNotifier):
    """Writes an in-app notification row for the document's customer."""

    def __init__(self, repo: UserNotificationsRepository) -> None:
        self._repo = repo

    def notify(self, event: CompletionEvent) -> None:
        if event.customer_id is None:
            Log.info(f"Document {event.document_id} has no customer, skipping in-app notification")
            return
        message = (
            f'Your document "{event.file_name}" has been processed '
            "and is ready for download."
        )
        try:
            self._repo.create(event.customer_id, TITLE, message)
        except Exception as exc:
            raise NotificationError(
                f"Failed to store notification for document {event.document_id}: {exc}"
            ) from exc
