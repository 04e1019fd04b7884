from abc import ABC, abstractmethod

from app.notifications.models import CompletionEvent


class BaseCompletionNotifier(ABC):
    """Contract for all completion notification channels."""

    @abstractmethod
    def notify(self, event: CompletionEvent) -> None:
        """Hand a completed document over to the channel.

        Args:
            event: Document id, customer id and file name of the completed document.

        Raises:
            NotificationError: on any delivery failure.
        """

    def close(self) -> None:
        """Release resources held by the channel. No-op by default."""
