from app.logging.logger import Log
from app.notifications.base import BaseCompletionNotifier
from app.notifications.exceptions import NotificationError
from app.notifications.models import CompletionEvent


class CompositeNotifier(BaseCompletionNotifier):
    """Fans an event out to every configured channel.

    A failing channel does not stop the others; if any failed, a single
    NotificationError is raised after all channels were tried.
    """

    def __init__(self, notifiers: list[BaseCompletionNotifier]) -> None:
        self._notifiers = list(notifiers)

    @property
    def notifiers(self) -> list[BaseCompletionNotifier]:
        return list(self._notifiers)

    def notify(self, event: CompletionEvent) -> None:
        failures: list[str] = []
        for notifier in self._notifiers:
            try:
                notifier.notify(event)
            except NotificationError as exc:
                Log.warning(f"{type(notifier).__name__} failed: {exc}")
                failures.append(str(exc))
        if failures:
            raise NotificationError(
                f"{len(failures)} of {len(self._notifiers)} channels failed for "
                f"document {event.document_id}"
            )

    def close(self) -> None:
        for notifier in self._notifiers:
            notifier.close()
