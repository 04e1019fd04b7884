import httpx

from app.notifications.base import BaseCompletionNotifier
from app.notifications.exceptions import NotificationError
from app.notifications.models import CompletionEvent


class WebhookNotifier(BaseCompletionNotifier):
    """Posts completion events to the external push/email dispatcher."""

    def __init__(
        self,
        *,
        url: str,
        timeout_seconds: int,
        token: str = "",
        client: httpx.Client | None = None,
    ) -> None:
        if not url:
            raise ValueError("notification_webhook_url is required for the webhook channel")
        self._url = url
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = client or httpx.Client(timeout=timeout_seconds, headers=headers)

    def notify(self, event: CompletionEvent) -> None:
        try:
            response = self._client.post(self._url, json=event.as_json())
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise NotificationError(
                f"Dispatcher rejected document {event.document_id}: "
                f"HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise NotificationError(
                f"Dispatcher network error for document {event.document_id}: {exc}"
            ) from exc

    def close(self) -> None:
        self._client.close()
