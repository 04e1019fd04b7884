from app.config.settings import Settings
from app.database.repositories.user_notifications_repository import UserNotificationsRepository
from app.notifications.base import BaseCompletionNotifier
from app.notifications.composite import CompositeNotifier
from app.notifications.database_notifier import DatabaseNotifier
from app.notifications.webhook_notifier import WebhookNotifier


class NotifierFactory:
    """Creates the configured completion notification channels."""

    SUPPORTED_CHANNELS = ("database", "webhook", "none")

    @classmethod
    def create(cls, settings: Settings) -> CompositeNotifier:
        """Create a composite over the comma-separated notification_channels."""
        notifiers: list[BaseCompletionNotifier] = []
        for channel in cls._parse_channels(settings.notification_channels):
            if channel == "none":
                continue
            notifiers.append(cls._create_channel(channel, settings))
        return CompositeNotifier(notifiers)

    @classmethod
    def _parse_channels(cls, raw: str) -> list[str]:
        channels = [c.strip().lower() for c in raw.split(",") if c.strip()]
        unknown = [c for c in channels if c not in cls.SUPPORTED_CHANNELS]
        if unknown:
            raise ValueError(
                f"Unknown notification channel(s) {unknown}. "
                f"Choose from: {list(cls.SUPPORTED_CHANNELS)}"
            )
        return list(dict.fromkeys(channels))

    @classmethod
    def _create_channel(cls, channel: str, settings: Settings) -> BaseCompletionNotifier:
        if channel == "database":
            return DatabaseNotifier(UserNotificationsRepository())
        return WebhookNotifier(
            url=settings.notification_webhook_url.strip(),
            token=settings.notification_webhook_token,
            timeout_seconds=settings.notification_timeout_seconds,
        )
