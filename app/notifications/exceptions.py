class NotificationError(Exception):
    """Raised when a completion notification cannot be handed over."""
