from app.notifications.base import BaseCompletionNotifier
from app.notifications.factory import NotifierFactory
from app.notifications.models import CompletionEvent

__all__ = ["BaseCompletionNotifier", "CompletionEvent", "NotifierFactory"]
