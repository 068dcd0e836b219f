"""Base notifier for user-visible messages."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

SUCCESS = 'success'
INFO = 'info'
ERROR = 'error'

_MILESTONE_MESSAGES = {
    1: "🎉 Your first saved job! Keep going.",
    5: "🔥 5 jobs saved. You're building a shortlist.",
    10: "⭐ 10 jobs saved!",
    25: "🚀 25 saved jobs. Time to start applying?",
    50: "🏆 50 saved jobs!",
    100: "💯 100 saved jobs. Impressive dedication!",
}


@dataclass(frozen=True)
class Notification:
    level: str
    message: str
    action: Optional[str] = None


def celebrate(milestone: int) -> str:
    """Celebration message for a save-count milestone."""
    return _MILESTONE_MESSAGES.get(milestone, f"🎉 {milestone} jobs saved!")


class Notifier(ABC):
    """Base class for all notifiers."""

    @abstractmethod
    def notify(self, notification: Notification) -> None:
        """Deliver a notification."""

    def success(self, message: str, action: Optional[str] = None) -> None:
        self.notify(Notification(SUCCESS, message, action))

    def info(self, message: str, action: Optional[str] = None) -> None:
        self.notify(Notification(INFO, message, action))

    def error(self, message: str) -> None:
        self.notify(Notification(ERROR, message))


class LogNotifier(Notifier):
    """Writes notifications to the log."""

    def notify(self, notification: Notification) -> None:
        if notification.level == ERROR:
            logger.error(notification.message)
        else:
            logger.info(notification.message)


class MemoryNotifier(Notifier):
    """Collects notifications so a caller can hand them to a UI."""

    def __init__(self):
        self.notifications: List[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def drain(self) -> List[Notification]:
        drained, self.notifications = self.notifications, []
        return drained
