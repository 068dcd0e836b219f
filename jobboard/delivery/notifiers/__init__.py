"""User notifications (toasts)."""

from .base import Notification, Notifier, LogNotifier, MemoryNotifier, celebrate
from .console import ConsoleNotifier

__all__ = ['Notification', 'Notifier', 'LogNotifier', 'MemoryNotifier', 'ConsoleNotifier', 'celebrate']
