"""Terminal notifier."""
from typing import Optional

from rich.console import Console
from rich.markup import escape

from .base import ERROR, SUCCESS, Notification, Notifier

_STYLES = {
    SUCCESS: "green",
    ERROR: "red",
}


class ConsoleNotifier(Notifier):
    """Prints notifications with rich markup."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def notify(self, notification: Notification) -> None:
        style = _STYLES.get(notification.level, "blue")
        text = f"[{style}]{escape(notification.message)}[/{style}]"
        if notification.action:
            text += f" [dim]({notification.action})[/dim]"
        self.console.print(text)
