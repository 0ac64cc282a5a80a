"""
Console notifier, for trying the bridge out without a Gotify server.
"""

import sys

from gotify_slack.core import Notifier, OutboundNotification
from gotify_slack.registry import register_notifier


@register_notifier("console")
class ConsoleNotifier(Notifier):
    """
    Writes notifications to the terminal.

    Config:
        stream: "stdout" (default) or "stderr"
    """

    def notify(self, notification: OutboundNotification) -> bool:
        stream = sys.stderr if self.config.get("stream") == "stderr" else sys.stdout

        stream.write(f"[priority {notification.priority}] {notification.title}\n")
        for line in notification.message.splitlines() or [""]:
            stream.write(f"    {line}\n")
        stream.flush()
        return True
