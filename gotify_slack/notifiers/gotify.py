"""
Gotify notifier for gotify-slack.
"""

import requests

from gotify_slack.core import Notifier, OutboundNotification
from gotify_slack.logging_config import get_logger
from gotify_slack.registry import register_notifier

logger = get_logger(__name__)


@register_notifier("gotify")
class GotifyNotifier(Notifier):
    """
    Pushes notifications to a Gotify server.

    Config:
        url: Base URL of the Gotify server
        app_token: Application token the messages are posted as
        priority: Optional priority overriding the one set by the bridge
        timeout: Request timeout in seconds (default: 10)
    """

    def notify(self, notification: OutboundNotification) -> bool:
        """Send notification via the Gotify message API."""
        url = self.config["url"].rstrip("/") + "/message"
        app_token = self.config["app_token"]
        priority = self.config.get("priority", notification.priority)
        timeout = self.config.get("timeout", 10)

        payload = {
            "title": notification.title,
            "message": notification.message,
            "priority": priority,
        }

        try:
            response = requests.post(
                url,
                json=payload,
                headers={"X-Gotify-Key": app_token},
                timeout=timeout
            )
            response.raise_for_status()
            logger.info("Gotify notification sent: %s", notification.title)
            return True
        except requests.RequestException:
            logger.error(
                "Failed to send Gotify notification: %s",
                notification.title,
                exc_info=True
            )
            return False
