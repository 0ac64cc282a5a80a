"""
Generic JSON webhook notifier.
"""

from typing import Any

import requests

from gotify_slack.core import Notifier, OutboundNotification
from gotify_slack.logging_config import get_logger
from gotify_slack.registry import register_notifier

logger = get_logger(__name__)

SUPPORTED_METHODS = ("POST", "PUT")


@register_notifier("webhook")
class WebhookNotifier(Notifier):
    """
    Sends each notification as a JSON document to an HTTP endpoint.

    The body is {"title": ..., "message": ..., "priority": ...}, which is
    also what Gotify's own /message endpoint accepts.

    Config:
        url: Endpoint URL
        method: POST or PUT (default: POST)
        headers: Extra request headers
        timeout: Request timeout in seconds (default: 10)
    """

    def __init__(self, config: dict[str, Any]) -> None:
        super().__init__(config)
        self.method = str(config.get("method", "POST")).upper()
        if self.method not in SUPPORTED_METHODS:
            raise ValueError(f"Unsupported HTTP method: {self.method}")

    def notify(self, notification: OutboundNotification) -> bool:
        url = self.config["url"]
        body = {
            "title": notification.title,
            "message": notification.message,
            "priority": notification.priority,
        }

        try:
            response = requests.request(
                self.method,
                url,
                json=body,
                headers=self.config.get("headers") or {},
                timeout=self.config.get("timeout", 10)
            )
            response.raise_for_status()
        except requests.RequestException:
            logger.error("Webhook %s %s failed", self.method, url, exc_info=True)
            return False

        logger.debug("Webhook %s %s accepted '%s'", self.method, url, notification.title)
        return True
