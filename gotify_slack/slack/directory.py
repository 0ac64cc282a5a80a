"""
Slack Web API directory.
"""

from typing import Any

from slack_sdk import WebClient
from slack_sdk.errors import SlackClientError

from gotify_slack.core import ChannelInfo, Directory
from gotify_slack.errors import LookupFailure
from gotify_slack.logging_config import get_logger

logger = get_logger(__name__)


def display_name(user: dict[str, Any]) -> str:
    """
    Pick the name Slack shows for a user.

    Prefers the full name and falls back to the profile display name, then
    the account handle.
    """
    profile = user.get("profile") or {}
    return (
        user.get("real_name")
        or profile.get("real_name")
        or profile.get("display_name")
        or user.get("name")
        or user.get("id", "")
    )


class SlackDirectory(Directory):
    """
    Resolves users and channels through the Slack Web API.

    Every lookup is a fresh API call.
    """

    def __init__(self, token: str, client: WebClient | None = None) -> None:
        """
        Initialize the directory.

        Args:
            token: Slack token used for lookups
            client: Optional preconfigured WebClient
        """
        self.token = token
        self.client = client or WebClient(token=token)

    def lookup_user(self, user_id: str) -> str:
        """Return the display name of a user."""
        try:
            response = self.client.users_info(user=user_id)
        except (SlackClientError, OSError) as e:
            raise LookupFailure(f"Failed to look up user {user_id}: {e}") from e

        user = response.get("user")
        if not user:
            raise LookupFailure(f"Slack returned no user for {user_id}")
        return display_name(user)

    def lookup_channel(self, channel_id: str) -> ChannelInfo:
        """Return the id and name of a conversation."""
        try:
            response = self.client.conversations_info(channel=channel_id, include_locale=True)
        except (SlackClientError, OSError) as e:
            raise LookupFailure(f"Failed to look up channel {channel_id}: {e}") from e

        channel = response.get("channel")
        if not channel:
            raise LookupFailure(f"Slack returned no channel for {channel_id}")
        return ChannelInfo(id=channel.get("id", channel_id), name=channel.get("name") or "")

    def validate_credential(self, token: str) -> bool:
        """Check a token with auth.test."""
        client = self.client if token == self.token else WebClient(token=token)
        try:
            client.auth_test()
        except (SlackClientError, OSError):
            logger.debug("Token validation failed", exc_info=True)
            return False
        return True
