"""
Inline mention rewriting.
"""

import re

from gotify_slack.errors import LookupFailure
from gotify_slack.logging_config import get_logger
from gotify_slack.resolver import IdentityResolver

logger = get_logger(__name__)

# <@U123> or <@U123|alice>
MENTION_PATTERN = re.compile(r"<@([^>|]+)(?:\|[^>]*)?>")

ERROR_PLACEHOLDER = "@Error"


class MentionRewriter:
    """Replaces Slack user references in message text with display names."""

    def __init__(self, resolver: IdentityResolver) -> None:
        self.resolver = resolver

    def rewrite(self, text: str) -> str:
        """
        Rewrite every user reference in text.

        Each reference is resolved on its own; one that fails to resolve
        becomes "@Error" and the rest of the text is still rewritten.

        Args:
            text: Raw Slack message text

        Returns:
            Text with references replaced by "@<display name>"
        """
        return MENTION_PATTERN.sub(self._replace, text)

    def _replace(self, match: re.Match[str]) -> str:
        user_id = match.group(1).strip()
        try:
            return "@" + self.resolver.resolve_user(user_id)
        except LookupFailure:
            logger.debug("Could not resolve mentioned user %s", user_id, exc_info=True)
            return ERROR_PLACEHOLDER
