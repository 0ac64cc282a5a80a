"""
Identity and channel resolution.
"""

from gotify_slack.core import ChannelInfo, Directory


class IdentityResolver:
    """
    Resolves Slack ids to display names.

    Every call goes to the directory; nothing is cached, so renamed users and
    channels show up under their new names immediately. Directory errors
    surface as LookupFailure and the caller decides what to drop.
    """

    def __init__(self, directory: Directory) -> None:
        self.directory = directory

    def resolve_user(self, user_id: str) -> str:
        """Return the display name for a user id."""
        return self.directory.lookup_user(user_id)

    def resolve_channel(self, channel_id: str) -> ChannelInfo:
        """Return the channel info for a conversation id."""
        return self.directory.lookup_channel(channel_id)
