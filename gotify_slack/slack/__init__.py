"""
Slack adapters: the user/channel directory and the real-time transport.
"""

from gotify_slack.slack.directory import SlackDirectory, display_name
from gotify_slack.slack.transport import SlackRTMTransport, parse_event

__all__ = ["SlackDirectory", "SlackRTMTransport", "display_name", "parse_event"]
