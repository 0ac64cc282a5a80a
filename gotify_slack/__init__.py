"""
gotify-slack - Slack push notifications for Gotify.

This package relays messages from a Slack workspace into a Gotify server,
resolving user and channel names and rewriting inline mentions on the way.
"""

__version__ = "0.1.0"
