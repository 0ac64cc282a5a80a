"""
Error taxonomy for the Slack bridge.

Configuration and lifecycle errors propagate to whoever called enable,
disable or validate_and_set_config. LookupFailure is the only per-event error
and never leaves the bridge loop.
"""


class BridgeError(Exception):
    """Base class for all bridge errors."""


class NotConfiguredError(BridgeError):
    """Raised when the plugin is enabled before a credential is stored."""


class InvalidCredentialError(BridgeError):
    """Raised when a Slack token fails validation."""


class LookupFailure(BridgeError):
    """Raised when a user or channel cannot be resolved."""


class TransportError(BridgeError):
    """Raised when the real-time connection cannot be established."""


class TransportDisconnectError(BridgeError):
    """Raised when releasing the real-time connection fails."""


class FatalAuthError(BridgeError):
    """Raised when Slack invalidates the credential while streaming."""
