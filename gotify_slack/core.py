"""
Core interfaces and data structures for the Slack bridge.

This module defines the collaborators the bridge talks to:
- Transport: the real-time event stream (where messages come from)
- Directory: user/channel lookups and credential checks (who sent them)
- Notifier: outbound delivery (where notifications go)
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

DEFAULT_PRIORITY = 5
PLATFORM_NAME = "Slack"


@dataclass(frozen=True)
class BridgeSession:
    """Identity captured on a successful handshake."""
    self_id: str  # The bridge's own Slack user id
    team: str  # Workspace display name


@dataclass(frozen=True)
class ChannelInfo:
    """A resolved Slack conversation."""
    id: str
    name: str = ""  # Empty for direct messages


@dataclass(frozen=True)
class OutboundNotification:
    """A push notification ready for delivery."""
    title: str
    message: str
    priority: int = DEFAULT_PRIORITY


@dataclass(frozen=True)
class MessageEvent:
    """A chat message posted in a conversation the bridge can see."""
    sender_id: str
    channel_id: str
    text: str


@dataclass(frozen=True)
class AuthInvalidatedEvent:
    """Slack rejected the credential while the connection was live."""
    reason: str = ""


@dataclass(frozen=True)
class OtherEvent:
    """Any event the bridge does not act on."""
    type: str = ""


InboundEvent = MessageEvent | AuthInvalidatedEvent | OtherEvent

MessageHandler = Callable[[OutboundNotification], bool]


class Transport(ABC):
    """
    Base class for real-time transports.

    A transport owns one connection at a time. events() yields inbound
    events in arrival order and returns once disconnect() has been called.
    """

    @abstractmethod
    def connect(self, credential: str) -> BridgeSession:
        """
        Open the connection.

        Args:
            credential: Token to authenticate with

        Returns:
            BridgeSession describing who we are connected as

        Raises:
            InvalidCredentialError: If the token is rejected
            TransportError: If the connection cannot be established
        """
        raise NotImplementedError

    @abstractmethod
    def disconnect(self) -> None:
        """
        Release the connection and end the event stream.

        Raises:
            TransportDisconnectError: If the connection cannot be released
        """
        raise NotImplementedError

    @abstractmethod
    def events(self) -> Iterator[InboundEvent]:
        """Yield inbound events until the connection is released."""
        raise NotImplementedError


class Directory(ABC):
    """
    Base class for user and channel directories.

    Lookups raise LookupFailure on any error; nothing is cached.
    """

    @abstractmethod
    def lookup_user(self, user_id: str) -> str:
        """Return the display name of a user."""
        raise NotImplementedError

    @abstractmethod
    def lookup_channel(self, channel_id: str) -> ChannelInfo:
        """Return information about a conversation."""
        raise NotImplementedError

    @abstractmethod
    def validate_credential(self, token: str) -> bool:
        """Check whether a token is accepted by the workspace."""
        raise NotImplementedError


class Notifier(ABC):
    """
    Base class for all notifiers.

    Notifiers deliver notifications to external destinations.
    """

    def __init__(self, config: dict[str, Any]):
        """
        Initialize the notifier with configuration.

        Args:
            config: Type-specific configuration dictionary
        """
        self.config = config

    @abstractmethod
    def notify(self, notification: OutboundNotification) -> bool:
        """
        Send a notification.

        Args:
            notification: The notification to deliver

        Returns:
            True if notification was sent successfully, False otherwise
        """
        raise NotImplementedError
