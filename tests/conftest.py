"""
Pytest configuration and fixtures for gotify-slack tests.

Provides in-memory stand-ins for the Slack transport and directory so the
bridge and plugin can be exercised without a network.
"""

import queue
import threading
from collections.abc import Iterator

import pytest

from gotify_slack.core import (
    BridgeSession,
    ChannelInfo,
    Directory,
    InboundEvent,
    OutboundNotification,
    Transport,
)
from gotify_slack.errors import BridgeError, LookupFailure

_END = object()


class FakeTransport(Transport):
    """Transport fed by the test through push()."""

    def __init__(
        self,
        session: BridgeSession | None = None,
        connect_error: Exception | None = None,
        disconnect_error: BridgeError | None = None,
        connect_gate: threading.Event | None = None,
    ) -> None:
        self.session = session or BridgeSession(self_id="UBOT", team="Acme")
        self.connect_error = connect_error
        self.disconnect_error = disconnect_error
        self.connect_gate = connect_gate

        self.credentials: list[str] = []
        self.connect_entered = threading.Event()
        self.connected = threading.Event()
        self.streaming = threading.Event()
        self.disconnect_calls = 0
        self._queue: queue.Queue[object] = queue.Queue()

    @property
    def is_open(self) -> bool:
        return self.connected.is_set() and self.disconnect_calls == 0

    def connect(self, credential: str) -> BridgeSession:
        self.credentials.append(credential)
        self.connect_entered.set()
        if self.connect_gate is not None:
            self.connect_gate.wait(timeout=5)
        if self.connect_error is not None:
            raise self.connect_error
        self.connected.set()
        return self.session

    def disconnect(self) -> None:
        self.disconnect_calls += 1
        if self.disconnect_error is not None:
            raise self.disconnect_error
        self._queue.put(_END)

    def events(self) -> Iterator[InboundEvent]:
        self.streaming.set()
        while True:
            item = self._queue.get()
            if item is _END:
                return
            yield item  # type: ignore[misc]

    def push(self, *events: InboundEvent) -> None:
        for event in events:
            self._queue.put(event)

    def end_stream(self) -> None:
        """End the stream as if Slack closed it."""
        self._queue.put(_END)


class FakeDirectory(Directory):
    """Directory backed by dictionaries."""

    def __init__(
        self,
        users: dict[str, str] | None = None,
        channels: dict[str, str] | None = None,
        valid_tokens: set[str] | None = None,
    ) -> None:
        self.users = users if users is not None else {}
        self.channels = channels if channels is not None else {}
        self.valid_tokens = valid_tokens if valid_tokens is not None else set()
        self.user_lookups: list[str] = []
        self.channel_lookups: list[str] = []

    def lookup_user(self, user_id: str) -> str:
        self.user_lookups.append(user_id)
        if user_id not in self.users:
            raise LookupFailure(f"user_not_found: {user_id}")
        return self.users[user_id]

    def lookup_channel(self, channel_id: str) -> ChannelInfo:
        self.channel_lookups.append(channel_id)
        if channel_id not in self.channels:
            raise LookupFailure(f"channel_not_found: {channel_id}")
        return ChannelInfo(id=channel_id, name=self.channels[channel_id])

    def validate_credential(self, token: str) -> bool:
        return token in self.valid_tokens


class RecordingHandler:
    """Message handler that remembers what it was given."""

    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.notifications: list[OutboundNotification] = []
        self.received = threading.Event()

    def __call__(self, notification: OutboundNotification) -> bool:
        self.notifications.append(notification)
        self.received.set()
        return self.result


class FakeSlack:
    """Factories handing out fakes to the plugin, keeping track of them."""

    def __init__(self, directory: FakeDirectory) -> None:
        self.directory = directory
        self.transports: list[FakeTransport] = []
        self.connect_error: Exception | None = None

    def transport_factory(self) -> FakeTransport:
        transport = FakeTransport(connect_error=self.connect_error)
        self.transports.append(transport)
        return transport

    def directory_factory(self, token: str) -> FakeDirectory:
        return self.directory

    @property
    def last_transport(self) -> FakeTransport:
        return self.transports[-1]


@pytest.fixture
def directory() -> FakeDirectory:
    """Directory knowing a few users and channels."""
    return FakeDirectory(
        users={
            "UBOT": "Bridge Bot",
            "U123": "Alice",
            "U789": "Jane Doe",
        },
        channels={
            "C001": "general",
            "D001": "",
        },
        valid_tokens={"xoxb-valid", "xoxb-other"},
    )


@pytest.fixture
def transport() -> FakeTransport:
    """Fresh fake transport."""
    return FakeTransport()


@pytest.fixture
def handler() -> RecordingHandler:
    """Message handler recording notifications."""
    return RecordingHandler()


@pytest.fixture
def fake_slack(directory: FakeDirectory) -> FakeSlack:
    """Factories for plugin tests."""
    return FakeSlack(directory)
