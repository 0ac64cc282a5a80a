"""
Event bridge between the Slack real-time stream and the outbound notifier.
"""

import threading
from enum import Enum

from gotify_slack.core import (
    DEFAULT_PRIORITY,
    PLATFORM_NAME,
    AuthInvalidatedEvent,
    BridgeSession,
    Directory,
    InboundEvent,
    MessageEvent,
    MessageHandler,
    OutboundNotification,
    Transport,
)
from gotify_slack.errors import (
    BridgeError,
    FatalAuthError,
    LookupFailure,
    TransportDisconnectError,
    TransportError,
)
from gotify_slack.logging_config import get_logger
from gotify_slack.mentions import MentionRewriter
from gotify_slack.resolver import IdentityResolver

logger = get_logger(__name__)


class BridgeState(Enum):
    """Lifecycle of a single bridge."""
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    DISCONNECTED = "disconnected"
    FATAL_AUTH = "fatal_auth"


def build_title(team: str, channel_name: str, sender_name: str) -> str:
    """
    Build the notification title for a message.

    The channel segment is left out for unnamed conversations such as
    direct messages.
    """
    parts = [PLATFORM_NAME, team]
    if channel_name:
        parts.append(channel_name)
    parts.append(sender_name)
    return " | ".join(parts)


class EventBridge:
    """
    Relays Slack messages to a message handler.

    A bridge owns one connection for its whole life: it is started once,
    streams until stopped or until Slack invalidates the credential, and is
    then discarded. Events are handled one at a time in arrival order.
    """

    def __init__(
        self,
        credential: str,
        transport: Transport,
        directory: Directory,
        message_handler: MessageHandler,
    ) -> None:
        """
        Initialize the bridge.

        Args:
            credential: Slack token used to connect
            transport: Real-time transport to stream events from
            directory: Directory used to resolve users and channels
            message_handler: Callable receiving each outbound notification
        """
        self.credential = credential
        self.transport = transport
        self.resolver = IdentityResolver(directory)
        self.rewriter = MentionRewriter(self.resolver)
        self.message_handler = message_handler

        self.state = BridgeState.IDLE
        self.session: BridgeSession | None = None
        self.error: BridgeError | None = None

        self._lock = threading.Lock()
        self._stop_requested = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        """Whether the bridge is connecting or streaming."""
        return self.state in (BridgeState.CONNECTING, BridgeState.STREAMING)

    def run(self) -> None:
        """
        Connect and stream on the calling thread until the stream ends.

        Raises:
            InvalidCredentialError: If the token is rejected on connect
            TransportError: If the connection cannot be established
            FatalAuthError: If Slack invalidates the token while streaming
        """
        self._begin()
        self._stream()

    def start(self) -> None:
        """Connect and stream on a background thread."""
        self._begin()
        self._thread = threading.Thread(
            target=self._run_in_background,
            name="slack-bridge",
            daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """
        Stop streaming and release the connection.

        Stopping a bridge that is not running is a no-op.

        Raises:
            TransportDisconnectError: If the connection cannot be released
        """
        with self._lock:
            state = self.state
            if state not in (BridgeState.CONNECTING, BridgeState.STREAMING):
                return
            self._stop_requested.set()

        if state is BridgeState.STREAMING:
            try:
                self.transport.disconnect()
            except TransportDisconnectError:
                self._stop_requested.clear()
                raise

        self._join()
        logger.info("Bridge stopped")

    def wait(self, timeout: float | None = None) -> bool:
        """
        Wait for a background bridge to finish.

        Returns:
            True if the bridge is no longer running
        """
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        return not self.is_running

    def handle_event(self, event: InboundEvent) -> OutboundNotification | None:
        """
        Handle one inbound event.

        Args:
            event: Event taken from the transport

        Returns:
            The notification handed to the message handler, or None if the
            event was ignored, filtered or dropped

        Raises:
            FatalAuthError: If the event reports an invalidated credential
        """
        if isinstance(event, MessageEvent):
            return self._handle_message(event)
        if isinstance(event, AuthInvalidatedEvent):
            self._fail_auth(event)
        return None

    def _begin(self) -> None:
        with self._lock:
            if self.state is not BridgeState.IDLE:
                raise RuntimeError(f"Bridge cannot be started from state {self.state.value}")
            self.state = BridgeState.CONNECTING

    def _run_in_background(self) -> None:
        try:
            self._stream()
        except FatalAuthError as e:
            self.error = e
            logger.critical("Bridge terminated: %s", e)
        except BridgeError as e:
            self.error = e
            logger.error("Bridge failed: %s", e)
        except Exception as e:
            self.error = BridgeError(f"Unexpected bridge failure: {e}")
            self._set_state(BridgeState.DISCONNECTED)
            logger.critical("Bridge crashed", exc_info=True)

    def _stream(self) -> None:
        try:
            session = self.transport.connect(self.credential)
        except Exception:
            self._set_state(BridgeState.DISCONNECTED)
            raise

        with self._lock:
            aborted = self._stop_requested.is_set()
            if not aborted:
                self.session = session
                self.state = BridgeState.STREAMING

        if aborted:
            logger.info("Stop requested during handshake; releasing connection")
            try:
                self.transport.disconnect()
            except TransportDisconnectError:
                logger.warning("Failed to release aborted connection", exc_info=True)
            self._set_state(BridgeState.DISCONNECTED)
            return

        logger.info("Connected to Slack workspace '%s' as %s", session.team, session.self_id)

        for event in self.transport.events():
            self.handle_event(event)

        if not self._stop_requested.is_set():
            logger.warning("Slack event stream ended unexpectedly")
            self.error = TransportError("Slack event stream ended unexpectedly")
        self._set_state(BridgeState.DISCONNECTED)

    def _handle_message(self, event: MessageEvent) -> OutboundNotification | None:
        session = self.session
        if session is None:
            logger.debug("Message received without a session - ignoring")
            return None

        if event.sender_id == session.self_id:
            return None

        try:
            channel = self.resolver.resolve_channel(event.channel_id)
            sender = self.resolver.resolve_user(event.sender_id)
        except LookupFailure:
            logger.warning(
                "Dropping message from %s in %s",
                event.sender_id,
                event.channel_id,
                exc_info=True
            )
            return None

        notification = OutboundNotification(
            title=build_title(session.team, channel.name, sender),
            message=self.rewriter.rewrite(event.text),
            priority=DEFAULT_PRIORITY,
        )

        try:
            delivered = self.message_handler(notification)
        except Exception:
            logger.error(
                "Message handler failed for '%s'",
                notification.title,
                exc_info=True
            )
            return notification

        if not delivered:
            logger.warning("Notification '%s' was not delivered", notification.title)
        return notification

    def _fail_auth(self, event: AuthInvalidatedEvent) -> None:
        logger.error("Slack invalidated the credential (%s)", event.reason or "no reason given")
        with self._lock:
            self.state = BridgeState.FATAL_AUTH
            self.session = None

        try:
            self.transport.disconnect()
        except TransportDisconnectError:
            logger.warning("Failed to release connection after auth failure", exc_info=True)

        raise FatalAuthError("invalid credentials")

    def _set_state(self, state: BridgeState) -> None:
        with self._lock:
            self.state = state
            if state is not BridgeState.STREAMING:
                self.session = None

    def _join(self) -> None:
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()
