"""
Slack real-time transport built on the RTM client.
"""

import queue
import threading
from collections.abc import Callable, Iterator
from typing import Any

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError
from slack_sdk.rtm_v2 import RTMClient

from gotify_slack.core import (
    AuthInvalidatedEvent,
    BridgeSession,
    InboundEvent,
    MessageEvent,
    OtherEvent,
    Transport,
)
from gotify_slack.errors import InvalidCredentialError, TransportDisconnectError, TransportError
from gotify_slack.logging_config import get_logger

logger = get_logger(__name__)

AUTH_ERROR_CODES = frozenset({
    "invalid_auth",
    "not_authed",
    "account_inactive",
    "token_revoked",
    "token_expired",
})

# Workspace events that mean our token is gone
AUTH_EVENT_TYPES = frozenset({"tokens_revoked", "app_uninstalled"})

_END_OF_STREAM = object()


def is_auth_error(error: BaseException) -> bool:
    """Check whether a Slack API error means the token was rejected."""
    if not isinstance(error, SlackApiError) or error.response is None:
        return False
    return error.response.get("error") in AUTH_ERROR_CODES


def parse_event(payload: dict[str, Any]) -> InboundEvent:
    """
    Convert a raw RTM payload into an inbound event.

    Only messages posted by a user become MessageEvents; edits, deletions
    and bot posts carry no top-level user and are treated as other events.
    """
    event_type = payload.get("type") or ""

    if event_type == "message" and payload.get("user"):
        return MessageEvent(
            sender_id=payload["user"],
            channel_id=payload.get("channel", ""),
            text=payload.get("text") or "",
        )

    if event_type in AUTH_EVENT_TYPES:
        return AuthInvalidatedEvent(reason=event_type)

    return OtherEvent(type=event_type)


class SessionRTMClient(RTMClient):
    """
    RTMClient that reports a rejected token instead of reconnecting forever.

    The SDK reconnects on its own threads and only logs what goes wrong
    there. Every reconnect asks rtm.connect for a new websocket URL, which is
    where a revoked token shows up, so that call is intercepted.
    """

    def __init__(
        self,
        *,
        on_auth_failure: Callable[[SlackApiError], None] | None = None,
        **kwargs: Any
    ) -> None:
        super().__init__(**kwargs)
        self.on_auth_failure = on_auth_failure

    def issue_new_wss_url(self) -> str:
        try:
            return super().issue_new_wss_url()
        except SlackApiError as e:
            if is_auth_error(e):
                self.auto_reconnect_enabled = False
                if self.on_auth_failure is not None:
                    self.on_auth_failure(e)
            raise


def release_rtm_client(rtm: RTMClient) -> None:
    """
    Close an RTM client and stop every thread it started.

    RTMClient.close() leaves the interval runner threads alive and fails on
    a client that never connected.
    """
    rtm.closed = True
    rtm.auto_reconnect_enabled = False
    if rtm.current_session_state is not None:
        rtm.current_session_state.terminated = True
    if rtm.current_session is not None:
        rtm.current_session.close()

    # Wake the message processor blocked on its queue
    rtm.message_queue.put(None)
    for runner in (rtm.current_app_monitor, rtm.current_session_runner, rtm.message_processor):
        runner.shutdown()
    rtm.message_workers.shutdown(wait=False)


def _connect_error(error: Exception) -> Exception:
    if is_auth_error(error):
        return InvalidCredentialError("the slack api token is not valid")
    if isinstance(error, KeyError):
        return TransportError(
            "Slack returned no bot id; the RTM API needs the bot token of a classic Slack app"
        )
    return TransportError(f"RTM connect failed: {error}")


class SlackRTMTransport(Transport):
    """
    Streams workspace events over Slack's RTM API.

    The RTM client keeps the websocket alive on its own threads and hands
    every payload to a listener that converts it and puts it on a queue;
    events() drains that queue. Listeners run with concurrency 1 so the
    queue preserves arrival order.
    """

    def __init__(
        self,
        web_client_factory: Callable[..., WebClient] = WebClient,
        rtm_client_factory: Callable[..., RTMClient] = SessionRTMClient,
        release: Callable[[RTMClient], None] = release_rtm_client,
    ) -> None:
        self.web_client_factory = web_client_factory
        self.rtm_client_factory = rtm_client_factory
        self.release = release
        self._rtm: RTMClient | None = None
        self._queue: queue.Queue[Any] = queue.Queue()
        self._lock = threading.Lock()

    def identify(self, credential: str) -> BridgeSession:
        """Ask Slack who a token belongs to without opening a connection."""
        return self._identify(self.web_client_factory(token=credential))

    def connect(self, credential: str) -> BridgeSession:
        """
        Authenticate and open the RTM websocket.

        Raises:
            InvalidCredentialError: If Slack rejects the token
            TransportError: If the websocket cannot be opened
        """
        web_client = self.web_client_factory(token=credential)
        session = self._identify(web_client)

        events: queue.Queue[Any] = queue.Queue()

        def on_payload(client: RTMClient, payload: dict[str, Any]) -> None:
            events.put(parse_event(payload))

        def on_auth_failure(error: SlackApiError) -> None:
            logger.error("Slack rejected the token while reconnecting: %s", error)
            events.put(AuthInvalidatedEvent(reason=str(error.response.get("error"))))

        rtm = self.rtm_client_factory(
            web_client=web_client,
            concurrency=1,
            on_auth_failure=on_auth_failure,
        )
        rtm.on("*")(on_payload)

        try:
            rtm.connect()
        except Exception as e:
            self._release_quietly(rtm)
            raise _connect_error(e) from e

        with self._lock:
            self._rtm = rtm
            self._queue = events

        return session

    def disconnect(self) -> None:
        """Close the RTM client and end the event stream."""
        with self._lock:
            rtm = self._rtm
            events = self._queue

        if rtm is not None:
            try:
                self.release(rtm)
            except Exception as e:
                raise TransportDisconnectError(f"Failed to close RTM connection: {e}") from e

        with self._lock:
            self._rtm = None
        events.put(_END_OF_STREAM)

    def _release_quietly(self, rtm: RTMClient) -> None:
        try:
            self.release(rtm)
        except Exception:
            logger.warning("Failed to release RTM client after connect failure", exc_info=True)

    def _identify(self, web_client: WebClient) -> BridgeSession:
        try:
            auth = web_client.auth_test()
        except SlackApiError as e:
            if is_auth_error(e):
                raise InvalidCredentialError("the slack api token is not valid") from e
            raise TransportError(f"Slack auth.test failed: {e}") from e
        except Exception as e:
            raise TransportError(f"Could not reach Slack: {e}") from e

        return BridgeSession(self_id=auth.get("user_id", ""), team=auth.get("team", ""))

    def events(self) -> Iterator[InboundEvent]:
        """Yield events until disconnect() is called."""
        with self._lock:
            events = self._queue

        while True:
            item = events.get()
            if item is _END_OF_STREAM:
                return
            yield item
