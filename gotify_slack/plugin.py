"""
The gotify-slack plugin: configuration gate and bridge lifecycle.

The plugin is what a host drives. It validates the Slack token before
storing it, starts a bridge on enable, tears it down on disable, and swaps
bridges when the token changes while enabled.
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass

from gotify_slack.bridge import EventBridge
from gotify_slack.config import PluginConfig
from gotify_slack.core import Directory, MessageHandler, Transport
from gotify_slack.errors import BridgeError, InvalidCredentialError, NotConfiguredError, TransportError
from gotify_slack.logging_config import get_logger
from gotify_slack.slack import SlackDirectory, SlackRTMTransport

logger = get_logger(__name__)

TOKEN_HELP_URL = "https://api.slack.com/apps"


@dataclass(frozen=True)
class PluginInfo:
    """Static metadata describing the plugin."""
    name: str
    module_path: str
    author: str
    website: str
    description: str
    license: str


PLUGIN_INFO = PluginInfo(
    name="gotify-slack",
    module_path="gotify_slack",
    author="Marcel Transier",
    website="https://git.marceltransier.de/gotify-slack",
    description="Slack push notifications for gotify",
    license="MIT",
)


def get_plugin_info() -> PluginInfo:
    """Return the plugin metadata."""
    return PLUGIN_INFO


class SlackBridgePlugin:
    """
    One plugin instance, owning at most one bridge.

    All state changes go through a single lock, so a disable racing a
    reconfigure never leaves two bridges running. Bridges never take this
    lock themselves, which lets disable() wait for a bridge thread to finish
    while holding it.
    """

    def __init__(
        self,
        message_handler: MessageHandler | None = None,
        transport_factory: Callable[[], Transport] = SlackRTMTransport,
        directory_factory: Callable[[str], Directory] = SlackDirectory,
    ) -> None:
        """
        Initialize the plugin.

        Args:
            message_handler: Callable receiving every outbound notification
            transport_factory: Creates a transport for each new bridge
            directory_factory: Creates a directory bound to a token
        """
        self.message_handler = message_handler
        self.transport_factory = transport_factory
        self.directory_factory = directory_factory

        self.enabled = False
        self.config: PluginConfig | None = None
        self.bridge: EventBridge | None = None

        self._lock = threading.RLock()

    def default_config(self) -> PluginConfig:
        """Return the configuration a new user starts with."""
        return PluginConfig()

    def set_message_handler(self, handler: MessageHandler) -> None:
        """Set where notifications are delivered."""
        with self._lock:
            self.message_handler = handler

    def bridge_failure(self) -> BridgeError | None:
        """
        Return why the bridge of an enabled plugin is no longer running.

        Returns None while the bridge runs, while the plugin is disabled or
        has no token, and while another thread is reconfiguring the plugin.
        """
        with self._lock:
            bridge = self.bridge
            if not self.enabled or bridge is None or bridge.is_running:
                return None
            bridge.wait(timeout=5)
            return bridge.error or TransportError("bridge stopped")

    def validate_and_set_config(self, config: PluginConfig) -> None:
        """
        Validate and apply a new configuration.

        An empty token tears down the running bridge and forgets the stored
        token. A valid token is stored, and if the plugin is enabled the
        bridge is restarted with it. Supplying the token the running bridge
        already uses changes nothing.

        Raises:
            InvalidCredentialError: If the token is rejected; nothing changes
            TransportDisconnectError: If the running bridge cannot be stopped
        """
        token = config.slack_token

        with self._lock:
            if not token:
                self._stop_bridge()
                self.config = None
                logger.info("Slack token cleared; bridge stopped")
                return

            if not self._token_is_valid(token):
                raise InvalidCredentialError("the token is invalid")

            if self._is_streaming_with(token):
                logger.debug("Slack token unchanged; keeping the running bridge")
                return

            if not self.enabled:
                self.config = config
                logger.info("Slack token stored")
                return

            self._stop_bridge()
            self.config = config
            self._start_bridge()

    def enable(self) -> None:
        """
        Enable the plugin and start streaming.

        Returns as soon as the bridge thread is started; the handshake with
        Slack happens in the background.

        Raises:
            NotConfiguredError: If no token or no message handler is set
            InvalidCredentialError: If the stored token no longer validates
        """
        with self._lock:
            if self.config is None or not self.config.slack_token:
                raise NotConfiguredError("please configure the slack api token first")
            if self.message_handler is None:
                raise NotConfiguredError("no message handler is set")
            if not self._token_is_valid(self.config.slack_token):
                raise InvalidCredentialError("the slack api token is not valid anymore")

            self.enabled = True
            if self.bridge is not None and self.bridge.is_running:
                return

            self._start_bridge()

    def disable(self) -> None:
        """
        Disable the plugin and stop streaming.

        Raises:
            TransportDisconnectError: If the connection cannot be released;
                the plugin stays enabled
        """
        with self._lock:
            self._stop_bridge()
            self.enabled = False
            logger.info("Plugin disabled")

    def get_display(self) -> str:
        """Render the Markdown status shown to the user."""
        with self._lock:
            enabled = self.enabled
            configured = self.config is not None
            bridge = self.bridge

        lines = [
            "## Status",
            "",
            f"- Plugin enabled: {str(enabled).lower()}",
            f"- Valid API token: {str(configured).lower()}",
        ]

        if bridge is not None:
            lines.append(f"- Bridge: {bridge.state.value}")
            session = bridge.session
            if session is not None:
                lines.append(f"- Workspace: {session.team}")
            if bridge.error is not None:
                lines.append(f"- Last error: {bridge.error}")

        lines.extend([
            "",
            f"Tip: You can create a Slack app and get its token [here]({TOKEN_HELP_URL}).",
        ])
        return "\n".join(lines) + "\n"

    def _token_is_valid(self, token: str) -> bool:
        return self.directory_factory(token).validate_credential(token)

    def _is_streaming_with(self, token: str) -> bool:
        return (
            self.config is not None
            and self.config.slack_token == token
            and self.bridge is not None
            and self.bridge.is_running
        )

    def _start_bridge(self) -> None:
        if self.config is None or self.message_handler is None:
            raise NotConfiguredError("the plugin needs a token and a message handler")

        token = self.config.slack_token
        bridge = EventBridge(
            credential=token,
            transport=self.transport_factory(),
            directory=self.directory_factory(token),
            message_handler=self.message_handler,
        )
        bridge.start()
        self.bridge = bridge
        logger.info("Bridge started")

    def _stop_bridge(self) -> None:
        if self.bridge is None:
            return
        self.bridge.stop()
        self.bridge = None
