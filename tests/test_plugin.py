"""
Tests for the plugin: configuration gate, enable/disable and status display.
"""

import threading

import pytest
from conftest import FakeSlack, FakeTransport, RecordingHandler

from gotify_slack.bridge import BridgeState
from gotify_slack.config import PluginConfig
from gotify_slack.core import MessageEvent
from gotify_slack.errors import (
    InvalidCredentialError,
    NotConfiguredError,
    TransportDisconnectError,
    TransportError,
)
from gotify_slack.plugin import SlackBridgePlugin, get_plugin_info


@pytest.fixture
def plugin(fake_slack: FakeSlack, handler: RecordingHandler) -> SlackBridgePlugin:
    return SlackBridgePlugin(
        message_handler=handler,
        transport_factory=fake_slack.transport_factory,
        directory_factory=fake_slack.directory_factory,
    )


def enable_and_connect(plugin: SlackBridgePlugin, fake_slack: FakeSlack) -> FakeTransport:
    plugin.validate_and_set_config(PluginConfig(slack_token="xoxb-valid"))
    plugin.enable()
    transport = fake_slack.last_transport
    assert transport.streaming.wait(timeout=2)
    return transport


class TestSetConfig:
    """Tests for validate_and_set_config."""

    def test_default_config_is_empty(self, plugin: SlackBridgePlugin) -> None:
        """Test a new user starts without a token."""
        assert plugin.default_config() == PluginConfig(slack_token="")

    def test_empty_token_when_idle(self, plugin: SlackBridgePlugin) -> None:
        """Test an empty token succeeds with nothing running."""
        plugin.validate_and_set_config(PluginConfig(slack_token=""))

        assert plugin.config is None
        assert plugin.bridge is None

    def test_empty_token_stops_streaming(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack
    ) -> None:
        """Test an empty token tears down a running bridge."""
        transport = enable_and_connect(plugin, fake_slack)

        plugin.validate_and_set_config(PluginConfig(slack_token=""))

        assert plugin.bridge is None
        assert plugin.config is None
        assert transport.disconnect_calls == 1

    def test_invalid_token_is_rejected(self, plugin: SlackBridgePlugin) -> None:
        """Test an invalid token raises and stores nothing."""
        with pytest.raises(InvalidCredentialError):
            plugin.validate_and_set_config(PluginConfig(slack_token="xoxb-bogus"))

        assert plugin.config is None

    def test_invalid_token_keeps_running_bridge(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack
    ) -> None:
        """Test an invalid token leaves the prior token and bridge untouched."""
        transport = enable_and_connect(plugin, fake_slack)
        bridge = plugin.bridge

        with pytest.raises(InvalidCredentialError):
            plugin.validate_and_set_config(PluginConfig(slack_token="xoxb-bogus"))

        assert plugin.config == PluginConfig(slack_token="xoxb-valid")
        assert plugin.bridge is bridge
        assert transport.is_open
        assert len(fake_slack.transports) == 1

    def test_valid_token_while_disabled_is_stored(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack
    ) -> None:
        """Test a valid token is stored without connecting."""
        plugin.validate_and_set_config(PluginConfig(slack_token="xoxb-valid"))

        assert plugin.config == PluginConfig(slack_token="xoxb-valid")
        assert plugin.bridge is None
        assert fake_slack.transports == []

    def test_new_token_while_enabled_restarts_bridge(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack
    ) -> None:
        """Test changing the token swaps the bridge."""
        old_transport = enable_and_connect(plugin, fake_slack)

        plugin.validate_and_set_config(PluginConfig(slack_token="xoxb-other"))
        new_transport = fake_slack.last_transport
        assert new_transport.connected.wait(timeout=2)

        assert old_transport.disconnect_calls == 1
        assert new_transport is not old_transport
        assert new_transport.credentials == ["xoxb-other"]
        assert plugin.bridge is not None
        assert plugin.bridge.credential == "xoxb-other"

    def test_same_token_is_idempotent(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack
    ) -> None:
        """Test re-applying the running token keeps the session."""
        transport = enable_and_connect(plugin, fake_slack)

        for _ in range(3):
            plugin.validate_and_set_config(PluginConfig(slack_token="xoxb-valid"))

        assert len(fake_slack.transports) == 1
        assert transport.is_open

    def test_reconfigure_propagates_disconnect_failure(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack
    ) -> None:
        """Test a failing teardown surfaces to the caller of set_config."""
        transport = enable_and_connect(plugin, fake_slack)
        transport.disconnect_error = TransportDisconnectError("socket stuck")

        with pytest.raises(TransportDisconnectError):
            plugin.validate_and_set_config(PluginConfig(slack_token="xoxb-other"))

        assert len(fake_slack.transports) == 1
        assert plugin.config == PluginConfig(slack_token="xoxb-valid")

        transport.end_stream()


class TestEnableDisable:
    """Tests for enable and disable."""

    def test_enable_without_token(self, plugin: SlackBridgePlugin) -> None:
        """Test enabling before configuring."""
        with pytest.raises(NotConfiguredError):
            plugin.enable()

        assert not plugin.enabled

    def test_enable_without_handler(self, fake_slack: FakeSlack) -> None:
        """Test enabling without somewhere to send notifications."""
        plugin = SlackBridgePlugin(
            transport_factory=fake_slack.transport_factory,
            directory_factory=fake_slack.directory_factory,
        )
        plugin.validate_and_set_config(PluginConfig(slack_token="xoxb-valid"))

        with pytest.raises(NotConfiguredError):
            plugin.enable()

    def test_enable_with_revoked_token(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack
    ) -> None:
        """Test enabling after the stored token stopped validating."""
        plugin.validate_and_set_config(PluginConfig(slack_token="xoxb-valid"))
        fake_slack.directory.valid_tokens.clear()

        with pytest.raises(InvalidCredentialError):
            plugin.enable()

        assert not plugin.enabled
        assert fake_slack.transports == []

    def test_enable_streams_messages(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack,
        handler: RecordingHandler
    ) -> None:
        """Test an enabled plugin forwards messages."""
        transport = enable_and_connect(plugin, fake_slack)

        transport.push(MessageEvent(sender_id="U789", channel_id="C001", text="hello"))

        assert handler.received.wait(timeout=2)
        assert handler.notifications[0].title == "Slack | Acme | general | Jane Doe"
        assert plugin.enabled

    def test_enable_twice_keeps_bridge(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack
    ) -> None:
        """Test enabling an enabled plugin does not reconnect."""
        enable_and_connect(plugin, fake_slack)

        plugin.enable()

        assert len(fake_slack.transports) == 1

    def test_disable_stops_bridge(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack
    ) -> None:
        """Test disable releases the connection."""
        transport = enable_and_connect(plugin, fake_slack)
        bridge = plugin.bridge

        plugin.disable()

        assert not plugin.enabled
        assert plugin.bridge is None
        assert bridge is not None
        assert bridge.state is BridgeState.DISCONNECTED
        assert transport.disconnect_calls == 1

    def test_disable_without_session(self, plugin: SlackBridgePlugin) -> None:
        """Test disabling with nothing running is a no-op success."""
        plugin.disable()
        plugin.disable()

        assert not plugin.enabled

    def test_disable_failure_keeps_plugin_enabled(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack
    ) -> None:
        """Test a failing disconnect propagates and leaves the plugin enabled."""
        transport = enable_and_connect(plugin, fake_slack)
        transport.disconnect_error = TransportDisconnectError("socket stuck")

        with pytest.raises(TransportDisconnectError):
            plugin.disable()

        assert plugin.enabled

        transport.end_stream()

    def test_enable_after_disable_reconnects(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack
    ) -> None:
        """Test a disabled plugin can be enabled again."""
        enable_and_connect(plugin, fake_slack)
        plugin.disable()

        plugin.enable()
        assert fake_slack.last_transport.connected.wait(timeout=2)

        assert len(fake_slack.transports) == 2
        assert plugin.bridge is not None

    def test_concurrent_reconfigure_leaves_one_bridge(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack
    ) -> None:
        """Test racing reconfigurations never leave two open connections."""
        enable_and_connect(plugin, fake_slack)

        def flip(token: str) -> None:
            for _ in range(5):
                plugin.validate_and_set_config(PluginConfig(slack_token=token))

        threads = [
            threading.Thread(target=flip, args=("xoxb-valid",)),
            threading.Thread(target=flip, args=("xoxb-other",)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert fake_slack.last_transport.connected.wait(timeout=2)
        open_transports = [t for t in fake_slack.transports if t.is_open]
        assert open_transports == [fake_slack.last_transport]

        plugin.disable()
        assert not any(t.is_open for t in fake_slack.transports)


class TestBridgeFailure:
    """Tests for reporting a bridge that stopped on its own."""

    def test_running_bridge_has_no_failure(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack
    ) -> None:
        """Test a streaming bridge is healthy."""
        enable_and_connect(plugin, fake_slack)

        assert plugin.bridge_failure() is None

    def test_disabled_plugin_has_no_failure(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack
    ) -> None:
        """Test a deliberately stopped bridge is not a failure."""
        enable_and_connect(plugin, fake_slack)
        plugin.disable()

        assert plugin.bridge_failure() is None

    def test_stream_end_is_a_failure(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack
    ) -> None:
        """Test an event stream that ends by itself is reported."""
        transport = enable_and_connect(plugin, fake_slack)

        transport.end_stream()
        assert plugin.bridge is not None
        assert plugin.bridge.wait(timeout=2)

        assert isinstance(plugin.bridge_failure(), TransportError)

    def test_connect_failure_is_reported(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack
    ) -> None:
        """Test a bridge that never connected is reported."""
        fake_slack.connect_error = TransportError("RTM connect failed")
        plugin.validate_and_set_config(PluginConfig(slack_token="xoxb-valid"))
        plugin.enable()
        assert plugin.bridge is not None
        assert plugin.bridge.wait(timeout=2)

        failure = plugin.bridge_failure()

        assert isinstance(failure, TransportError)
        assert "RTM connect failed" in str(failure)


class TestDisplay:
    """Tests for status display and plugin info."""

    def test_display_fresh_plugin(self, plugin: SlackBridgePlugin) -> None:
        """Test status before anything is configured."""
        display = plugin.get_display()

        assert "## Status" in display
        assert "- Plugin enabled: false" in display
        assert "- Valid API token: false" in display
        assert "Bridge:" not in display

    def test_display_streaming(
        self,
        plugin: SlackBridgePlugin,
        fake_slack: FakeSlack
    ) -> None:
        """Test status while streaming."""
        enable_and_connect(plugin, fake_slack)

        display = plugin.get_display()

        assert "- Plugin enabled: true" in display
        assert "- Valid API token: true" in display
        assert "- Bridge: streaming" in display
        assert "- Workspace: Acme" in display

    def test_plugin_info(self) -> None:
        """Test plugin metadata."""
        info = get_plugin_info()

        assert info.name == "gotify-slack"
        assert info.license == "MIT"
        assert info.description == "Slack push notifications for gotify"
