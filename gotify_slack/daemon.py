"""
Main daemon entry point for gotify-slack.

The daemon plays the part of the plugin host: it loads the configuration,
wires the plugin to the configured notifiers, enables it, and exits when the
bridge dies with an error nothing can recover from.
"""

import argparse
import signal
import sys
import threading
from typing import Any

from gotify_slack.config import Config, load_config
from gotify_slack.core import Notifier, OutboundNotification
from gotify_slack.errors import BridgeError, FatalAuthError
from gotify_slack.logging_config import get_logger, setup_logging
from gotify_slack.plugin import SlackBridgePlugin
from gotify_slack.registry import create_notifier
from gotify_slack.reload import ConfigWatcher

logger = get_logger(__name__)


def build_notifiers(config: Config) -> list[Notifier]:
    """Instantiate the notifiers listed in the configuration."""
    return [create_notifier(n.type, n.config) for n in config.notifiers]


class BridgeDaemon:
    """Hosts one plugin instance and fans its notifications out to notifiers."""

    def __init__(self, config_path: str, plugin: SlackBridgePlugin | None = None) -> None:
        """
        Initialize the daemon.

        Args:
            config_path: Path to configuration file
            plugin: Optional preconfigured plugin instance
        """
        self.config_path = config_path
        self.config = load_config(config_path)

        self.notifiers = build_notifiers(self.config)

        self.plugin = plugin or SlackBridgePlugin()
        self.plugin.set_message_handler(self.handle_notification)

        self.watcher: ConfigWatcher | None = None
        self.running = False
        self._stopped = threading.Event()

    def handle_notification(self, notification: OutboundNotification) -> bool:
        """
        Deliver a notification to every notifier.

        Returns:
            True if at least one notifier delivered it
        """
        delivered = False
        for notifier in self.notifiers:
            try:
                if notifier.notify(notification):
                    delivered = True
                else:
                    logger.warning(
                        "Notifier %s returned False for '%s'",
                        notifier.__class__.__name__,
                        notification.title
                    )
            except Exception:
                logger.error(
                    "Error sending notification via %s",
                    notifier.__class__.__name__,
                    exc_info=True
                )
        return delivered

    def reload_config(self) -> None:
        """Re-read the configuration file and apply its token, notifiers and enabled flag."""
        try:
            config = load_config(self.config_path)
        except (OSError, ValueError):
            logger.error("Ignoring unreadable configuration %s", self.config_path, exc_info=True)
            return

        try:
            notifiers = build_notifiers(config)
        except (KeyError, ValueError):
            logger.error("Configuration change rejected: bad notifier entry", exc_info=True)
            return

        try:
            self.plugin.validate_and_set_config(config.plugin_config())
        except BridgeError as e:
            logger.error("Configuration change rejected: %s", e)
            return

        self.config = config
        self.notifiers = notifiers
        self._apply_enabled(config.enabled)
        logger.info("Configuration reloaded")

    def _apply_enabled(self, enabled: bool) -> None:
        try:
            if enabled and not self.plugin.enabled:
                self.plugin.enable()
            elif not enabled and self.plugin.enabled:
                self.plugin.disable()
        except BridgeError as e:
            logger.error("Could not %s the plugin: %s", "enable" if enabled else "disable", e)

    def start(self) -> int:
        """
        Start the daemon and block until it stops.

        Returns:
            Process exit code
        """
        logger.info("Starting gotify-slack daemon")

        self.plugin.validate_and_set_config(self.config.plugin_config())
        if self.config.enabled:
            self.plugin.enable()

        if self.config.watch_config:
            self.watcher = ConfigWatcher(self.config_path, self.reload_config)
            self.watcher.start()

        self.running = True
        logger.info("gotify-slack daemon running")

        exit_code = 0
        try:
            while self.running:
                if self._stopped.wait(1):
                    break
                failure = self.plugin.bridge_failure()
                if failure is None:
                    continue
                if isinstance(failure, FatalAuthError):
                    logger.critical("Slack rejected the token; a new token is required")
                else:
                    logger.critical("Bridge stopped: %s", failure)
                exit_code = 1
                break
        except KeyboardInterrupt:
            logger.info("Shutdown signal received")

        self.stop()
        return exit_code

    def stop(self) -> None:
        """Stop the daemon."""
        if not self.running:
            return
        logger.info("Stopping gotify-slack daemon")
        self.running = False
        self._stopped.set()

        if self.watcher:
            self.watcher.stop()
            self.watcher = None

        try:
            self.plugin.disable()
        except BridgeError:
            logger.error("Failed to disable plugin cleanly", exc_info=True)

        logger.info("gotify-slack daemon stopped")


def main() -> None:
    """Entry point for the daemon."""
    parser = argparse.ArgumentParser(description="Slack to Gotify bridge daemon")
    parser.add_argument(
        '--config',
        default='/etc/gotify-slack/config.yaml',
        help='Path to configuration file (default: /etc/gotify-slack/config.yaml)'
    )
    parser.add_argument(
        '--log-level',
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Log level (default: INFO)'
    )
    parser.add_argument(
        '--log-file',
        help='Optional log file path (logs to console if not specified)'
    )
    args = parser.parse_args()

    setup_logging(level=args.log_level, log_file=args.log_file)

    daemon = BridgeDaemon(args.config)

    def signal_handler(_sig: int, _frame: Any) -> None:
        logger.info("Shutdown signal received")
        daemon.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        sys.exit(daemon.start())
    except BridgeError as e:
        logger.critical("Could not start bridge: %s", e)
        sys.exit(1)
    except Exception:
        logger.critical("Fatal error", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
