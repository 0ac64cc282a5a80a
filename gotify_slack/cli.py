"""
gotify-slack command line interface.

    gotify-slack [-c CONFIG] config validate
    gotify-slack [-c CONFIG] daemon start [--log-level LEVEL]
    gotify-slack [-c CONFIG] token check
    gotify-slack [-c CONFIG] notify TITLE MESSAGE [-p PRIORITY]
    gotify-slack info
"""

import argparse
import sys
from collections.abc import Callable

from gotify_slack.config import Config, load_config
from gotify_slack.core import DEFAULT_PRIORITY, OutboundNotification
from gotify_slack.daemon import BridgeDaemon
from gotify_slack.errors import BridgeError, InvalidCredentialError
from gotify_slack.logging_config import get_logger, setup_logging
from gotify_slack.plugin import SlackBridgePlugin, get_plugin_info
from gotify_slack.registry import create_notifier
from gotify_slack.slack import SlackRTMTransport

logger = get_logger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _load(args: argparse.Namespace) -> Config | None:
    """Load the configuration, printing the reason when that fails."""
    try:
        return load_config(args.config)
    except FileNotFoundError:
        print(f"Error: Config file not found: {args.config}", file=sys.stderr)
    except ValueError as e:
        print(f"✗ Configuration invalid: {e}", file=sys.stderr)
    return None


def cmd_config_validate(args: argparse.Namespace) -> int:
    config = _load(args)
    if config is None:
        return 1

    print(f"✓ Configuration valid: {args.config}")
    print(f"  - Slack token: {'set' if config.slack.token else 'not set'}")
    print(f"  - {len(config.notifiers)} notifier(s) configured")
    print(f"  - Enabled on start: {config.enabled}")
    print(f"  - Reload on change: {config.watch_config}")
    return 0


def cmd_daemon_start(args: argparse.Namespace) -> int:
    if _load(args) is None:
        return 1

    setup_logging(level=args.log_level)
    print(f"Starting gotify-slack daemon with config: {args.config}")
    try:
        daemon = BridgeDaemon(args.config)
    except ValueError as e:
        print(f"Error starting daemon: {e}", file=sys.stderr)
        return 1

    try:
        return daemon.start()
    except KeyboardInterrupt:
        daemon.stop()
        return 0
    except BridgeError as e:
        print(f"Error starting daemon: {e}", file=sys.stderr)
        daemon.stop()
        return 1


def cmd_token_check(args: argparse.Namespace) -> int:
    config = _load(args)
    if config is None:
        return 1

    token = config.plugin_config().slack_token
    if not token:
        print("✗ No Slack token configured", file=sys.stderr)
        return 1

    try:
        session = SlackRTMTransport().identify(token)
    except InvalidCredentialError:
        print("✗ Slack rejected the token", file=sys.stderr)
        return 1
    except BridgeError as e:
        print(f"✗ Could not identify token: {e}", file=sys.stderr)
        return 1

    print("✓ Token valid")
    print(f"  - Workspace: {session.team}")
    print(f"  - User id:   {session.self_id}")
    return 0


def cmd_notify(args: argparse.Namespace) -> int:
    """Send a test notification through every configured notifier."""
    config = _load(args)
    if config is None:
        return 1

    notification = OutboundNotification(
        title=args.title,
        message=args.message,
        priority=args.priority,
    )

    sent = 0
    for entry in config.notifiers:
        try:
            ok = create_notifier(entry.type, entry.config).notify(notification)
        except Exception as e:
            logger.debug("Notifier %s failed", entry.type, exc_info=True)
            print(f"  ✗ {entry.type}: {e}")
            continue
        print(f"  {'✓' if ok else '✗'} {entry.type}")
        if ok:
            sent += 1

    print(f"Sent to {sent}/{len(config.notifiers)} notifier(s)")
    return 0 if sent else 1


def cmd_info(_args: argparse.Namespace) -> int:
    info = get_plugin_info()
    print(f"{info.name} - {info.description}")
    print(f"  Module:  {info.module_path}")
    print(f"  Author:  {info.author}")
    print(f"  Website: {info.website}")
    print(f"  License: {info.license}")
    print()
    print(SlackBridgePlugin().get_display())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gotify-slack",
        description="Slack push notifications for Gotify"
    )
    parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )
    commands = parser.add_subparsers(dest="command")

    def group(name: str, help_text: str) -> argparse._SubParsersAction:
        return commands.add_parser(name, help=help_text).add_subparsers(dest="subcommand")

    def command(
        subparsers: argparse._SubParsersAction,
        name: str,
        func: Callable[[argparse.Namespace], int],
        help_text: str
    ) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text)
        sub.set_defaults(func=func)
        return sub

    command(group("config", "Configuration file"), "validate",
            cmd_config_validate, "Validate the configuration file")

    start = command(group("daemon", "Bridge daemon"), "start",
                    cmd_daemon_start, "Run the daemon in the foreground")
    start.add_argument("--log-level", default="INFO", choices=LOG_LEVELS)

    command(group("token", "Slack token"), "check",
            cmd_token_check, "Check the configured token against Slack")

    notify = command(commands, "notify", cmd_notify, "Send a test notification")
    notify.add_argument("title")
    notify.add_argument("message")
    notify.add_argument("-p", "--priority", type=int, default=DEFAULT_PRIORITY)

    command(commands, "info", cmd_info, "Show plugin information")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 0
    return func(args)


if __name__ == '__main__':
    sys.exit(main())
