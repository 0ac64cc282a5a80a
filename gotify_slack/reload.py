"""
Configuration file watching using watchdog.
"""

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer as WatchdogObserver

from gotify_slack.logging_config import get_logger

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

logger = get_logger(__name__)


class ConfigWatcher:
    """
    Calls back when the configuration file is written or replaced.

    The parent directory is watched rather than the file itself so that
    editors which save by renaming a temporary file are picked up too.
    """

    def __init__(self, path: str | Path, callback: Callable[[], None]) -> None:
        self.path = Path(path).resolve()
        self.callback = callback
        self.observer: BaseObserver | None = None

    def start(self) -> None:
        """Start watching the configuration file."""
        self.observer = WatchdogObserver()
        self.observer.schedule(
            self._create_event_handler(),
            str(self.path.parent),
            recursive=False
        )
        self.observer.start()
        logger.info("Watching %s for changes", self.path)

    def stop(self) -> None:
        """Stop watching."""
        if self.observer:
            self.observer.stop()
            self.observer.join()
            self.observer = None

    def _create_event_handler(self) -> FileSystemEventHandler:
        """Create a watchdog event handler that calls our callback."""
        watch_path = self.path
        callback = self._fire

        class Handler(FileSystemEventHandler):
            """Filters directory events down to the watched file."""

            def _matches(self, path: str | bytes) -> bool:
                if isinstance(path, bytes):
                    path = path.decode()
                return Path(path).resolve() == watch_path

            def on_modified(self, event: FileSystemEvent) -> None:
                if self._matches(event.src_path):
                    callback()

            def on_created(self, event: FileSystemEvent) -> None:
                if self._matches(event.src_path):
                    callback()

            def on_moved(self, event: FileSystemEvent) -> None:
                dest_path = getattr(event, "dest_path", "")
                if dest_path and self._matches(dest_path):
                    callback()

        return Handler()

    def _fire(self) -> None:
        try:
            self.callback()
        except Exception:
            logger.error("Error handling change to %s", self.path, exc_info=True)
