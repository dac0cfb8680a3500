"""Main entry point for xkbmon."""

import argparse
import locale
import logging
import os
import signal
import sys
import threading
import time
from typing import Any, Optional

from .config import load_config
from .layout_base import LayoutEvent, LayoutEventKind, LayoutSource, LayoutSourceError
from .layout_x11 import X11LayoutSource
from .logging_ import setup_logging
from .tracker import LayoutTracker

logger = logging.getLogger("xkbmon")


class LabelOutputError(RuntimeError):
    """Raised when labels can no longer be written to stdout."""


# Errors that end the watcher instead of being retried
FATAL_ERRORS = (LayoutSourceError, LabelOutputError)


def write_label(label: bytes) -> None:
    """
    Print one label per line and flush, so status bars see it at once.

    Label bytes go to stdout unchanged, whatever the locale encoding.

    Raises:
        LabelOutputError: If stdout is closed or broken
    """
    try:
        sys.stdout.flush()
        sys.stdout.buffer.write(label + b"\n")
        sys.stdout.buffer.flush()
    except OSError as e:
        raise LabelOutputError(f"Failed to write label: {e}") from e


def silence_stdout() -> None:
    """Point stdout at /dev/null so the final flush at exit cannot fail again."""
    try:
        fd = sys.stdout.fileno()
    except (OSError, ValueError):
        return
    devnull = os.open(os.devnull, os.O_WRONLY)
    try:
        os.dup2(devnull, fd)
    finally:
        os.close(devnull)


class KeyboardLayoutWatcher:
    """Watcher thread that feeds layout source events into the tracker."""

    def __init__(
        self,
        source: LayoutSource,
        tracker: LayoutTracker,
        config: dict[str, Any],
    ):
        """
        Initialize watcher.

        Args:
            source: Layout source instance
            tracker: Tracker that formats and emits labels
            config: Configuration dictionary
        """
        self.source = source
        self.tracker = tracker
        self.config = config

        self.running = False
        self.thread: Optional[threading.Thread] = None
        self.error: Optional[Exception] = None
        # Set when the loop ends or a shutdown is requested
        self.finished = threading.Event()

        self._lock = threading.Lock()
        self._last_map_serial: Optional[int] = None

    def start(self) -> None:
        """Start the watcher thread."""
        with self._lock:
            if self.running:
                return
            self.running = True
            self.finished.clear()
            self.thread = threading.Thread(target=self._watch_loop, daemon=True, name="LayoutWatcher")
            self.thread.start()
            logger.info("Watcher thread started")

    def stop(self) -> None:
        """Stop the watcher thread."""
        with self._lock:
            if not self.running:
                return
            self.running = False
        if self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=5.0)
        logger.info("Watcher thread stopped")

    def refresh(self) -> bytes:
        """
        Re-read all group names and the current group, then emit.

        Returns:
            Emitted label bytes
        """
        snapshot = self.source.read_layout()
        self.tracker.on_layout_names_changed(snapshot.names)
        return self.tracker.on_group_index_changed(snapshot.current_group)

    def handle_event(self, event: LayoutEvent) -> Optional[bytes]:
        """
        Apply one layout event.

        Returns:
            Emitted label bytes, or None if the event was ignored
        """
        if event.kind is LayoutEventKind.NAMES_CHANGED:
            # The server reports one mapping change several times
            if event.serial == self._last_map_serial:
                logger.debug(f"Skipping duplicate map notification, serial {event.serial}")
                return None
            label = self.refresh()
            self._last_map_serial = event.serial
            return label

        if event.kind is LayoutEventKind.GROUP_CHANGED and event.group is not None:
            return self.tracker.on_group_index_changed(event.group)

        logger.debug(f"Ignoring event {event}")
        return None

    def _watch_loop(self) -> None:
        """Main watcher loop."""
        needs_refresh = True
        try:
            while self.running:
                try:
                    if needs_refresh:
                        self.refresh()
                        needs_refresh = False

                    for event in self.source.poll_events():
                        self.handle_event(event)

                    with self._lock:
                        poll_interval = self.config.get("poll_interval_ms", 50) / 1000.0
                    time.sleep(poll_interval)

                except FATAL_ERRORS:
                    raise
                except Exception as e:
                    logger.error(f"Error in watcher loop: {e}", exc_info=True)
                    time.sleep(1.0)  # Prevent tight error loop
        except FATAL_ERRORS as e:
            logger.error(f"Watcher stopped: {e}")
            self.error = e
            with self._lock:
                self.running = False
        finally:
            self.finished.set()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="xkbmon - print a short label of the active keyboard layout on every change"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging to stderr",
    )
    parser.add_argument(
        "--display",
        help="X display to connect to (default: from config or $DISPLAY)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Print the label of the current layout and exit",
    )
    args = parser.parse_args()

    setup_logging(debug=args.debug)
    logger.info("Starting xkbmon")

    # Native environment for character handling
    try:
        locale.setlocale(locale.LC_CTYPE, "")
    except locale.Error as e:
        logger.error(f"Failed to set locale-specific environment: {e}")
        print(f"Error: failed to set locale: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config()
        logger.info("Configuration loaded")
    except Exception as e:
        logger.error(f"Failed to load config: {e}", exc_info=True)
        sys.exit(1)

    display = args.display or config.get("display")
    tracker = LayoutTracker(emit=write_label, fallback_format=config["fallback_format"])

    try:
        source = X11LayoutSource(display)
    except LayoutSourceError as e:
        logger.error(f"Failed to open layout source: {e}")
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    with source:
        watcher = KeyboardLayoutWatcher(source=source, tracker=tracker, config=config)

        if args.once:
            try:
                watcher.refresh()
            except LabelOutputError as e:
                logger.error(str(e))
                silence_stdout()
                sys.exit(1)
            except LayoutSourceError as e:
                logger.error(f"Failed to read layout: {e}")
                print(f"Error: {e}", file=sys.stderr)
                sys.exit(1)
            return

        def signal_handler(signum, frame) -> None:
            logger.info(f"Received signal {signum}, shutting down gracefully")
            watcher.finished.set()

        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)

        watcher.start()
        try:
            while not watcher.finished.wait(0.5):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        finally:
            watcher.stop()

    if isinstance(watcher.error, LabelOutputError):
        silence_stdout()
        sys.exit(1)
    if watcher.error is not None:
        print(f"Error: {watcher.error}", file=sys.stderr)
        sys.exit(1)

    logger.info("Application stopped")


if __name__ == "__main__":
    main()
