"""Terminal dashboard sink for deploywatch, built on rich Live."""

import logging
import os
import select
import sys
import termios
import threading
import tty
from typing import Optional

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from ..errors import FatalStartupError

logger = logging.getLogger("deploywatch.dashboard")


class KeyListener:
    """Sets `quit_event` when the quit key is pressed on a TTY stdin."""

    POLL_INTERVAL = 0.1

    def __init__(self, quit_event: threading.Event, quit_key: str = "q"):
        self.quit_event = quit_event
        self.quit_key = quit_key
        self.enabled = sys.stdin.isatty()
        self._fd: Optional[int] = None
        self._old = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self):
        """Switch stdin to cbreak mode and start listening."""
        if not self.enabled:
            return
        self._fd = sys.stdin.fileno()
        self._old = termios.tcgetattr(self._fd)
        tty.setcbreak(self._fd)
        self._thread = threading.Thread(target=self._listen, name="deploywatch-keys", daemon=True)
        self._thread.start()

    def _listen(self):
        while not self._stop.is_set():
            ready, _, _ = select.select([self._fd], [], [], self.POLL_INTERVAL)
            if not ready:
                continue
            key = os.read(self._fd, 1).decode("utf-8", errors="ignore")
            if key.lower() == self.quit_key:
                logger.info("Quit key pressed")
                self.quit_event.set()
                return

    def stop(self):
        """Stop listening and restore the terminal mode."""
        self._stop.set()
        if self._fd is not None and self._old is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._old)
            self._old = None


class TerminalDashboard:
    """Full-screen panel showing the latest rendering.

    Only the scheduler's dashboard consumer calls `show`, so the panel has
    a single writer.
    """

    TITLE = "AWS CodeDeploy (type 'q' to quit)"
    PLACEHOLDER = "Waiting for deployment data..."

    def __init__(
        self,
        console: Optional[Console] = None,
        quit_event: Optional[threading.Event] = None,
        screen: bool = True
    ):
        """Initialize terminal dashboard.

        Args:
            console: rich Console to draw on (default: stdout)
            quit_event: Event set when the user presses 'q'
            screen: Use the alternate screen
        """
        self.console = console or Console()
        self.quit_event = quit_event or threading.Event()
        self.screen = screen
        self.updates = 0
        self._live: Optional[Live] = None
        self._keys = KeyListener(self.quit_event)
        self._stop_lock = threading.Lock()

    def _panel(self, text: Text) -> Panel:
        return Panel(text, title=self.TITLE, border_style="green")

    def start(self):
        """Take over the terminal.

        Raises:
            FatalStartupError: If stdout is not a terminal or rich cannot start
        """
        if not self.console.is_terminal:
            raise FatalStartupError("Error creating terminal: stdout is not a TTY")

        try:
            self._live = Live(
                self._panel(Text(self.PLACEHOLDER)),
                console=self.console,
                screen=self.screen,
                auto_refresh=False,
            )
            self._live.start(refresh=True)
            self._keys.start()
        except Exception as e:
            raise FatalStartupError(f"Error creating terminal: {e}") from e

        logger.info("Dashboard started")

    def show(self, payload: bytes):
        """Display a full rendering (rich markup encoded as UTF-8)."""
        content = payload.decode("utf-8").strip() or self.PLACEHOLDER
        self.updates += 1
        if self._live is None:
            return
        self._live.update(self._panel(Text.from_markup(content)), refresh=True)

    def stop(self):
        """Give the terminal back; safe to call more than once."""
        with self._stop_lock:
            self._keys.stop()
            if self._live is not None:
                self._live.stop()
                self._live = None
                logger.info("Dashboard stopped")
