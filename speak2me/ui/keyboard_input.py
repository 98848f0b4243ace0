"""Single-key commands for the practice screen."""

import sys
import time
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

POLL_SECONDS = 0.1


def _read_key_windows() -> Optional[str]:
    import msvcrt

    if not msvcrt.kbhit():
        time.sleep(POLL_SECONDS)
        return None
    return msvcrt.getwch()


def _read_key_posix() -> Optional[str]:
    import select
    import termios
    import tty

    fd = sys.stdin.fileno()
    saved = termios.tcgetattr(fd)
    try:
        # cbreak keeps Ctrl-C working, unlike raw mode
        tty.setcbreak(fd)
        ready, _, _ = select.select([sys.stdin], [], [], POLL_SECONDS)
        return sys.stdin.read(1) if ready else None
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


class KeyboardInputHandler:
    """Polls the terminal for keypresses on a daemon thread.

    `callback` receives each key lowercased and returns False to end input.
    """

    def __init__(self, callback: Callable[[str], bool]):
        self.callback = callback
        self.read_key = _read_key_windows if sys.platform == "win32" else _read_key_posix
        self.stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive() and not self.stop_event.is_set()

    def start(self) -> None:
        if self.running:
            return
        self.stop_event.clear()
        self.thread = threading.Thread(target=self._poll, name="KeyboardInputThread", daemon=True)
        self.thread.start()
        logger.info("Keyboard input started")

    def stop(self) -> None:
        self.stop_event.set()
        if self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=1.0)
        logger.info("Keyboard input stopped")

    def _poll(self) -> None:
        while not self.stop_event.is_set():
            key = self.read_key()
            if not key:
                continue
            logger.debug(f"Key pressed: {key!r}")
            if not self.callback(key.lower()):
                self.stop_event.set()
