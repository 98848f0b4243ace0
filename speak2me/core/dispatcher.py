"""Single-threaded event dispatcher for recognition callbacks.

Recognition engines report from their own threads. Every callback is posted
onto one FIFO queue and executed by a single worker thread, so the transcript
state is only ever mutated from one place, in emission order. Timed deferrals
(engine restarts) are posted onto the same queue when they fire.
"""

import queue
import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class DeferredCall:
    """Handle for a callback scheduled with `EventDispatcher.call_later`."""

    def __init__(self, timer: threading.Timer):
        self._timer = timer
        self.cancelled = False

    def cancel(self) -> None:
        """Cancel the call if it has not fired yet."""
        self.cancelled = True
        self._timer.cancel()


class EventDispatcher:
    """Runs posted callbacks one at a time on a dedicated worker thread."""

    def __init__(self, name: str = "speak2me-events"):
        self.name = name
        self.task_queue = queue.Queue()
        self.worker_thread: Optional[threading.Thread] = None
        self.shutdown_event = threading.Event()

    def start(self) -> None:
        """Start the worker thread."""
        if self.worker_thread and self.worker_thread.is_alive():
            return

        self.shutdown_event.clear()
        self.worker_thread = threading.Thread(target=self._worker_loop, daemon=True)
        self.worker_thread.name = self.name
        self.worker_thread.start()
        logger.info(f"Event dispatcher '{self.name}' started")

    def post(self, callback: Callable[..., Any], *args: Any) -> None:
        """Queue a callback for execution on the event thread."""
        if self.shutdown_event.is_set():
            logger.debug(f"Dispatcher shut down, dropping {getattr(callback, '__name__', callback)}")
            return
        self.task_queue.put((callback, args))

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> DeferredCall:
        """Post a callback after `delay` seconds.

        The timer thread only posts; the callback itself still runs on the
        event thread, after everything queued before it.
        """
        timer = threading.Timer(delay, self.post, args=(callback, *args))
        timer.daemon = True
        handle = DeferredCall(timer)
        timer.start()
        return handle

    def _worker_loop(self) -> None:
        logger.debug(f"Dispatcher thread {self.name} starting")
        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    logger.debug(f"Dispatcher {self.name} received sentinel, exiting.")
                    break
                callback, args = task
                try:
                    callback(*args)
                except Exception as e:
                    logger.error(f"Unhandled exception in event callback "
                                 f"{getattr(callback, '__name__', callback)}: {e}", exc_info=True)
            finally:
                self.task_queue.task_done()

    def shutdown(self, timeout: float = 2.0) -> bool:
        """Drain queued callbacks and stop the worker thread.

        Returns:
            True if the worker exited within the timeout
        """
        logger.info(f"Shutting down event dispatcher '{self.name}'...")
        self.shutdown_event.set()
        if not self.worker_thread:
            return True

        self.task_queue.put(None)
        self.worker_thread.join(timeout)
        if self.worker_thread.is_alive():
            logger.warning(f"Dispatcher thread {self.name} did not terminate cleanly.")
            return False

        self.worker_thread = None
        logger.info(f"Event dispatcher '{self.name}' shutdown complete.")
        return True
