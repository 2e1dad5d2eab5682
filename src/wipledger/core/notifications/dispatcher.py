# src/wipledger/core/notifications/dispatcher.py
"""NotificationDispatcher delivers post-commit notices to hook plugins.

Design principles:
- Notices are published only AFTER the mutation committed (the ledger is
  the record; notifications are a side channel)
- publish() never blocks the caller: a full queue drops the notice
- A failing hook implementation never affects other hooks or the caller

Thread Safety:
    publish() is called from gateway threads; _delivery_loop() runs in the
    background delivery thread. Counters written from both threads are
    protected by _counter_lock.
"""

import queue
import threading
from collections.abc import Iterable
from typing import Any

import pluggy
import structlog

from wipledger.contracts.notifications import BoardReset, GroupReassigned, Notice
from wipledger.core.notifications.hookspecs import PROJECT_NAME, NotificationSpec

logger = structlog.get_logger(__name__)

_HOOK_NAMES: dict[type, str] = {
    GroupReassigned: "wipledger_group_reassigned",
    BoardReset: "wipledger_board_reset",
}


class NotificationDispatcher:
    """Queues notices and delivers them to pluggy hook implementations.

    Example:
        >>> dispatcher = NotificationDispatcher([SlackNotifier()])
        >>> dispatcher.publish(BoardReset(mode=ResetMode.REWIND))
        >>> dispatcher.flush()
        >>> dispatcher.close()
    """

    _LOG_INTERVAL = 100  # Log every 100 drops

    def __init__(self, plugins: Iterable[object] = (), *, queue_size: int = 1000) -> None:
        """Initialize the dispatcher and start its delivery thread.

        Args:
            plugins: Objects with @hookimpl methods to register
            queue_size: Pending notices held before new ones are dropped
        """
        if queue_size <= 0:
            raise ValueError(f"queue_size must be positive, got {queue_size}")

        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(NotificationSpec)
        for plugin in plugins:
            self.register(plugin)

        self._published = 0
        self._delivered = 0
        self._dropped = 0
        self._failed = 0
        self._last_logged_drop_count = 0
        self._counter_lock = threading.Lock()

        self._shutdown_event = threading.Event()
        self._queue: queue.Queue[Notice | None] = queue.Queue(maxsize=queue_size)
        self._thread = threading.Thread(
            target=self._delivery_loop,
            name="wipledger-notifications",
            daemon=True,
        )
        self._thread.start()

    def register(self, plugin: object) -> None:
        """Register a hook plugin.

        Raises:
            ValueError: If the plugin is already registered or implements a
                hook that has no specification
        """
        try:
            self._pm.register(plugin)
            self._pm.check_pending()
        except (pluggy.PluginValidationError, ValueError) as e:
            # PluginValidationError: misspelled hook name or wrong signature
            # ValueError: same plugin object or name registered twice
            if isinstance(e, pluggy.PluginValidationError):
                self._pm.unregister(plugin=plugin)
            raise ValueError(f"Invalid notification plugin {type(plugin).__name__}: {e}") from e

    def publish(self, notice: Notice) -> None:
        """Queue a notice for delivery. Never blocks, never raises."""
        if self._shutdown_event.is_set():
            logger.debug("Dispatcher closed, notice discarded", notice_type=type(notice).__name__)
            return
        try:
            self._queue.put_nowait(notice)
        except queue.Full:
            with self._counter_lock:
                self._dropped += 1
                self._log_drops_if_needed()
            return
        with self._counter_lock:
            self._published += 1

    def _log_drops_if_needed(self) -> None:
        """Log aggregate drop message if threshold reached.

        Must be called while holding _counter_lock.
        """
        if self._dropped == 1 or self._dropped - self._last_logged_drop_count >= self._LOG_INTERVAL:
            logger.warning(
                "Notifications dropped: queue full",
                dropped_since_last_log=self._dropped - self._last_logged_drop_count,
                dropped_total=self._dropped,
            )
            self._last_logged_drop_count = self._dropped

    def _delivery_loop(self) -> None:
        while True:
            notice = self._queue.get()
            try:
                if notice is None:  # Shutdown sentinel
                    break
                self._deliver(notice)
            except Exception as e:
                # Delivery must never kill the thread
                logger.error("Notification delivery loop failed unexpectedly", error=str(e))
            finally:
                # ALWAYS call task_done() so flush() cannot hang
                self._queue.task_done()

    def _deliver(self, notice: Notice) -> None:
        """Call every implementation of the notice's hook, isolating failures."""
        hook_name = _HOOK_NAMES[type(notice)]
        caller = getattr(self._pm.hook, hook_name)
        for impl in caller.get_hookimpls():
            try:
                impl.function(notice=notice)
            except Exception as e:
                with self._counter_lock:
                    self._failed += 1
                logger.warning(
                    "Notification hook failed",
                    plugin=impl.plugin_name,
                    hook=hook_name,
                    error=str(e),
                )
        with self._counter_lock:
            self._delivered += 1

    @property
    def health(self) -> dict[str, Any]:
        """Snapshot of delivery counters.

        - published: Notices accepted onto the queue
        - delivered: Notices handed to every registered hook
        - dropped: Notices rejected because the queue was full
        - failed: Individual hook calls that raised
        """
        with self._counter_lock:
            return {
                "published": self._published,
                "delivered": self._delivered,
                "dropped": self._dropped,
                "failed": self._failed,
                "queue_depth": self._queue.qsize(),
            }

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until every queued notice has been delivered.

        Args:
            timeout: Seconds to wait; None waits indefinitely

        Returns:
            True if the queue drained, False on timeout
        """
        if timeout is None:
            self._queue.join()
            return True
        drained = threading.Event()

        def _join() -> None:
            self._queue.join()
            drained.set()

        threading.Thread(target=_join, name="wipledger-notifications-flush", daemon=True).start()
        return drained.wait(timeout)

    def close(self, timeout: float = 5.0) -> None:
        """Stop accepting notices, deliver what is queued, stop the thread.

        Idempotent.
        """
        if self._shutdown_event.is_set():
            return
        self._shutdown_event.set()
        # Shutdown is signaled, so no new notices arrive; the sentinel put
        # blocks at most until the thread frees a slot.
        self._queue.put(None)
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.error("Notification thread did not exit cleanly within timeout")
        logger.info("Notification dispatcher closed", **self.health)

    def __enter__(self) -> "NotificationDispatcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
