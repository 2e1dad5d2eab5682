"""In-process maintenance gate.

Rewind and emergency blow need the domain tables to themselves. Every
gateway mutation enters the gate in shared ``write`` mode; rewind and blow
enter it in ``exclusive`` mode. The two never overlap: whichever side
arrives second is rejected immediately with MaintenanceModeError rather
than waiting.

Exclusion across processes still relies on SQLite's write lock.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

from wipledger.contracts.errors import MaintenanceModeError

logger = structlog.get_logger(__name__)


class MaintenanceGate:
    """Shared/exclusive gate guarding the domain tables.

    Thread Safety:
        All state is guarded by a single lock that is held only while the
        counters are read or changed, never across the guarded block.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._holder: str | None = None
        self._in_flight = 0

    @property
    def holder(self) -> str | None:
        """Operation currently holding exclusive mode, if any."""
        with self._lock:
            return self._holder

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    @contextmanager
    def write(self, operation: str) -> Iterator[None]:
        """Enter shared mode for one mutation.

        Raises:
            MaintenanceModeError: If exclusive mode is held
        """
        with self._lock:
            if self._holder is not None:
                raise MaintenanceModeError(operation, self._holder)
            self._in_flight += 1
        try:
            yield
        finally:
            with self._lock:
                self._in_flight -= 1

    @contextmanager
    def exclusive(self, operation: str) -> Iterator[None]:
        """Enter exclusive mode for a maintenance operation.

        Raises:
            MaintenanceModeError: If another exclusive operation is active or
                mutations are in flight
        """
        with self._lock:
            if self._holder is not None:
                raise MaintenanceModeError(operation, self._holder)
            if self._in_flight:
                raise MaintenanceModeError(operation, f"{self._in_flight} in-flight mutation(s)")
            self._holder = operation
        logger.info("Maintenance mode entered", operation=operation)
        try:
            yield
        finally:
            with self._lock:
                self._holder = None
            logger.info("Maintenance mode released", operation=operation)
