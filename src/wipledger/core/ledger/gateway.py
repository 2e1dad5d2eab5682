# src/wipledger/core/ledger/gateway.py
"""BoardGateway: the only write path to the board.

Every mutation performs its table write and its ledger append in one
transaction; both commit or both roll back. Input is validated before the
transaction opens, and notifications go out only after it commits.

Example:
    db = BoardDB.in_memory()
    gateway = BoardGateway(db)

    backlog = gateway.create_group({"name": "Backlog"})
    item = gateway.create_item({"title": "Write docs", "group_id": backlog.id})
    gateway.reorder_item(item.id, 0)
"""

from __future__ import annotations

import structlog
from sqlalchemy.exc import SQLAlchemyError

from wipledger.contracts.enums import ResetMode
from wipledger.contracts.errors import PersistenceError
from wipledger.contracts.notifications import BoardReset
from wipledger.core.config import BoardSettings
from wipledger.core.ledger._database_ops import DatabaseOps
from wipledger.core.ledger._group_ops import GroupOpsMixin
from wipledger.core.ledger._item_ops import ItemOpsMixin
from wipledger.core.ledger._worker_ops import WorkerOpsMixin
from wipledger.core.ledger.database import BoardDB
from wipledger.core.ledger.maintenance import MaintenanceGate
from wipledger.core.ledger.replay import ReplayEngine, ReplayResult, VerifyResult
from wipledger.core.notifications.dispatcher import NotificationDispatcher

logger = structlog.get_logger(__name__)


class BoardGateway(GroupOpsMixin, ItemOpsMixin, WorkerOpsMixin):
    """High-level API for board mutations, queries and maintenance."""

    def __init__(
        self,
        db: BoardDB,
        *,
        settings: BoardSettings | None = None,
        dispatcher: NotificationDispatcher | None = None,
        gate: MaintenanceGate | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            db: Board database
            settings: Defaults and replay settings (schema defaults if None)
            dispatcher: Receives post-commit notifications; None disables them
            gate: Maintenance gate; share one gate between gateways that use
                the same database in one process
        """
        self._db = db
        self._settings = settings if settings is not None else BoardSettings()
        self._dispatcher = dispatcher
        self._gate = gate if gate is not None else MaintenanceGate()
        self._ops = DatabaseOps()
        self._replay = ReplayEngine(
            db,
            batch_size=self._settings.replay.batch_size,
            on_decode_error=self._settings.replay.on_decode_error,
        )

    @property
    def gate(self) -> MaintenanceGate:
        return self._gate

    def rewind(self) -> ReplayResult:
        """Truncate the domain tables and rebuild them from the ledger.

        Holds the maintenance gate throughout; mutations arriving meanwhile
        fail with MaintenanceModeError.

        Raises:
            MaintenanceModeError: If mutations are in flight or another
                maintenance operation is running
            PayloadDecodeError: Under the abort policy, on an undecodable
                payload. The tables are left truncated and partly rebuilt.
            PersistenceError: On storage failure, with the same caveat
        """
        with self._gate.exclusive("rewind"):
            try:
                result = self._replay.rewind()
            except SQLAlchemyError as e:
                logger.error("Rewind failed; domain tables need manual repair", error=str(e))
                raise PersistenceError("rewind", e) from e
        self._publish(BoardReset(mode=ResetMode.REWIND, events_applied=result.events_applied))
        return result

    def emergency_blow(self) -> int:
        """Delete every row of every domain table, without replay.

        The ledger is untouched, so a later rewind() restores the board.

        Returns:
            Number of rows removed
        """
        with self._gate.exclusive("emergency_blow"):
            try:
                removed = self._replay.truncate()
            except SQLAlchemyError as e:
                raise PersistenceError("emergency_blow", e) from e
        self._publish(BoardReset(mode=ResetMode.EMERGENCY_BLOW, rows_removed=removed))
        return removed

    def verify(self) -> VerifyResult:
        """Compare the live tables with a scratch replay of the ledger."""
        try:
            return self._replay.verify()
        except SQLAlchemyError as e:
            raise PersistenceError("verify", e) from e
