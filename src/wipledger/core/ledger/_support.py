"""Shared transaction and ledger plumbing for the gateway mixins."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError
from sqlalchemy import Connection, select
from sqlalchemy.exc import SQLAlchemyError

from wipledger.contracts.board import BoardEntity
from wipledger.contracts.enums import Operation, kind_for
from wipledger.contracts.errors import NotFoundError, PersistenceError, ValidationFailure
from wipledger.contracts.notifications import Notice
from wipledger.core.ledger._database_ops import DatabaseOps
from wipledger.core.ledger.events import append_event
from wipledger.core.ledger.projections import Projection

if TYPE_CHECKING:
    from wipledger.core.config import BoardSettings
    from wipledger.core.ledger.database import BoardDB
    from wipledger.core.ledger.maintenance import MaintenanceGate
    from wipledger.core.notifications.dispatcher import NotificationDispatcher

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

_POSITION = TypeAdapter(int)


class GatewaySupport:
    """Helpers shared by the group, item and worker mixins."""

    # Shared state annotations (set by BoardGateway.__init__)
    _db: BoardDB
    _ops: DatabaseOps
    _settings: BoardSettings
    _gate: MaintenanceGate
    _dispatcher: NotificationDispatcher | None

    @staticmethod
    def _validate(model: type[M], data: Any, operation: str) -> M:
        """Validate caller input before any transaction opens.

        Raises:
            ValidationFailure: If the input does not fit the model
        """
        if isinstance(data, model):
            return data
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ValidationFailure(operation, e.errors(include_url=False, include_context=False)) from e

    @staticmethod
    def _validate_position(value: Any, operation: str) -> int:
        if isinstance(value, bool):
            raise ValidationFailure(operation, [{"loc": ("new_position",), "msg": "Input should be a valid integer"}])
        try:
            return _POSITION.validate_python(value)
        except ValidationError as e:
            raise ValidationFailure(operation, e.errors(include_url=False, include_context=False)) from e

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Connection]:
        """One atomic mutation: table writes and the ledger append commit together.

        Raises:
            MaintenanceModeError: If rewind or emergency blow is running
            PersistenceError: On any storage failure; nothing was written
        """
        with self._gate.write(operation):
            try:
                with self._db.connection() as conn:
                    yield conn
            except SQLAlchemyError as e:
                logger.error("Mutation rolled back", operation=operation, error=str(e))
                raise PersistenceError(operation, e) from e

    @contextmanager
    def _reading(self, operation: str) -> Iterator[Connection]:
        try:
            with self._db.read_connection() as conn:
                yield conn
        except SQLAlchemyError as e:
            raise PersistenceError(operation, e) from e

    @staticmethod
    def _require(conn: Connection, projection: Projection, entity_id: Any) -> Any:
        """Load an entity or raise NotFoundError (rolling the transaction back)."""
        entity = projection.load(conn, entity_id)
        if entity is None:
            raise NotFoundError(str(projection.entity_type), entity_id)
        return entity

    @staticmethod
    def _record(conn: Connection, projection: Projection, operation: Operation, entity_id: Any) -> tuple[Any, int]:
        """Re-read the row just written and append its snapshot to the ledger.

        Returns:
            Tuple of (entity as stored, event id)
        """
        table = projection.table
        row = DatabaseOps.reread(conn, select(table).where(table.c.id == entity_id))
        entity: BoardEntity = projection.repository.load(row)
        event_id = append_event(conn, kind_for(projection.entity_type, operation), entity)
        return entity, event_id

    @staticmethod
    def _record_deletion(conn: Connection, projection: Projection, entity: BoardEntity) -> int:
        """Delete the row and append its pre-delete snapshot."""
        table = projection.table
        conn.execute(table.delete().where(table.c.id == entity.id))
        return append_event(conn, kind_for(projection.entity_type, Operation.DELETED), entity)

    def _publish(self, notice: Notice) -> None:
        """Hand a notice to the dispatcher. Call only after commit."""
        if self._dispatcher is not None:
            self._dispatcher.publish(notice)
