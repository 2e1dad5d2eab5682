# src/wipledger/core/ledger/events.py
"""The ledger store: append-only, ordered event log.

append_event() always runs on the caller's connection, so the event
commits or rolls back together with the table write it describes. There
is no update or delete operation on the ledger.
"""

from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from sqlalchemy import Connection, func, select
from sqlalchemy.engine import Row

from wipledger.contracts.enums import EventKind
from wipledger.contracts.events import LedgerEvent, StoredEvent, UnrecognizedEvent
from wipledger.core.canonical import canonical_json
from wipledger.core.ledger._helpers import now
from wipledger.core.ledger.schema import events_table

if TYPE_CHECKING:
    from wipledger.core.ledger.database import BoardDB


def append_event(conn: Connection, kind: EventKind, payload: Any) -> int:
    """Append one event inside the caller's transaction.

    Args:
        conn: Connection of the enclosing transaction
        kind: Event kind
        payload: Entity snapshot (dataclass) or dict; stored as canonical JSON

    Returns:
        The store-assigned event id
    """
    result = conn.execute(
        events_table.insert().values(
            timestamp=now().isoformat(),
            kind=kind.value,
            payload=canonical_json(payload),
        )
    )
    event_id: int = result.inserted_primary_key[0]
    return event_id


def decode_row(row: Row[Any]) -> StoredEvent:
    """Turn an event_log row into a LedgerEvent or UnrecognizedEvent."""
    kind = EventKind.parse(row.kind)
    if kind is None:
        return UnrecognizedEvent(event_id=row.id, timestamp=row.timestamp, raw_kind=row.kind, raw_payload=row.payload)
    return LedgerEvent(event_id=row.id, timestamp=row.timestamp, kind=kind, payload=row.payload)


def read_events(conn: Connection, *, after_id: int | None = None, limit: int | None = None) -> list[StoredEvent]:
    """Read events in ascending id order.

    Args:
        conn: Any connection
        after_id: Only events with id strictly greater than this
        limit: Maximum number of events to return
    """
    query = select(events_table).order_by(events_table.c.id)
    if after_id is not None:
        query = query.where(events_table.c.id > after_id)
    if limit is not None:
        query = query.limit(limit)
    return [decode_row(row) for row in conn.execute(query)]


def iter_events(db: "BoardDB", *, batch_size: int = 500) -> Iterator[list[StoredEvent]]:
    """Page through the whole ledger in id-keyed batches.

    Each batch is read in its own short transaction that is closed before
    the batch is yielded, so the consumer may write to the same database
    between batches.
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    last_id: int | None = None
    while True:
        with db.read_connection() as conn:
            batch = read_events(conn, after_id=last_id, limit=batch_size)
        if not batch:
            return
        yield batch
        last_id = batch[-1].event_id


def count_events(conn: Connection) -> int:
    count: int = conn.execute(select(func.count()).select_from(events_table)).scalar_one()
    return count


def last_event_id(conn: Connection) -> int | None:
    """Return the id of the newest event, or None for an empty ledger."""
    event_id: int | None = conn.execute(select(func.max(events_table.c.id))).scalar_one()
    return event_id
