# src/wipledger/core/ledger/replay.py
"""Rewind/replay: rebuild the domain tables from the ledger.

rewind() is truncate() followed by replay(). Truncation commits on its
own, and replay commits once per batch, so a failure part-way leaves the
tables truncated and partially rebuilt. Running rewind() again from that
state is always safe because the ledger itself is never touched.

Each event is applied by writing its snapshot straight into the domain
table, original ids and timestamps included:

    created  -> INSERT the snapshot
    updated  -> overwrite every column but the id, after re-running the
                sibling shift for a position change (or opening a slot in
                the new scope for a scope change)
    deleted  -> DELETE by id

An updated/deleted event whose row is missing is counted as orphaned.
Unrecognized kinds are skipped with a warning.
"""

import time
from dataclasses import dataclass

import structlog
from sqlalchemy import Connection, delete, func, select

from wipledger.contracts.board import BoardEntity
from wipledger.contracts.enums import DecodeErrorPolicy, Operation
from wipledger.contracts.errors import PayloadDecodeError
from wipledger.contracts.events import LedgerEvent, StoredEvent, UnrecognizedEvent
from wipledger.core.ledger.database import BoardDB
from wipledger.core.ledger.events import iter_events
from wipledger.core.ledger.projections import PROJECTIONS, Projection, entity_values, projection_digest
from wipledger.core.ledger.reorder import open_slot, shift_siblings
from wipledger.core.ledger.schema import DOMAIN_TABLES

logger = structlog.get_logger(__name__)

__all__ = ["ReplayEngine", "ReplayResult", "VerifyResult", "projection_digest"]


@dataclass(frozen=True)
class ReplayResult:
    """Outcome of a replay.

    Attributes:
        events_read: Ledger rows read, of any kind
        events_applied: Recognized events written to the domain tables
        unrecognized: Events skipped because their kind is unknown
        decode_failures: Events skipped because their payload did not decode
            (only non-zero under the skip policy)
        orphaned: Updated/deleted events whose target row did not exist
        duration_seconds: Wall-clock duration
    """

    events_read: int
    events_applied: int
    unrecognized: int
    decode_failures: int
    orphaned: int
    duration_seconds: float


@dataclass(frozen=True)
class VerifyResult:
    """Comparison of the live tables against a scratch replay of the ledger."""

    live_digest: str
    replayed_digest: str
    replay: ReplayResult

    @property
    def matches(self) -> bool:
        return self.live_digest == self.replayed_digest


class _Counters:
    def __init__(self) -> None:
        self.read = 0
        self.applied = 0
        self.unrecognized = 0
        self.decode_failures = 0
        self.orphaned = 0


class ReplayEngine:
    """Truncates and rebuilds the domain tables of one database.

    Example:
        engine = ReplayEngine(db, batch_size=200)
        result = engine.rewind()
        assert engine.verify().matches
    """

    def __init__(
        self,
        db: BoardDB,
        *,
        batch_size: int = 500,
        on_decode_error: DecodeErrorPolicy | str = DecodeErrorPolicy.ABORT,
        source: BoardDB | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            db: Database whose domain tables are rebuilt
            batch_size: Ledger events read and committed per batch
            on_decode_error: "abort" raises PayloadDecodeError at the first
                undecodable payload; "skip" logs it and moves on
            source: Database to read the ledger from (defaults to db)
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._db = db
        self._source = source if source is not None else db
        self._batch_size = batch_size
        self._on_decode_error = DecodeErrorPolicy(on_decode_error)

    def truncate(self) -> int:
        """Delete every row of every domain table in one transaction.

        The ledger is untouched and truncation itself is not logged.

        Returns:
            Number of rows removed
        """
        removed = 0
        with self._db.connection() as conn:
            for table in DOMAIN_TABLES:
                removed += conn.execute(delete(table)).rowcount
        logger.warning("Domain tables truncated", rows_removed=removed)
        return removed

    def replay(self) -> ReplayResult:
        """Apply the full ledger, in id order, to the (empty) domain tables.

        Raises:
            PayloadDecodeError: Under the abort policy, at the first payload
                that does not decode. Batches before it stay committed.
        """
        started = time.monotonic()
        counters = _Counters()
        for batch in iter_events(self._source, batch_size=self._batch_size):
            with self._db.connection() as conn:
                for event in batch:
                    counters.read += 1
                    self._apply(conn, event, counters)
            logger.debug("Replay batch committed", last_event_id=batch[-1].event_id, events_read=counters.read)

        result = ReplayResult(
            events_read=counters.read,
            events_applied=counters.applied,
            unrecognized=counters.unrecognized,
            decode_failures=counters.decode_failures,
            orphaned=counters.orphaned,
            duration_seconds=time.monotonic() - started,
        )
        logger.info(
            "Replay completed",
            events_read=result.events_read,
            events_applied=result.events_applied,
            unrecognized=result.unrecognized,
            decode_failures=result.decode_failures,
            orphaned=result.orphaned,
        )
        return result

    def rewind(self) -> ReplayResult:
        """Truncate the domain tables and rebuild them from the ledger."""
        self.truncate()
        return self.replay()

    def verify(self) -> VerifyResult:
        """Replay the ledger into a scratch in-memory database and compare.

        The live domain tables are only read.
        """
        with BoardDB.in_memory() as scratch:
            engine = ReplayEngine(
                scratch,
                batch_size=self._batch_size,
                on_decode_error=self._on_decode_error,
                source=self._db,
            )
            result = engine.replay()
            with scratch.read_connection() as conn:
                replayed_digest = projection_digest(conn)
        with self._db.read_connection() as conn:
            live_digest = projection_digest(conn)
        verdict = VerifyResult(live_digest=live_digest, replayed_digest=replayed_digest, replay=result)
        logger.info("Ledger verification finished", matches=verdict.matches, live_digest=live_digest, replayed_digest=replayed_digest)
        return verdict

    def _apply(self, conn: Connection, event: StoredEvent, counters: _Counters) -> None:
        if isinstance(event, UnrecognizedEvent):
            counters.unrecognized += 1
            logger.warning("Skipping unrecognized ledger event", event_id=event.event_id, kind=event.raw_kind)
            return

        projection = PROJECTIONS[event.entity_type]
        try:
            entity = projection.decode(event)
        except PayloadDecodeError as e:
            if self._on_decode_error == DecodeErrorPolicy.ABORT:
                logger.error("Replay aborted on undecodable payload", event_id=event.event_id, kind=str(event.kind), reason=e.reason)
                raise
            counters.decode_failures += 1
            logger.warning("Skipping undecodable ledger event", event_id=event.event_id, kind=str(event.kind), reason=e.reason)
            return

        match event.operation:
            case Operation.CREATED:
                conn.execute(projection.table.insert().values(**entity_values(entity)))
                applied = True
            case Operation.UPDATED:
                applied = self._apply_update(conn, projection, entity)
            case Operation.DELETED:
                table = projection.table
                applied = conn.execute(delete(table).where(table.c.id == entity.id)).rowcount > 0

        if applied:
            counters.applied += 1
        else:
            counters.orphaned += 1
            logger.warning("Orphaned ledger event: target row missing", event_id=event.event_id, kind=str(event.kind), entity_id=entity.id)

    def _apply_update(self, conn: Connection, projection: Projection, entity: BoardEntity) -> bool:
        table = projection.table
        values = entity_values(entity)
        if projection.ordered:
            current = conn.execute(select(table).where(table.c.id == entity.id)).fetchone()
            if current is None:
                return False
            scope = projection.scope_column
            scope_value = values[scope] if scope is not None else None
            if scope is not None and current._mapping[scope] != scope_value:
                open_slot(conn, projection, scope_value, entity.id, values["position"])
            elif current.position != values["position"]:
                shift_siblings(conn, projection, scope_value, entity.id, current.position, values["position"])
        values.pop("id")
        result = conn.execute(table.update().where(table.c.id == entity.id).values(**values))
        return result.rowcount > 0


def count_domain_rows(conn: Connection) -> int:
    """Total rows across the domain tables."""
    return sum(conn.execute(select(func.count()).select_from(table)).scalar_one() for table in DOMAIN_TABLES)
