"""The board store: domain tables plus the event ledger they are rebuilt from.

Primary API:
    BoardGateway - All mutations, queries and maintenance
    BoardDB - Database connection management
    ReplayEngine - Truncate/replay/verify of the domain tables
"""

from wipledger.core.ledger.database import BoardDB, SchemaCompatibilityError
from wipledger.core.ledger.events import append_event, count_events, iter_events, last_event_id, read_events
from wipledger.core.ledger.gateway import BoardGateway
from wipledger.core.ledger.maintenance import MaintenanceGate
from wipledger.core.ledger.projections import projection_digest
from wipledger.core.ledger.replay import ReplayEngine, ReplayResult, VerifyResult

__all__ = [
    "BoardDB",
    "BoardGateway",
    "MaintenanceGate",
    "ReplayEngine",
    "ReplayResult",
    "SchemaCompatibilityError",
    "VerifyResult",
    "append_event",
    "count_events",
    "iter_events",
    "last_event_id",
    "projection_digest",
    "read_events",
]
