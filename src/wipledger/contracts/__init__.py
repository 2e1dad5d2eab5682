"""Shared contracts for cross-boundary data types.

Entities, ledger event variants, notifications, input models, enums and
errors live here. This package is a LEAF MODULE with no outbound
dependencies to core; settings classes are imported from
wipledger.core.config.

Import patterns:
    from wipledger.contracts import Item, EventKind, NotFoundError
"""

from wipledger.contracts.board import BoardEntity, Group, Item, Worker
from wipledger.contracts.enums import (
    DecodeErrorPolicy,
    EntityType,
    EventKind,
    Operation,
    ResetMode,
    WorkerStatus,
    kind_for,
    kind_parts,
)
from wipledger.contracts.errors import (
    BoardError,
    LedgerIntegrityError,
    MaintenanceModeError,
    NotFoundError,
    PayloadDecodeError,
    PersistenceError,
    ValidationFailure,
)
from wipledger.contracts.events import LedgerEvent, StoredEvent, UnrecognizedEvent
from wipledger.contracts.inputs import (
    CreateGroup,
    CreateItem,
    CreateWorker,
    UpdateGroup,
    UpdateItem,
    UpdateWorkerStatus,
)
from wipledger.contracts.notifications import BoardReset, GroupReassigned, Notice

__all__ = [
    "BoardEntity",
    "BoardError",
    "BoardReset",
    "CreateGroup",
    "CreateItem",
    "CreateWorker",
    "DecodeErrorPolicy",
    "EntityType",
    "EventKind",
    "Group",
    "GroupReassigned",
    "Item",
    "LedgerEvent",
    "LedgerIntegrityError",
    "MaintenanceModeError",
    "NotFoundError",
    "Notice",
    "Operation",
    "PayloadDecodeError",
    "PersistenceError",
    "ResetMode",
    "StoredEvent",
    "UnrecognizedEvent",
    "UpdateGroup",
    "UpdateItem",
    "UpdateWorkerStatus",
    "ValidationFailure",
    "Worker",
    "WorkerStatus",
    "kind_for",
    "kind_parts",
]
