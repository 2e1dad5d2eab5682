"""All status codes, kinds, and modes used across subsystem boundaries.

Event kind strings are part of the ledger's on-disk format. Renaming a
member's value orphans every stored event of that kind (older rows would
decode as unrecognized), so values are frozen once released.
"""

from enum import StrEnum


class EntityType(StrEnum):
    """Kind of entity projected into a domain table."""

    GROUP = "group"
    ITEM = "item"
    WORKER = "worker"


class EventKind(StrEnum):
    """Ledger event kinds, one per (entity, operation) pair.

    Stored in the database (event_log.kind).
    """

    NOTE_CREATED = "NOTE_CREATED"
    NOTE_UPDATED = "NOTE_UPDATED"
    NOTE_DELETED = "NOTE_DELETED"
    WIP_GROUP_CREATED = "WIP_GROUP_CREATED"
    WIP_GROUP_UPDATED = "WIP_GROUP_UPDATED"
    WIP_GROUP_DELETED = "WIP_GROUP_DELETED"
    SPRITE_CREATED = "SPRITE_CREATED"
    SPRITE_UPDATED = "SPRITE_UPDATED"
    SPRITE_DELETED = "SPRITE_DELETED"

    @classmethod
    def parse(cls, raw: str) -> "EventKind | None":
        """Return the matching kind, or None for a tag this build does not know."""
        try:
            return cls(raw)
        except ValueError:
            return None


class Operation(StrEnum):
    """Ledger operation carried by an event kind."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


_KIND_TABLE: dict[EventKind, tuple[EntityType, Operation]] = {
    EventKind.NOTE_CREATED: (EntityType.ITEM, Operation.CREATED),
    EventKind.NOTE_UPDATED: (EntityType.ITEM, Operation.UPDATED),
    EventKind.NOTE_DELETED: (EntityType.ITEM, Operation.DELETED),
    EventKind.WIP_GROUP_CREATED: (EntityType.GROUP, Operation.CREATED),
    EventKind.WIP_GROUP_UPDATED: (EntityType.GROUP, Operation.UPDATED),
    EventKind.WIP_GROUP_DELETED: (EntityType.GROUP, Operation.DELETED),
    EventKind.SPRITE_CREATED: (EntityType.WORKER, Operation.CREATED),
    EventKind.SPRITE_UPDATED: (EntityType.WORKER, Operation.UPDATED),
    EventKind.SPRITE_DELETED: (EntityType.WORKER, Operation.DELETED),
}

_KIND_LOOKUP: dict[tuple[EntityType, Operation], EventKind] = {v: k for k, v in _KIND_TABLE.items()}


def kind_parts(kind: EventKind) -> tuple[EntityType, Operation]:
    """Split an event kind into its entity type and operation."""
    return _KIND_TABLE[kind]


def kind_for(entity: EntityType, operation: Operation) -> EventKind:
    """Return the event kind recorded for an operation on an entity type."""
    return _KIND_LOOKUP[(entity, operation)]


class WorkerStatus(StrEnum):
    """Status of a worker (sprite).

    Stored in the database (sprites.status).
    """

    IDLE = "idle"
    BUSY = "busy"
    DONE = "done"
    FAILED = "failed"


class DecodeErrorPolicy(StrEnum):
    """What replay does with a ledger payload it cannot decode."""

    ABORT = "abort"
    SKIP = "skip"


class ResetMode(StrEnum):
    """Kind of board reset announced to operator hooks."""

    REWIND = "rewind"
    EMERGENCY_BLOW = "emergency_blow"
