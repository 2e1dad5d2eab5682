"""Board entity contracts for the domain tables.

These mirror the rows of the groups, notes and sprites tables. The repository
layer builds them from database rows; the ledger stores them as JSON
snapshots. Field names are part of the snapshot format, so adding a field
needs a default to keep older snapshots decodable.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Group:
    """A WIP group (board column).

    Position orders groups across the whole board.
    """

    id: int
    name: str
    position: int
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Item:
    """A note on the board, ordered by position within its group."""

    id: int
    title: str
    color: str
    group_id: int
    position: int
    status: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Worker:
    """A worker (sprite) that reports status and heartbeats.

    The id is an opaque token chosen by the worker or generated at creation.
    """

    id: str
    sigil: str
    status: str
    last_seen: datetime
    created_at: datetime
    updated_at: datetime
    group_id: int | None = None


BoardEntity = Group | Item | Worker
