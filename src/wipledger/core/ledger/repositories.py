"""Repository layer for board entities.

Handles the seam between SQLAlchemy rows and domain objects. SQLite hands
back naive datetimes; every timestamp is stored as UTC, so it is tagged UTC
here. This is NOT a trust boundary: the domain tables are our data, and a
row that does not fit the entity crashes.
"""

from typing import Any

from sqlalchemy.engine import Row as SARow

from wipledger.contracts.board import Group, Item, Worker
from wipledger.core.canonical import to_utc


class GroupRepository:
    """Repository for Group records."""

    def load(self, row: SARow[Any]) -> Group:
        return Group(
            id=row.id,
            name=row.name,
            position=row.position,
            created_at=to_utc(row.created_at),
            updated_at=to_utc(row.updated_at),
        )


class ItemRepository:
    """Repository for Item (note) records."""

    def load(self, row: SARow[Any]) -> Item:
        return Item(
            id=row.id,
            title=row.title,
            color=row.color,
            group_id=row.group_id,
            position=row.position,
            status=row.status,
            created_at=to_utc(row.created_at),
            updated_at=to_utc(row.updated_at),
        )


class WorkerRepository:
    """Repository for Worker (sprite) records.

    Status is kept as stored text; the gateway only ever writes
    WorkerStatus values.
    """

    def load(self, row: SARow[Any]) -> Worker:
        return Worker(
            id=row.id,
            sigil=row.sigil,
            status=row.status,
            last_seen=to_utc(row.last_seen),
            created_at=to_utc(row.created_at),
            updated_at=to_utc(row.updated_at),
            group_id=row.group_id,
        )
