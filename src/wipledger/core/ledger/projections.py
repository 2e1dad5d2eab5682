"""Projection registry: how each entity type maps onto its domain table.

Replay, the projection digest and the gateway all look entities up here
rather than switching on entity type themselves.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import Connection, Table, select

from wipledger.contracts.board import BoardEntity, Group, Item, Worker
from wipledger.contracts.enums import EntityType
from wipledger.contracts.errors import PayloadDecodeError
from wipledger.contracts.events import LedgerEvent
from wipledger.core.canonical import stable_hash
from wipledger.core.ledger.repositories import GroupRepository, ItemRepository, WorkerRepository
from wipledger.core.ledger.schema import groups_table, items_table, workers_table


@dataclass(frozen=True)
class Projection:
    """One domain table and the entity it holds.

    Attributes:
        entity_type: Entity type projected into the table
        table: The domain table
        entity_cls: Dataclass the rows load into
        repository: Row loader
        ordered: Whether rows carry a position column
        scope_column: Column that partitions positions into sibling scopes,
            or None when all rows share one scope
        base_position: Lowest position in a scope; a dense scope of N rows
            holds [base_position, base_position + N)
    """

    entity_type: EntityType
    table: Table
    entity_cls: type
    repository: GroupRepository | ItemRepository | WorkerRepository
    ordered: bool
    scope_column: str | None = None
    base_position: int = 0

    @property
    def adapter(self) -> TypeAdapter[Any]:
        return _ADAPTERS[self.entity_type]

    def decode(self, event: LedgerEvent) -> BoardEntity:
        """Decode an event payload into this projection's entity.

        Unknown fields are ignored; missing fields or wrong types fail.

        Raises:
            PayloadDecodeError: If the payload does not describe the entity
        """
        data = event.decode_payload()
        try:
            entity: BoardEntity = self.adapter.validate_python(data)
        except ValidationError as e:
            reasons = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
            raise PayloadDecodeError(event.event_id, event.kind, reasons) from e
        return entity

    def load(self, conn: Connection, entity_id: Any) -> BoardEntity | None:
        row = conn.execute(select(self.table).where(self.table.c.id == entity_id)).fetchone()
        if row is None:
            return None
        entity: BoardEntity = self.repository.load(row)
        return entity

    def load_all(self, conn: Connection) -> list[BoardEntity]:
        rows = conn.execute(select(self.table).order_by(self.table.c.id))
        return [self.repository.load(row) for row in rows]


def entity_values(entity: BoardEntity) -> dict[str, Any]:
    """Column values for an entity; field names match column names."""
    return {f.name: getattr(entity, f.name) for f in dataclasses.fields(entity)}


_ADAPTERS: dict[EntityType, TypeAdapter[Any]] = {
    EntityType.GROUP: TypeAdapter(Group),
    EntityType.ITEM: TypeAdapter(Item),
    EntityType.WORKER: TypeAdapter(Worker),
}

GROUPS = Projection(EntityType.GROUP, groups_table, Group, GroupRepository(), ordered=True, base_position=1)
ITEMS = Projection(EntityType.ITEM, items_table, Item, ItemRepository(), ordered=True, scope_column="group_id")
WORKERS = Projection(EntityType.WORKER, workers_table, Worker, WorkerRepository(), ordered=False)

PROJECTIONS: dict[EntityType, Projection] = {p.entity_type: p for p in (GROUPS, ITEMS, WORKERS)}


def projection_digest(conn: Connection) -> str:
    """Stable hash of the full contents of every domain table.

    Two databases with equal digests hold identical board state, timestamps
    included.
    """
    snapshot = {str(p.entity_type): p.load_all(conn) for p in PROJECTIONS.values()}
    return stable_hash(snapshot)
