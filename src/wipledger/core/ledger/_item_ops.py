# src/wipledger/core/ledger/_item_ops.py
"""Item (note) operations for BoardGateway."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import func, select

from wipledger.contracts.board import Item
from wipledger.contracts.enums import Operation
from wipledger.contracts.inputs import CreateItem, UpdateItem
from wipledger.contracts.notifications import GroupReassigned
from wipledger.core.ledger._helpers import now
from wipledger.core.ledger._support import GatewaySupport
from wipledger.core.ledger.projections import GROUPS, ITEMS
from wipledger.core.ledger.reorder import clamp_position, max_position, open_slot, reorder
from wipledger.core.ledger.schema import items_table

logger = structlog.get_logger(__name__)

_TEXT_FIELDS = ("title", "color", "status")


class ItemOpsMixin(GatewaySupport):
    """Item methods. Mixed into BoardGateway."""

    def create_item(self, spec: CreateItem | dict[str, Any]) -> Item:
        """Create an item at the end of its group.

        Items are numbered from 0 within their group. An empty color falls
        back to the configured default; status always starts at the
        configured default.

        Raises:
            NotFoundError: If the group does not exist
        """
        data = self._validate(CreateItem, spec, "create_item")
        defaults = self._settings.defaults
        with self._transaction("create_item") as conn:
            self._require(conn, GROUPS, data.group_id)
            timestamp = now()
            next_position = (
                select(func.coalesce(func.max(items_table.c.position) + 1, 0))
                .where(items_table.c.group_id == data.group_id)
                .scalar_subquery()
            )
            result = conn.execute(
                items_table.insert().values(
                    title=data.title,
                    color=data.color or defaults.item_color,
                    group_id=data.group_id,
                    position=next_position,
                    status=defaults.item_status,
                    created_at=timestamp,
                    updated_at=timestamp,
                )
            )
            item, event_id = self._record(conn, ITEMS, Operation.CREATED, result.inserted_primary_key[0])
        logger.debug("Item created", item_id=item.id, group_id=item.group_id, position=item.position, event_id=event_id)
        return item

    def list_items(self, group_id: int | None = None) -> list[Item]:
        """List items ordered by position, optionally restricted to one group."""
        query = select(items_table).order_by(items_table.c.position, items_table.c.id)
        if group_id is not None:
            query = query.where(items_table.c.group_id == group_id)
        with self._reading("list_items") as conn:
            return [ITEMS.repository.load(row) for row in conn.execute(query)]

    def get_item(self, item_id: int) -> Item:
        with self._reading("get_item") as conn:
            item: Item = self._require(conn, ITEMS, item_id)
            return item

    def update_item(self, item_id: int, partial: UpdateItem | dict[str, Any]) -> Item:
        """Apply the supplied fields to an item.

        Within the same group a new position moves the item like
        reorder_item. Moving to another group without a position appends the
        item to the target group. With a position, clamped to [0, end], the
        target group's items from that slot on move down one. The source
        group is not compacted. A group change publishes GroupReassigned once
        the transaction has committed.

        Raises:
            NotFoundError: If the item, or the new group, does not exist
        """
        changes = self._validate(UpdateItem, partial, "update_item").changes()
        with self._transaction("update_item") as conn:
            current: Item = self._require(conn, ITEMS, item_id)
            values: dict[str, Any] = {name: changes[name] for name in _TEXT_FIELDS if name in changes}
            new_group_id = changes.get("group_id", current.group_id)
            reassigned = new_group_id != current.group_id
            if reassigned:
                self._require(conn, GROUPS, new_group_id)
                values["group_id"] = new_group_id
                if "position" in changes:
                    position = clamp_position(conn, ITEMS, new_group_id, changes["position"], entering=True)
                    open_slot(conn, ITEMS, new_group_id, item_id, position)
                    values["position"] = position
                else:
                    last = max_position(conn, ITEMS, new_group_id)
                    values["position"] = 0 if last is None else last + 1
            elif "position" in changes:
                reorder(conn, ITEMS, current.group_id, item_id, current.position, changes["position"])
            values["updated_at"] = now()
            self._ops.execute_update(conn, items_table.update().where(items_table.c.id == item_id).values(**values))
            item, event_id = self._record(conn, ITEMS, Operation.UPDATED, item_id)

        logger.debug("Item updated", item_id=item_id, fields=sorted(changes), event_id=event_id)
        if reassigned:
            self._publish(
                GroupReassigned(
                    item_id=item_id,
                    old_group_id=current.group_id,
                    new_group_id=new_group_id,
                    event_id=event_id,
                )
            )
        return item

    def delete_item(self, item_id: int) -> bool:
        """Delete an item. Remaining positions are not compacted.

        Raises:
            NotFoundError: If the item does not exist (no event is appended)
        """
        with self._transaction("delete_item") as conn:
            current: Item = self._require(conn, ITEMS, item_id)
            event_id = self._record_deletion(conn, ITEMS, current)
        logger.debug("Item deleted", item_id=item_id, event_id=event_id)
        return True

    def reorder_item(self, item_id: int, new_position: int) -> Item:
        """Move an item within its group.

        The target is clamped to [0, highest position in the group]. A move
        to the current position is a no-op with no event.
        """
        requested = self._validate_position(new_position, "reorder_item")
        with self._transaction("reorder_item") as conn:
            current: Item = self._require(conn, ITEMS, item_id)
            position = reorder(conn, ITEMS, current.group_id, item_id, current.position, requested)
            if position == current.position:
                return current
            self._ops.execute_update(conn, items_table.update().where(items_table.c.id == item_id).values(updated_at=now()))
            item, event_id = self._record(conn, ITEMS, Operation.UPDATED, item_id)
        logger.debug("Item reordered", item_id=item_id, old_position=current.position, new_position=position, event_id=event_id)
        return item
