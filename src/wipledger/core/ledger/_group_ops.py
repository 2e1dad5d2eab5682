# src/wipledger/core/ledger/_group_ops.py
"""Group (WIP group) operations for BoardGateway."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import func, select

from wipledger.contracts.board import Group
from wipledger.contracts.enums import Operation
from wipledger.contracts.inputs import CreateGroup, UpdateGroup
from wipledger.core.ledger._helpers import now
from wipledger.core.ledger._support import GatewaySupport
from wipledger.core.ledger.projections import GROUPS
from wipledger.core.ledger.reorder import reorder
from wipledger.core.ledger.schema import groups_table

logger = structlog.get_logger(__name__)


class GroupOpsMixin(GatewaySupport):
    """Group methods. Mixed into BoardGateway."""

    def create_group(self, spec: CreateGroup | dict[str, Any]) -> Group:
        """Create a group at the end of the board.

        Groups are numbered from 1: the first group on an empty board gets
        position 1, the next 2.
        """
        data = self._validate(CreateGroup, spec, "create_group")
        with self._transaction("create_group") as conn:
            timestamp = now()
            next_position = select(func.coalesce(func.max(groups_table.c.position) + 1, GROUPS.base_position)).scalar_subquery()
            result = conn.execute(
                groups_table.insert().values(
                    name=data.name,
                    position=next_position,
                    created_at=timestamp,
                    updated_at=timestamp,
                )
            )
            group, event_id = self._record(conn, GROUPS, Operation.CREATED, result.inserted_primary_key[0])
        logger.debug("Group created", group_id=group.id, position=group.position, event_id=event_id)
        return group

    def list_groups(self) -> list[Group]:
        with self._reading("list_groups") as conn:
            rows = conn.execute(select(groups_table).order_by(groups_table.c.position, groups_table.c.id))
            return [GROUPS.repository.load(row) for row in rows]

    def get_group(self, group_id: int) -> Group:
        with self._reading("get_group") as conn:
            group: Group = self._require(conn, GROUPS, group_id)
            return group

    def update_group(self, group_id: int, partial: UpdateGroup | dict[str, Any]) -> Group:
        """Apply the supplied fields. A new position moves the group like reorder_group."""
        changes = self._validate(UpdateGroup, partial, "update_group").changes()
        with self._transaction("update_group") as conn:
            current: Group = self._require(conn, GROUPS, group_id)
            values: dict[str, Any] = {"updated_at": now()}
            if "name" in changes:
                values["name"] = changes["name"]
            if "position" in changes:
                reorder(conn, GROUPS, None, group_id, current.position, changes["position"])
            self._ops.execute_update(conn, groups_table.update().where(groups_table.c.id == group_id).values(**values))
            group, event_id = self._record(conn, GROUPS, Operation.UPDATED, group_id)
        logger.debug("Group updated", group_id=group_id, fields=sorted(changes), event_id=event_id)
        return group

    def delete_group(self, group_id: int) -> bool:
        """Delete a group.

        A group still referenced by items or workers cannot be deleted: the
        foreign key failure surfaces as PersistenceError and nothing is
        written.
        """
        with self._transaction("delete_group") as conn:
            current: Group = self._require(conn, GROUPS, group_id)
            event_id = self._record_deletion(conn, GROUPS, current)
        logger.debug("Group deleted", group_id=group_id, event_id=event_id)
        return True

    def reorder_group(self, group_id: int, new_position: int) -> Group:
        """Move a group among all groups.

        The target is clamped to [1, highest group position]. A move to the
        current position is a no-op: nothing is written and no event is
        appended.
        """
        requested = self._validate_position(new_position, "reorder_group")
        with self._transaction("reorder_group") as conn:
            current: Group = self._require(conn, GROUPS, group_id)
            position = reorder(conn, GROUPS, None, group_id, current.position, requested)
            if position == current.position:
                return current
            self._ops.execute_update(conn, groups_table.update().where(groups_table.c.id == group_id).values(updated_at=now()))
            group, event_id = self._record(conn, GROUPS, Operation.UPDATED, group_id)
        logger.debug("Group reordered", group_id=group_id, old_position=current.position, new_position=position, event_id=event_id)
        return group
