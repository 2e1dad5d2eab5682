# tests/property/test_board_state_machine.py
"""Property-based stateful tests for board mutations and replay.

A plain-Python model of group and item positions runs alongside a real
gateway. After every step the gateway must agree with the model, and at
any point a rewind must reproduce the live tables exactly.

Key Invariants:
- Positions are unique within every group, and across groups
- Groups stay dense from 1 (they are only created and moved here)
- An item group touched only by creates, reorders and incoming moves
  stays dense from 0
- Leaving a group and deleting never shift anybody
- rewind() restores a board identical to the live one
"""

from __future__ import annotations

import pytest
from hypothesis import strategies as st
from hypothesis.stateful import Bundle, RuleBasedStateMachine, consumes, invariant, precondition, rule

from wipledger.core.ledger import BoardDB, BoardGateway, projection_digest
from tests.property.settings import STATE_MACHINE_SETTINGS

positions = st.integers(min_value=-3, max_value=12)
statuses = st.sampled_from(["todo", "doing", "done"])

pytestmark = pytest.mark.slow


def _moved(scope: dict[int, int], entity_id: int, requested: int, base: int) -> dict[int, int]:
    """Positions of a scope after moving one member, shifting the window between."""
    old = scope[entity_id]
    new = min(max(requested, base), max(scope.values()))
    result = {}
    for other, pos in scope.items():
        if new < old and new <= pos < old:
            pos += 1
        elif new > old and old < pos <= new:
            pos -= 1
        result[other] = pos
    result[entity_id] = new
    return result


class BoardModel:
    """Expected group positions and (group_id, position) of every live item."""

    def __init__(self) -> None:
        self.groups: dict[int, int] = {}
        self.items: dict[int, tuple[int, int]] = {}

    def scope(self, group_id: int) -> dict[int, int]:
        return {item_id: pos for item_id, (gid, pos) in self.items.items() if gid == group_id}

    def add_group(self, group_id: int) -> None:
        self.groups[group_id] = max(self.groups.values(), default=0) + 1

    def move_group(self, group_id: int, requested: int) -> None:
        self.groups = _moved(self.groups, group_id, requested, base=1)

    def append(self, item_id: int, group_id: int) -> None:
        siblings = self.scope(group_id)
        self.items[item_id] = (group_id, max(siblings.values()) + 1 if siblings else 0)

    def reorder(self, item_id: int, requested: int) -> None:
        group_id = self.items[item_id][0]
        for other, pos in _moved(self.scope(group_id), item_id, requested, base=0).items():
            self.items[other] = (group_id, pos)

    def move(self, item_id: int, group_id: int, requested: int | None) -> None:
        del self.items[item_id]
        if requested is None:
            self.append(item_id, group_id)
            return
        siblings = self.scope(group_id)
        slot = min(max(requested, 0), max(siblings.values()) + 1) if siblings else 0
        for other, pos in siblings.items():
            if pos >= slot:
                self.items[other] = (group_id, pos + 1)
        self.items[item_id] = (group_id, slot)


class BoardStateMachine(RuleBasedStateMachine):
    groups = Bundle("groups")
    items = Bundle("items")

    def __init__(self) -> None:
        super().__init__()
        self.db = BoardDB.in_memory()
        self.gateway = BoardGateway(self.db)
        self.model = BoardModel()
        self.dense_groups: set[int] = set()

    def teardown(self) -> None:
        self.db.close()

    @rule(target=groups, name=st.text(min_size=1, max_size=8))
    def create_group(self, name: str) -> int:
        group = self.gateway.create_group({"name": name})
        self.model.add_group(group.id)
        self.dense_groups.add(group.id)
        assert group.position == self.model.groups[group.id]
        return group.id

    @rule(group_id=groups, target_position=positions)
    def reorder_group(self, group_id: int, target_position: int) -> None:
        moved = self.gateway.reorder_group(group_id, target_position)
        self.model.move_group(group_id, target_position)
        assert moved.position == self.model.groups[group_id]

    @rule(group_id=groups, target_position=positions)
    def update_group_position(self, group_id: int, target_position: int) -> None:
        self.gateway.update_group(group_id, {"position": target_position})
        self.model.move_group(group_id, target_position)

    @rule(target=items, group_id=groups, title=st.text(min_size=1, max_size=8))
    def create_item(self, group_id: int, title: str) -> int:
        item = self.gateway.create_item({"title": title, "group_id": group_id})
        self.model.append(item.id, group_id)
        assert item.position == self.model.items[item.id][1]
        return item.id

    @rule(item_id=items, target_position=positions)
    def reorder_item(self, item_id: int, target_position: int) -> None:
        if item_id not in self.model.items:
            return
        group_id = self.model.items[item_id][0]
        before = sorted(self.model.scope(group_id).values())
        self.gateway.reorder_item(item_id, target_position)
        self.model.reorder(item_id, target_position)
        assert sorted(self.model.scope(group_id).values()) == before

    @rule(item_id=items, target_position=positions)
    def update_item_position(self, item_id: int, target_position: int) -> None:
        if item_id not in self.model.items:
            return
        self.gateway.update_item(item_id, {"position": target_position})
        self.model.reorder(item_id, target_position)

    @rule(item_id=items, group_id=groups, target_position=st.none() | positions)
    def move_item(self, item_id: int, group_id: int, target_position: int | None) -> None:
        if item_id not in self.model.items:
            return
        old_group = self.model.items[item_id][0]
        changes: dict[str, int] = {"group_id": group_id}
        if target_position is not None:
            changes["position"] = target_position
        self.gateway.update_item(item_id, changes)
        if group_id == old_group:
            if target_position is not None:
                self.model.reorder(item_id, target_position)
            return
        self.model.move(item_id, group_id, target_position)
        self.dense_groups.discard(old_group)

    @rule(item_id=items, status=statuses)
    def update_status(self, item_id: int, status: str) -> None:
        if item_id in self.model.items:
            self.gateway.update_item(item_id, {"status": status})

    @rule(item_id=consumes(items))
    def delete_item(self, item_id: int) -> None:
        if item_id not in self.model.items:
            return
        group_id = self.model.items.pop(item_id)[0]
        self.gateway.delete_item(item_id)
        self.dense_groups.discard(group_id)

    @precondition(lambda self: bool(self.model.groups))
    @rule()
    def rewind_restores_board(self) -> None:
        with self.db.connection() as conn:
            before = projection_digest(conn)
        self.gateway.rewind()
        with self.db.connection() as conn:
            assert projection_digest(conn) == before

    @invariant()
    def groups_match_model(self) -> None:
        live = {group.id: group.position for group in self.gateway.list_groups()}
        assert live == self.model.groups
        assert sorted(live.values()) == list(range(1, len(live) + 1))

    @invariant()
    def positions_match_model(self) -> None:
        live = {item.id: (item.group_id, item.position) for item in self.gateway.list_items()}
        assert live == self.model.items

    @invariant()
    def positions_unique_within_group(self) -> None:
        for group_id in self.model.groups:
            scope = list(self.model.scope(group_id).values())
            assert len(scope) == len(set(scope))

    @invariant()
    def untouched_groups_are_dense(self) -> None:
        for group_id in self.dense_groups:
            scope = self.model.scope(group_id)
            assert sorted(scope.values()) == list(range(len(scope)))


BoardStateMachine.TestCase.settings = STATE_MACHINE_SETTINGS
TestBoardStateMachine = BoardStateMachine.TestCase
