# tests/core/ledger/test_gateway_groups.py
"""Tests for group operations on BoardGateway."""

import pytest

from wipledger.contracts import EventKind, Group, LedgerEvent, NotFoundError, PersistenceError, ValidationFailure
from wipledger.core.ledger import BoardDB, BoardGateway
from wipledger.core.ledger.events import count_events, read_events
from wipledger.core.ledger.projections import GROUPS


def _events(db: BoardDB) -> list[LedgerEvent]:
    with db.connection() as conn:
        events = read_events(conn)
    assert all(isinstance(e, LedgerEvent) for e in events)
    return events  # type: ignore[return-value]


class TestCreateGroup:
    def test_first_groups_are_numbered_from_one(self, gateway: BoardGateway) -> None:
        backlog = gateway.create_group({"name": "Backlog"})
        doing = gateway.create_group({"name": "Doing"})

        assert backlog.position == 1
        assert doing.position == 2

    def test_appends_created_event_with_snapshot(self, gateway: BoardGateway, board_db: BoardDB) -> None:
        group = gateway.create_group({"name": "Backlog"})

        [event] = _events(board_db)
        assert event.kind == EventKind.WIP_GROUP_CREATED
        assert GROUPS.decode(event) == group

    def test_timestamps_are_utc(self, gateway: BoardGateway) -> None:
        group = gateway.create_group({"name": "Backlog"})

        assert group.created_at.utcoffset().total_seconds() == 0
        assert group.created_at == group.updated_at

    @pytest.mark.parametrize("spec", [{}, {"name": ""}, {"name": "x", "colour": "red"}, None])
    def test_invalid_spec_rejected_before_transaction(self, gateway: BoardGateway, board_db: BoardDB, spec: object) -> None:
        with pytest.raises(ValidationFailure) as exc_info:
            gateway.create_group(spec)  # type: ignore[arg-type]

        assert exc_info.value.operation == "create_group"
        assert exc_info.value.errors
        with board_db.connection() as conn:
            assert count_events(conn) == 0


class TestQueryGroups:
    def test_list_orders_by_position(self, gateway: BoardGateway) -> None:
        a = gateway.create_group({"name": "A"})
        b = gateway.create_group({"name": "B"})
        gateway.reorder_group(b.id, 1)

        assert [g.name for g in gateway.list_groups()] == ["B", "A"]
        assert gateway.get_group(a.id).position == 2

    def test_get_missing_group(self, gateway: BoardGateway) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            gateway.get_group(404)

        assert exc_info.value.entity == "group"
        assert exc_info.value.entity_id == 404


class TestUpdateGroup:
    def test_only_supplied_fields_change(self, gateway: BoardGateway) -> None:
        group = gateway.create_group({"name": "Backlog"})

        updated = gateway.update_group(group.id, {"name": "Icebox"})

        assert updated.name == "Icebox"
        assert updated.position == group.position
        assert updated.created_at == group.created_at
        assert updated.updated_at >= group.updated_at

    def test_position_update_shifts_siblings(self, gateway: BoardGateway) -> None:
        a = gateway.create_group({"name": "A"})
        b = gateway.create_group({"name": "B"})
        c = gateway.create_group({"name": "C"})

        gateway.update_group(c.id, {"position": 1})

        assert {g.name: g.position for g in gateway.list_groups()} == {"C": 1, "A": 2, "B": 3}
        assert gateway.get_group(a.id).position == 2
        assert gateway.get_group(b.id).position == 3

    def test_update_appends_one_event(self, gateway: BoardGateway, board_db: BoardDB) -> None:
        group = gateway.create_group({"name": "Backlog"})

        updated = gateway.update_group(group.id, {"name": "Icebox"})

        events = _events(board_db)
        assert [e.kind for e in events] == [EventKind.WIP_GROUP_CREATED, EventKind.WIP_GROUP_UPDATED]
        assert GROUPS.decode(events[-1]) == updated

    def test_empty_partial_is_malformed(self, gateway: BoardGateway) -> None:
        group = gateway.create_group({"name": "Backlog"})

        with pytest.raises(ValidationFailure):
            gateway.update_group(group.id, {})

    def test_null_field_is_malformed(self, gateway: BoardGateway) -> None:
        group = gateway.create_group({"name": "Backlog"})

        with pytest.raises(ValidationFailure):
            gateway.update_group(group.id, {"name": None})

    def test_update_missing_group_appends_nothing(self, gateway: BoardGateway, board_db: BoardDB) -> None:
        with pytest.raises(NotFoundError):
            gateway.update_group(99, {"name": "x"})

        with board_db.connection() as conn:
            assert count_events(conn) == 0


class TestDeleteGroup:
    def test_delete_appends_pre_delete_snapshot(self, gateway: BoardGateway, board_db: BoardDB) -> None:
        group = gateway.create_group({"name": "Backlog"})

        assert gateway.delete_group(group.id) is True

        events = _events(board_db)
        assert events[-1].kind == EventKind.WIP_GROUP_DELETED
        assert GROUPS.decode(events[-1]) == group
        assert gateway.list_groups() == []

    def test_delete_missing_group(self, gateway: BoardGateway) -> None:
        with pytest.raises(NotFoundError):
            gateway.delete_group(1)

    def test_delete_referenced_group_fails_atomically(self, gateway: BoardGateway, board_db: BoardDB) -> None:
        group = gateway.create_group({"name": "Backlog"})
        gateway.create_item({"title": "task", "group_id": group.id})

        with pytest.raises(PersistenceError) as exc_info:
            gateway.delete_group(group.id)

        assert exc_info.value.operation == "delete_group"
        assert gateway.get_group(group.id) == group
        assert [e.kind for e in _events(board_db)] == [EventKind.WIP_GROUP_CREATED, EventKind.NOTE_CREATED]

    def test_delete_group_referenced_by_worker_fails(self, gateway: BoardGateway) -> None:
        group = gateway.create_group({"name": "Backlog"})
        gateway.create_worker({"sigil": "W", "group_id": group.id})

        with pytest.raises(PersistenceError):
            gateway.delete_group(group.id)

    def test_mutations_after_delete_are_not_found(self, gateway: BoardGateway) -> None:
        group = gateway.create_group({"name": "Backlog"})
        gateway.delete_group(group.id)

        with pytest.raises(NotFoundError):
            gateway.update_group(group.id, {"name": "again"})
        with pytest.raises(NotFoundError):
            gateway.delete_group(group.id)

    def test_ids_are_not_reused(self, gateway: BoardGateway) -> None:
        first = gateway.create_group({"name": "A"})
        gateway.delete_group(first.id)

        second = gateway.create_group({"name": "B"})

        assert second.id > first.id


class TestReorderGroup:
    def test_no_op_appends_nothing(self, gateway: BoardGateway, board_db: BoardDB) -> None:
        group = gateway.create_group({"name": "A"})
        gateway.create_group({"name": "B"})

        result = gateway.reorder_group(group.id, group.position)

        assert result == group
        assert len(_events(board_db)) == 2

    def test_reorder_returns_group(self, gateway: BoardGateway) -> None:
        gateway.create_group({"name": "A"})
        b = gateway.create_group({"name": "B"})

        moved = gateway.reorder_group(b.id, 1)

        assert isinstance(moved, Group)
        assert moved.position == 1

    def test_non_integer_position_rejected(self, gateway: BoardGateway) -> None:
        group = gateway.create_group({"name": "A"})

        with pytest.raises(ValidationFailure):
            gateway.reorder_group(group.id, "top")  # type: ignore[arg-type]

    @pytest.mark.parametrize("target", [0, -3])
    def test_target_below_one_clamps_to_first(self, gateway: BoardGateway, target: int) -> None:
        last = [gateway.create_group({"name": n}) for n in "ABC"][-1]

        moved = gateway.reorder_group(last.id, target)

        assert moved.position == 1
        assert [g.name for g in gateway.list_groups()] == ["C", "A", "B"]
        assert sorted(g.position for g in gateway.list_groups()) == [1, 2, 3]

    def test_update_position_zero_keeps_groups_dense(self, gateway: BoardGateway) -> None:
        gateway.create_group({"name": "A"})
        b = gateway.create_group({"name": "B"})

        gateway.update_group(b.id, {"position": 0})

        assert [(g.name, g.position) for g in gateway.list_groups()] == [("B", 1), ("A", 2)]
