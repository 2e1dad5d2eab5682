# src/wipledger/core/ledger/reorder.py
"""Positional reordering within a sibling scope.

Moving an entity from position ``old`` to ``new`` shifts only the siblings
strictly between the two (plus the one at ``new``):

    new < old: siblings in [new, old) move down one slot (+1)
    new > old: siblings in (old, new] move up one slot (-1)

Entering a scope at ``pos`` (a cross-group move) opens a slot instead:
siblings at ``pos`` or later move down one slot.

A scope whose positions are dense from the projection's base position
stays dense, and positions within a scope stay unique. Sibling shifts are
not logged; replay re-runs them for any logged position change, which is
why every live position change must also go through here.

All functions run on the caller's connection and never commit.
"""

from typing import Any

from sqlalchemy import ColumnElement, Connection, and_, func, select, true

from wipledger.core.ledger.projections import Projection


def scope_clause(projection: Projection, scope_value: Any) -> ColumnElement[bool]:
    """WHERE clause selecting every row in the given scope."""
    if projection.scope_column is None:
        return true()
    return projection.table.c[projection.scope_column] == scope_value


def max_position(conn: Connection, projection: Projection, scope_value: Any) -> int | None:
    """Highest position in the scope, or None when the scope is empty."""
    table = projection.table
    result: int | None = conn.execute(select(func.max(table.c.position)).where(scope_clause(projection, scope_value))).scalar_one()
    return result


def clamp_position(conn: Connection, projection: Projection, scope_value: Any, requested: int, *, entering: bool = False) -> int:
    """Clamp a requested position into the scope's range.

    A move within the scope stays in [base, current max]. An entity
    entering the scope may also take max + 1, or base when it is empty.
    """
    base = projection.base_position
    upper = max_position(conn, projection, scope_value)
    if upper is None:
        return base
    if entering:
        upper += 1
    return min(max(requested, base), upper)


def open_slot(conn: Connection, projection: Projection, scope_value: Any, entity_id: Any, position: int) -> int:
    """Move every sibling at or after position down one slot.

    Returns:
        Number of siblings shifted
    """
    table = projection.table
    result = conn.execute(
        table.update()
        .where(scope_clause(projection, scope_value), table.c.id != entity_id, table.c.position >= position)
        .values(position=table.c.position + 1)
    )
    shifted: int = result.rowcount
    return shifted


def shift_siblings(
    conn: Connection,
    projection: Projection,
    scope_value: Any,
    entity_id: Any,
    old: int,
    new: int,
) -> int:
    """Shift the siblings between old and new to make room at new.

    The moved entity itself is excluded; its own position is set by the
    caller. Only position changes, never updated_at.

    Returns:
        Number of siblings shifted
    """
    if new == old:
        return 0
    table = projection.table
    position = table.c.position
    if new < old:
        window = and_(position >= new, position < old)
        delta = 1
    else:
        window = and_(position > old, position <= new)
        delta = -1
    result = conn.execute(
        table.update()
        .where(scope_clause(projection, scope_value), table.c.id != entity_id, window)
        .values(position=position + delta)
    )
    shifted: int = result.rowcount
    return shifted


def reorder(
    conn: Connection,
    projection: Projection,
    scope_value: Any,
    entity_id: Any,
    old: int,
    requested: int,
) -> int:
    """Move an entity within its scope and return its new position.

    Clamps the request to [base, current max], shifts the siblings and
    writes the moved entity's position. Returns ``old`` unchanged, touching
    nothing, for a no-op move.
    """
    new = clamp_position(conn, projection, scope_value, requested)
    if new == old:
        return old
    shift_siblings(conn, projection, scope_value, entity_id, old, new)
    table = projection.table
    conn.execute(table.update().where(table.c.id == entity_id).values(position=new))
    return new
