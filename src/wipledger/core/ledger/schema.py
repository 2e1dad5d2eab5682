# src/wipledger/core/ledger/schema.py
"""SQLAlchemy table definitions for the board and its ledger.

Uses SQLAlchemy Core (not ORM) for explicit control over queries.

Domain tables (wip_groups, notes, sprites) are projections that can be
rebuilt from event_log at any time. Group and note ids use AUTOINCREMENT so
an id is never reused after deletion, keeping one created event per id.
"""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

# Shared metadata for all tables
metadata = MetaData()

# === Domain tables ===

groups_table = Table(
    "wip_groups",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", Text, nullable=False),
    Column("position", Integer, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    sqlite_autoincrement=True,
)

items_table = Table(
    "notes",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("title", Text, nullable=False),
    Column("color", String(64), nullable=False),
    # No ON DELETE: deleting a group that still has notes must fail
    Column("group_id", Integer, ForeignKey("wip_groups.id"), nullable=False),
    Column("position", Integer, nullable=False),
    Column("status", String(32), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    sqlite_autoincrement=True,
)

workers_table = Table(
    "sprites",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("sigil", Text, nullable=False),
    Column("status", String(32), nullable=False),
    Column("group_id", Integer, ForeignKey("wip_groups.id")),
    Column("last_seen", DateTime(timezone=True), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

Index("ix_wip_groups_position", groups_table.c.position)
Index("ix_notes_group_position", items_table.c.group_id, items_table.c.position)
Index("ix_sprites_group", workers_table.c.group_id)

# === Ledger ===

# Append-only. Nothing in wipledger issues UPDATE or DELETE against this table.
events_table = Table(
    "event_log",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("timestamp", Text, nullable=False),
    Column("kind", String(64), nullable=False),
    Column("payload", Text, nullable=False),
    sqlite_autoincrement=True,
)

# Truncation order for the domain tables (children before parents).
DOMAIN_TABLES: tuple[Table, ...] = (items_table, workers_table, groups_table)
