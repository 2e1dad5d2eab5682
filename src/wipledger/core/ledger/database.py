# src/wipledger/core/ledger/database.py
"""Database connection management for the board store.

SQLite is the supported backend. Every write transaction starts with
BEGIN IMMEDIATE: the write lock is taken up front, which serializes
concurrent writers at BEGIN rather than failing one of them at COMMIT.
Read-only transactions start with a deferred BEGIN and run alongside the
writer on a WAL snapshot.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Self

from sqlalchemy import Connection, create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool

from wipledger.core.ledger.schema import metadata

_DEFERRED_BEGIN = "wipledger_deferred_begin"


class SchemaCompatibilityError(Exception):
    """Raised when an existing database does not match the current schema."""

    pass


class BoardDB:
    """Board database connection manager."""

    def __init__(
        self,
        connection_string: str,
        *,
        busy_timeout_ms: int = 5000,
        create_tables: bool = True,
    ) -> None:
        """Initialize database connection.

        Args:
            connection_string: SQLAlchemy connection string
                e.g., "sqlite:///./board.db"
            busy_timeout_ms: How long a connection waits for the write lock
                before failing with "database is locked"
            create_tables: Whether to create missing tables. Set to False to
                open an existing database without touching its schema.
        """
        if not connection_string.startswith("sqlite"):
            raise ValueError(f"Only SQLite databases are supported, got {connection_string!r}")
        self.connection_string = connection_string
        self._busy_timeout_ms = busy_timeout_ms
        self._engine: Engine | None = create_engine(connection_string, echo=False)
        BoardDB._configure_sqlite(self._engine, busy_timeout_ms)
        self._validate_schema()  # Check BEFORE create_tables
        if create_tables:
            metadata.create_all(self.engine)

    @staticmethod
    def _configure_sqlite(engine: Engine, busy_timeout_ms: int) -> None:
        """Configure SQLite engine for reliability.

        Registers a connection event hook that sets:
        - PRAGMA journal_mode=WAL (readers don't block the writer)
        - PRAGMA foreign_keys=ON (referential integrity)
        - PRAGMA busy_timeout (contention tolerance)

        and a begin hook that emits BEGIN IMMEDIATE, or plain BEGIN for
        read_connection(). The pysqlite driver's own transaction handling is
        disabled so SQLAlchemy's begin event controls when the transaction
        starts.
        """

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection: object, connection_record: object) -> None:
            # Driver-level autocommit; BEGIN is emitted by the "begin" hook below
            dbapi_connection.isolation_level = None  # type: ignore[attr-defined]
            cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
            cursor.close()

        @event.listens_for(engine, "begin")
        def begin_immediate(conn: Connection) -> None:
            # Readers take a WAL snapshot and never queue behind the writer
            if conn.get_execution_options().get(_DEFERRED_BEGIN, False):
                conn.exec_driver_sql("BEGIN")
            else:
                conn.exec_driver_sql("BEGIN IMMEDIATE")

    def _validate_schema(self) -> None:
        """Validate that an existing database has every table and column we use.

        A brand-new file (no board tables yet) passes; create_all() builds it.

        Raises:
            SchemaCompatibilityError: If the file is not a database, or some
                board tables or columns are missing.
        """
        try:
            inspector = inspect(self.engine)
            existing_tables = set(inspector.get_table_names())
        except OperationalError as e:
            if "file is not a database" in str(e):
                raise SchemaCompatibilityError(f"Not a SQLite database: {self.connection_string}") from e
            raise

        expected_tables = set(metadata.tables.keys())
        if not existing_tables & expected_tables:
            return

        missing_tables = sorted(expected_tables - existing_tables)
        missing_columns: list[str] = []
        for table_name in sorted(expected_tables & existing_tables):
            present = {c["name"] for c in inspector.get_columns(table_name)}
            for column in metadata.tables[table_name].columns:
                if column.name not in present:
                    missing_columns.append(f"{table_name}.{column.name}")

        if missing_tables or missing_columns:
            error_parts = []
            if missing_tables:
                error_parts.append(f"Missing tables: {', '.join(missing_tables)}")
            if missing_columns:
                error_parts.append(f"Missing columns: {', '.join(missing_columns)}")
            raise SchemaCompatibilityError(
                "Board database schema is outdated.\n\n" + "\n".join(error_parts) + "\n\n"
                f"Database: {self.connection_string}"
            )

    @property
    def engine(self) -> Engine:
        """Get the SQLAlchemy engine."""
        if self._engine is None:
            raise RuntimeError("Database not initialized")
        return self._engine

    def close(self) -> None:
        """Close database connection."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()

    @classmethod
    def in_memory(cls) -> Self:
        """Create an in-memory SQLite database for testing and scratch replays.

        A single connection is shared (StaticPool) so every caller, on any
        thread, sees the same in-memory database. Tables are created
        automatically.
        """
        engine = create_engine(
            "sqlite://",
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls._configure_sqlite(engine, 5000)
        metadata.create_all(engine)
        instance = cls.__new__(cls)
        instance.connection_string = "sqlite://"
        instance._busy_timeout_ms = 5000
        instance._engine = engine
        return instance

    @classmethod
    def from_url(cls, url: str, *, busy_timeout_ms: int = 5000, create_tables: bool = True) -> Self:
        """Create database from connection URL."""
        return cls(url, busy_timeout_ms=busy_timeout_ms, create_tables=create_tables)

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Get a database connection with automatic transaction handling.

        Uses engine.begin() for proper transaction semantics:
        - Auto-commits on successful block exit
        - Auto-rolls back on exception

        Usage:
            with db.connection() as conn:
                conn.execute(items_table.insert().values(...))
            # Committed automatically if no exception raised
        """
        with self.engine.begin() as conn:
            yield conn

    @contextmanager
    def read_connection(self) -> Iterator[Connection]:
        """Get a connection for reads only.

        The transaction starts with a plain (deferred) BEGIN, so it reads a
        WAL snapshot without taking the write lock. Writes through it would
        still have to wait for the lock; use connection() for those.
        """
        with self.engine.connect() as conn:
            conn.execution_options(**{_DEFERRED_BEGIN: True})
            with conn.begin():
                yield conn
