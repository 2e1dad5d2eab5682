"""Database operation helpers to reduce boilerplate in the gateway.

Both helpers run on the caller's connection so they join the caller's
transaction.
"""

from typing import Any

from sqlalchemy import Connection, Executable
from sqlalchemy.engine import Row

from wipledger.contracts.errors import LedgerIntegrityError


class DatabaseOps:
    """Helper for write-path checks inside a gateway transaction."""

    @staticmethod
    def execute_update(conn: Connection, stmt: Executable) -> None:
        """Execute an update that must touch at least one row.

        Raises:
            LedgerIntegrityError: If zero rows are affected. Callers check
                existence first, so this means the row vanished mid-transaction.
        """
        result = conn.execute(stmt)
        if result.rowcount == 0:
            raise LedgerIntegrityError("execute_update: zero rows affected - target row vanished inside its own transaction")

    @staticmethod
    def reread(conn: Connection, query: Executable) -> Row[Any]:
        """Re-read a row just written in this transaction.

        Raises:
            LedgerIntegrityError: If the row cannot be read back
        """
        row = conn.execute(query).fetchone()
        if row is None:
            raise LedgerIntegrityError("reread: row written in this transaction cannot be read back")
        return row
