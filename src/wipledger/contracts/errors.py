# src/wipledger/contracts/errors.py
"""Error contracts for board mutations, the ledger and replay.

Every error raised across the gateway boundary derives from BoardError so
callers (the CLI, a web layer) can map failures to responses with a single
except clause. An unrecognized ledger kind is NOT an error; see
UnrecognizedEvent in wipledger.contracts.events.
"""

from typing import Any


class BoardError(Exception):
    """Base class for all wipledger errors."""


class NotFoundError(BoardError):
    """Raised when the target entity id does not exist.

    Raised inside the transaction, so the transaction rolls back and no
    ledger event is appended.

    Attributes:
        entity: Entity type name ("group", "item", "worker")
        entity_id: The id that was looked up
    """

    def __init__(self, entity: str, entity_id: Any) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id!r} not found")


class ValidationFailure(BoardError):
    """Raised when gateway input is malformed.

    Rejected before any transaction opens.

    Attributes:
        operation: Gateway operation name (e.g. "create_item")
        errors: Structured error details, as produced by pydantic's
            ValidationError.errors()
    """

    def __init__(self, operation: str, errors: list[dict[str, Any]]) -> None:
        self.operation = operation
        self.errors = errors
        details = "; ".join(_format_error(e) for e in errors) or "invalid input"
        super().__init__(f"{operation}: {details}")


def _format_error(error: dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


class PersistenceError(BoardError):
    """Raised when the storage layer fails during a mutation.

    The whole transaction has been rolled back; prior state is preserved.

    Attributes:
        operation: Gateway operation name
        cause: The underlying storage exception
    """

    def __init__(self, operation: str, cause: BaseException) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}")


class PayloadDecodeError(BoardError):
    """Raised when a ledger payload cannot be decoded into its entity.

    Attributes:
        event_id: Ledger id of the offending event
        kind: Event kind tag
        reason: Human-readable decode failure
    """

    def __init__(self, event_id: int, kind: str, reason: str) -> None:
        self.event_id = event_id
        self.kind = kind
        self.reason = reason
        super().__init__(f"Cannot decode ledger event {event_id} ({kind}): {reason}")


class MaintenanceModeError(BoardError):
    """Raised when an operation collides with board maintenance.

    Mutations are rejected while rewind or emergency blow holds the
    maintenance gate; an exclusive operation is rejected while another one
    is active or mutations are in flight.

    Attributes:
        operation: The rejected operation
        holder: What currently holds the gate
    """

    def __init__(self, operation: str, holder: str) -> None:
        self.operation = operation
        self.holder = holder
        super().__init__(f"{operation} rejected: board is busy with {holder}")


class LedgerIntegrityError(BoardError):
    """Raised when a row just written cannot be read back in its own transaction.

    This indicates storage corruption or a bug in our code. It is never
    handled; callers should let it crash.
    """
