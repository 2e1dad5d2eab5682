"""Ledger event contracts.

A stored ledger row decodes to exactly one of two variants:

- LedgerEvent: the kind is one this build knows (EventKind).
- UnrecognizedEvent: the kind tag is unknown, typically written by a newer
  schema. The raw tag and payload are kept verbatim so nothing is lost.

Readers match on the variant instead of comparing strings.
"""

import json
from dataclasses import dataclass
from typing import Any

from wipledger.contracts.enums import EntityType, EventKind, Operation, kind_parts
from wipledger.contracts.errors import PayloadDecodeError


@dataclass(frozen=True)
class LedgerEvent:
    """A ledger event with a recognized kind."""

    event_id: int
    timestamp: str
    kind: EventKind
    payload: str

    @property
    def entity_type(self) -> EntityType:
        return kind_parts(self.kind)[0]

    @property
    def operation(self) -> Operation:
        return kind_parts(self.kind)[1]

    def decode_payload(self) -> dict[str, Any]:
        """Parse the JSON payload into a dict.

        Raises:
            PayloadDecodeError: If the payload is not valid JSON or is not
                a JSON object.
        """
        try:
            data = json.loads(self.payload)
        except json.JSONDecodeError as e:
            raise PayloadDecodeError(self.event_id, self.kind, f"invalid JSON: {e}") from e
        if type(data) is not dict:
            raise PayloadDecodeError(self.event_id, self.kind, f"payload must be a JSON object, got {type(data).__name__}")
        return data


@dataclass(frozen=True)
class UnrecognizedEvent:
    """A ledger event whose kind tag this build does not know."""

    event_id: int
    timestamp: str
    raw_kind: str
    raw_payload: str


StoredEvent = LedgerEvent | UnrecognizedEvent
