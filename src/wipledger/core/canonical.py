# src/wipledger/core/canonical.py
"""
Canonical JSON serialization for ledger payloads and projection digests.

Two-phase approach:
1. Normalize: Convert datetimes, Decimals and bytes to JSON-safe primitives
2. Serialize: Produce deterministic JSON per RFC 8785/JCS (rfc8785 package)

NaN and Infinity are rejected, not silently converted.
"""

import base64
import dataclasses
import hashlib
import math
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

import rfc8785


def to_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime. Naive values are assumed to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _normalize_value(obj: Any) -> Any:
    """Convert a single value to a JSON-safe primitive.

    Raises:
        ValueError: If value is a non-finite float or Decimal
    """
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            raise ValueError(f"Cannot canonicalize non-finite float: {obj}. Use None for missing values, not NaN.")
        return obj

    # StrEnum members are str instances; unwrap so rfc8785 sees a plain str
    if isinstance(obj, Enum):
        return obj.value

    if obj is None or isinstance(obj, str | int | bool):
        return obj

    if isinstance(obj, datetime):
        return to_utc(obj).isoformat()

    if isinstance(obj, bytes):
        return {"__bytes__": base64.b64encode(obj).decode("ascii")}

    if isinstance(obj, Decimal):
        if not obj.is_finite():
            raise ValueError(f"Cannot canonicalize non-finite Decimal: {obj}.")
        return str(obj)

    return obj


def _normalize_for_canonical(data: Any) -> Any:
    """Recursively normalize a data structure for canonical JSON."""
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        data = {f.name: getattr(data, f.name) for f in dataclasses.fields(data)}
    if isinstance(data, dict):
        return {k: _normalize_for_canonical(v) for k, v in data.items()}
    if isinstance(data, list | tuple):
        return [_normalize_for_canonical(v) for v in data]
    return _normalize_value(data)


def canonical_json(obj: Any) -> str:
    """Produce canonical JSON.

    Dataclass instances are serialized as objects of their fields.

    Returns:
        Canonical JSON string (no whitespace, sorted keys)

    Raises:
        ValueError: If data contains NaN, Infinity, or other non-finite values
        TypeError: If data contains types that cannot be serialized
    """
    normalized = _normalize_for_canonical(obj)
    result: bytes = rfc8785.dumps(normalized)
    return result.decode("utf-8")


def stable_hash(obj: Any) -> str:
    """Compute stable hash of object.

    Args:
        obj: Data structure to hash

    Returns:
        SHA-256 hex digest of canonical JSON
    """
    canonical = canonical_json(obj)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
