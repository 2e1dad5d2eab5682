"""Pydantic input models for gateway operations.

This is the trust boundary: callers (a web handler, the idle-worker sweep,
tests) hand the gateway plain dicts, which are validated here before any
transaction opens. Unknown fields are rejected.

Partial updates distinguish "not supplied" from "supplied". Only fields the
caller actually passed appear in changes(), and a partial that supplies no
fields at all is rejected.
"""

from typing import Any, Self

from pydantic import BaseModel, Field, model_validator

from wipledger.contracts.enums import WorkerStatus


class _Partial(BaseModel):
    """Base for update models where every field is optional."""

    model_config = {"frozen": True, "extra": "forbid"}

    @model_validator(mode="after")
    def _require_supplied_fields(self) -> Self:
        if not self.model_fields_set:
            raise ValueError("at least one field must be supplied")
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        """Return only the supplied fields."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class CreateGroup(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    name: str = Field(min_length=1, description="Display name of the group")


class UpdateGroup(_Partial):
    name: str | None = Field(default=None, min_length=1)
    position: int | None = Field(default=None, description="Target position; clamped into range")


class CreateItem(BaseModel):
    """Input for create_item.

    An empty or missing color falls back to the configured default.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    title: str = Field(min_length=1)
    color: str = ""
    group_id: int


class UpdateItem(_Partial):
    title: str | None = Field(default=None, min_length=1)
    color: str | None = Field(default=None, min_length=1)
    group_id: int | None = None
    position: int | None = None
    status: str | None = Field(default=None, min_length=1)


class CreateWorker(BaseModel):
    """Input for create_worker. The id is generated when omitted."""

    model_config = {"frozen": True, "extra": "forbid"}

    id: str | None = Field(default=None, min_length=1, max_length=64)
    sigil: str = Field(min_length=1)
    group_id: int | None = None


class UpdateWorkerStatus(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    status: WorkerStatus
