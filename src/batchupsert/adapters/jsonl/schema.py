"""Pydantic models describing one line of a record file."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RecordPayload(BaseModel):
    """A record to upsert.

    ``update`` values are written unconditionally (like ``always``); ``maybe``
    and ``prefer`` carry their own merge policy.
    """

    model_config = ConfigDict(extra="forbid")

    search: dict[str, Any] = Field(default_factory=dict[str, Any])
    update: dict[str, Any] = Field(default_factory=dict[str, Any])
    always: dict[str, Any] = Field(default_factory=dict[str, Any])
    maybe: dict[str, Any] = Field(default_factory=dict[str, Any])
    prefer: dict[str, Any] = Field(default_factory=dict[str, Any])
    optional: bool = False

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_search(cls, value: object) -> object:
        # a line without any known section is a plain search mapping
        if isinstance(value, Mapping):
            mapping_value = cast(Mapping[str, object], value)
            if mapping_value and not set(mapping_value) & set(cls.model_fields):
                return {"search": dict(mapping_value)}
        return value


type RecordPayloadInput = RecordPayload | Mapping[str, Any] | str
