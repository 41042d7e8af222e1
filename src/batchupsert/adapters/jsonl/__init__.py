"""Record-file adapter: one JSON object per line."""

from __future__ import annotations

from .schema import RecordPayload
from .translator import RecordFileError, parse_entity, parse_lines, read_entities

__all__ = [
    "RecordFileError",
    "RecordPayload",
    "parse_entity",
    "parse_lines",
    "read_entities",
]
