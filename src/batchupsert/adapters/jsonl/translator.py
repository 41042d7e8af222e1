"""Translate record-file payloads into pending entities."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from batchupsert.domain.model import build

from .schema import RecordPayload, RecordPayloadInput

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from batchupsert.domain.model import Entity
    from batchupsert.domain.ports.metadata import EntityType


log = getLogger(__name__)


class RecordFileError(ValueError):
    """Raised when a record file line cannot be parsed."""

    def __init__(self, source: str, line_number: int, detail: str) -> None:
        self.source = source
        self.line_number = line_number
        super().__init__(f"{source}:{line_number}: {detail}")


def _ensure_payload(record: RecordPayloadInput) -> RecordPayload:
    if isinstance(record, RecordPayload):
        return record
    if isinstance(record, str):
        return RecordPayload.model_validate_json(record)
    return RecordPayload.model_validate(record)


def parse_entity(record: RecordPayloadInput, entity_type: EntityType) -> Entity:
    payload = _ensure_payload(record)
    entity = build(entity_type, payload.search, {**payload.update, **payload.always})
    for name, value in payload.maybe.items():
        entity.maybe(name, value)
    for name, value in payload.prefer.items():
        entity.prefer(name, value)
    if payload.optional:
        entity.mark_optional()
    return entity


def parse_lines(lines: Iterable[str], entity_type: EntityType, *, source: str) -> list[Entity]:
    entities: list[Entity] = []
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            entities.append(parse_entity(line, entity_type))
        except ValidationError as exc:
            raise RecordFileError(source, line_number, str(exc)) from exc
    log.debug("Parsed %s records from %s", len(entities), source)
    return entities


def read_entities(path: Path, entity_type: EntityType) -> list[Entity]:
    """Read one JSON record per line from ``path``."""

    with path.open(encoding="utf-8") as handle:
        return parse_lines(handle, entity_type, source=str(path))
