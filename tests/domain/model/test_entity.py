from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from batchupsert.adapters.sqlalchemy import TableEntityType
from batchupsert.domain.errors import (
    IdentifierAlreadyAssignedError,
    InvalidFlagError,
    InvalidSearchMappingError,
)
from batchupsert.domain.model import Entity, MergeFlag, build
from tests.support.schema import people

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any


def test_build_adds_search_then_always_attributes(people_type: TableEntityType) -> None:
    entity = build(people_type, {"name": "Ada"}, {"age": 36})

    assert [(a.name, a.flag) for a in entity.attributes] == [
        ("name", MergeFlag.SEARCH),
        ("age", MergeFlag.ALWAYS),
    ]
    assert entity.search_columns == ["name"]
    assert entity.update_columns == ["age"]
    assert entity.id is None


def test_build_rejects_non_mapping_search(people_type: TableEntityType) -> None:
    with pytest.raises(InvalidSearchMappingError, match="got list instead"):
        build(people_type, ["name", "Ada"])  # type: ignore[arg-type]


def test_chained_builders_record_flags(people_type: TableEntityType) -> None:
    entity = build(people_type, {"name": "Ada"}).maybe("age", 36).prefer("bio", None)

    assert entity.update_attributes[0].flag is MergeFlag.MAYBE
    assert entity.update_attributes[1].flag is MergeFlag.PREFER
    assert entity.value_of("age") == 36


def test_add_rejects_unknown_flag(people_type: TableEntityType) -> None:
    entity = build(people_type, {"name": "Ada"})

    with pytest.raises(InvalidFlagError):
        entity.add("age", 36, "sometimes")


def test_association_name_translates_to_foreign_key(
    people_type: TableEntityType, posts_type: TableEntityType
) -> None:
    author = build(people_type, {"name": "Ada"})
    post = build(posts_type, {"person": author, "topic": "Engines"})

    assert post.search_columns == ["person_id", "topic"]
    assert post.ready() is False

    author.id = 4

    assert post.ready() is True
    assert post.search_record() == {"person_id": 4, "topic": "Engines"}
    assert post.value_of("person") == 4


def test_primary_key_attribute_sets_id(people_type: TableEntityType) -> None:
    entity = build(people_type, {"id": 65465465})

    assert entity.id == 65465465
    assert entity.has_id is True


def test_id_is_assigned_once(people_type: TableEntityType) -> None:
    entity = build(people_type, {"name": "Ada"})
    entity.id = 1
    entity.id = 1

    with pytest.raises(IdentifierAlreadyAssignedError):
        entity.id = 2


def test_record_lets_later_attributes_override(people_type: TableEntityType) -> None:
    entity = build(people_type, {"name": "Ada", "age": None}, {"age": 30})

    assert entity.search_record() == {"name": "Ada", "age": None}
    assert entity.record() == {"name": "Ada", "age": 30}


def test_normalizers_apply_to_search_and_record(people_type: TableEntityType) -> None:
    entity = build(people_type, {"name": "    John Doe     "})

    assert entity.search_record() == {"name": "John Doe"}
    assert entity.record() == {"name": "John Doe"}


def test_assign_id_if_matching_takes_row_identifier(people_type: TableEntityType) -> None:
    entity = build(people_type, {"name": "  Ada "}, {"age": 36})

    entity.assign_id_if_matching({"id": 9, "name": "Grace", "age": 36})
    assert entity.id is None

    entity.assign_id_if_matching({"id": 3, "name": "Ada", "age": 36})
    assert entity.id == 3


def test_assign_id_if_matching_uses_updated_search_values(people_type: TableEntityType) -> None:
    entity = build(people_type, {"name": "Ada", "age": None}, {"age": 30})

    entity.assign_id_if_matching({"id": 5, "name": "Ada", "age": 30})

    assert entity.id == 5


def test_assign_id_if_matching_decodes_json_text(people_type: TableEntityType) -> None:
    entity = build(people_type, {"extra": {"maiden_name": "Smith"}})

    entity.assign_id_if_matching({"id": 2, "extra": '{"maiden_name": "Smith"}'})

    assert entity.id == 2


def test_assign_id_if_matching_skips_unresolved_entities(
    people_type: TableEntityType, posts_type: TableEntityType
) -> None:
    author = build(people_type, {"name": "Ada"})
    post = build(posts_type, {"person": author, "topic": "Engines"})

    post.assign_id_if_matching({"id": 1, "person_id": None, "topic": "Engines"})

    assert post.id is None


def test_valid_rejects_null_in_required_column(posts_type: TableEntityType) -> None:
    assert build(posts_type, {"topic": "Engines"}).valid() is True
    assert build(posts_type, {"topic": None}).valid() is False


def test_valid_rejects_unknown_column(
    people_type: TableEntityType, caplog: pytest.LogCaptureFixture
) -> None:
    entity = build(people_type, {"colour": "blue"})

    with caplog.at_level(logging.WARNING):
        assert entity.valid() is False

    assert "Unknown column people.colour" in caplog.text


def test_valid_consults_record_validator() -> None:
    def adults_only(record: Mapping[str, Any]) -> bool:
        return (record.get("age") or 0) >= 18

    entity_type = TableEntityType.from_table(people, validator=adults_only)

    assert build(entity_type, {"name": "Ada"}, {"age": 36}).valid() is True
    assert build(entity_type, {"name": "Tim"}, {"age": 9}).valid() is False


def test_mark_optional_is_chainable(people_type: TableEntityType) -> None:
    entity = Entity(entity_type=people_type).search("name", "Ada").mark_optional()

    assert entity.optional is True


def test_valid_can_ignore_unresolved_references(
    people_type: TableEntityType, posts_type: TableEntityType
) -> None:
    author = build(people_type, {"name": "Ada"})
    post = build(posts_type, {"person": author, "topic": "Engines"})
    untitled = build(posts_type, {"person": author, "topic": None})

    assert post.valid() is False
    assert post.valid(ignore_unresolved=True) is True
    assert untitled.valid(ignore_unresolved=True) is False

    author.id = 1

    assert post.valid() is True
