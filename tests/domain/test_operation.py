from __future__ import annotations

from typing import TYPE_CHECKING

from batchupsert.domain import SaveOptions, UpsertOperation

if TYPE_CHECKING:
    from batchupsert.adapters.sqlalchemy import TableEntityType
    from tests.support.memory_backend import InMemoryUpsertBackend


def test_operation_collects_built_entities(
    people_type: TableEntityType, posts_type: TableEntityType
) -> None:
    operation = UpsertOperation()

    person = operation.build(people_type, {"name": "John Doe"}, {"age": 30})
    post = operation.build(posts_type, {"person": person, "topic": "Test"})

    assert operation.entities == [person, post]
    assert person.update_columns == ["age"]


def test_operation_saves_everything_it_built(
    people_type: TableEntityType,
    posts_type: TableEntityType,
    backend: InMemoryUpsertBackend,
) -> None:
    operation = UpsertOperation()
    person = operation.build(people_type, {"name": "John Doe"})
    post = operation.build(posts_type, {"person": person, "topic": "Test"})

    persisted = operation.save(
        backend=backend, options=SaveOptions(allow_association_fields=True)
    )

    assert persisted == [person, post]
    assert post.value_of("person_id") == person.id
