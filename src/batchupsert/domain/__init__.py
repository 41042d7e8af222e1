"""Batch upsert core: entities, planning, and dependency-ordered saving.

Flow of one save call:
1) group pending entities by type and pick a group that is ready
2) drop invalid entities and check the batch (``plan_upsert``)
3) run one statement through an ``UpsertBackend``
4) bind returned ids to entities, resolving references for later rounds
"""

from __future__ import annotations

from .errors import (
    CardinalityMismatchError,
    EmptySearchListError,
    IdentifierAlreadyAssignedError,
    InconsistentFlagError,
    InconsistentSearchColumnsError,
    InvalidFlagError,
    InvalidSearchMappingError,
    MissingSearchValueError,
    MultipleEntityTypesError,
    PrimaryKeyUpdateError,
    RequiredAssociationError,
    UnknownOptionError,
    UnresolvedReferenceError,
    UpsertError,
)
from .model import Attribute, Entity, MergeFlag, SaveOptions, build
from .operation import UpsertOperation
from .persist import save_group
from .planning import MergeRow, UpsertPlan, plan_upsert
from .scheduling import save

__all__ = [
    "Attribute",
    "CardinalityMismatchError",
    "EmptySearchListError",
    "Entity",
    "IdentifierAlreadyAssignedError",
    "InconsistentFlagError",
    "InconsistentSearchColumnsError",
    "InvalidFlagError",
    "InvalidSearchMappingError",
    "MergeFlag",
    "MergeRow",
    "MissingSearchValueError",
    "MultipleEntityTypesError",
    "PrimaryKeyUpdateError",
    "RequiredAssociationError",
    "SaveOptions",
    "UnknownOptionError",
    "UnresolvedReferenceError",
    "UpsertError",
    "UpsertOperation",
    "UpsertPlan",
    "build",
    "plan_upsert",
    "save",
    "save_group",
]
