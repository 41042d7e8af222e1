"""Ports implemented by persistence adapters."""

from __future__ import annotations

from .execution import UpsertBackend
from .metadata import Association, EntityType
from .unit_of_work import UpsertUnitOfWork

__all__ = [
    "Association",
    "EntityType",
    "UpsertBackend",
    "UpsertUnitOfWork",
]
