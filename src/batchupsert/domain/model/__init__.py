"""Entity model for batch upserts."""

from __future__ import annotations

from .attribute import Attribute, Referenceable
from .entity import Entity, build
from .enums import MergeFlag
from .options import SaveOptions

__all__ = [
    "Attribute",
    "Entity",
    "MergeFlag",
    "Referenceable",
    "SaveOptions",
    "build",
]
