"""Domain model for directory reconciliation."""

from __future__ import annotations

from .directory import (
    ObjectSpec,
    Relationship,
    RemoteObjectRef,
    identity_keys,
    normalize_key,
)
from .enums import Decision, ObjectKind, Reason, RelationshipKind

__all__ = [
    "Decision",
    "ObjectKind",
    "ObjectSpec",
    "Reason",
    "Relationship",
    "RelationshipKind",
    "RemoteObjectRef",
    "identity_keys",
    "normalize_key",
]
