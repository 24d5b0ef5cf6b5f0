"""Directory object snapshots and relationships."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .enums import ObjectKind, RelationshipKind


def normalize_key(value: str) -> str:
    """Case-fold an identifier and strip an ``smtp:`` style address prefix."""

    key = value.strip()
    prefix, sep, rest = key.partition(":")
    if sep and prefix.lower() in {"smtp", "sip", "x500"} and rest:
        key = rest
    return key.casefold()


def identity_keys(values: Iterable[str | None]) -> frozenset[str]:
    return frozenset(normalize_key(value) for value in values if value and value.strip())


@dataclass(frozen=True, slots=True, kw_only=True)
class RemoteObjectRef:
    """Read-only snapshot of a directory object, valid at lookup time only."""

    id: str
    kind: ObjectKind
    display_name: str | None = None
    primary_address: str | None = None
    alias: str | None = None
    user_principal_name: str | None = None
    recipient_type: str | None = None
    extra_keys: tuple[str, ...] = ()

    @property
    def label(self) -> str:
        return self.primary_address or self.user_principal_name or self.display_name or self.id

    def keys(self) -> frozenset[str]:
        """All identifiers the service may use to refer to this object."""

        return identity_keys(
            (
                self.id,
                self.display_name,
                self.primary_address,
                self.alias,
                self.user_principal_name,
                *self.extra_keys,
            )
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class Relationship:
    """A presence fact linking a subject to a target object."""

    kind: RelationshipKind
    target_id: str
    subject_keys: frozenset[str]
    subject_label: str
    detail: str | None = None

    def matches(self, keys: frozenset[str]) -> bool:
        return not self.subject_keys.isdisjoint(keys)


@dataclass(frozen=True, slots=True, kw_only=True)
class ObjectSpec:
    """Attributes for an object the service should create."""

    kind: ObjectKind
    name: str
    attributes: dict[str, str] = field(default_factory=dict[str, str])
