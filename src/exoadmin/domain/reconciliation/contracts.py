"""Shared reconciliation contract components.

This module holds the value types passed between stages:
- lookup outcomes produced by ``lookup``
- the per-row state handed to ``decide``
- the decision variants and the mutation an ``Apply`` carries
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Literal

from exoadmin.domain.model import Reason

if TYPE_CHECKING:
    from exoadmin.domain.model import ObjectSpec, RelationshipKind, RemoteObjectRef


class LookupStatus(StrEnum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"


@dataclass(slots=True, frozen=True, kw_only=True)
class Found:
    ref: RemoteObjectRef
    status: Literal[LookupStatus.FOUND] = LookupStatus.FOUND


@dataclass(slots=True, frozen=True, kw_only=True)
class NotFound:
    identifier: str
    status: Literal[LookupStatus.NOT_FOUND] = LookupStatus.NOT_FOUND


@dataclass(slots=True, frozen=True, kw_only=True)
class Ambiguous:
    identifier: str
    candidates: tuple[RemoteObjectRef, ...]
    status: Literal[LookupStatus.AMBIGUOUS] = LookupStatus.AMBIGUOUS

    def __post_init__(self) -> None:
        if len(self.candidates) < 2:  # noqa: PLR2004
            raise ValueError("Ambiguous lookup must include at least two candidates")


type ObjectLookup = Found | NotFound | Ambiguous


@dataclass(slots=True, frozen=True, kw_only=True)
class CurrentState:
    """What the remote service reported for one row at lookup time.

    ``target``/``subject`` are ``None`` when the stage did not run (for example
    the subject is a literal value, or the target failed to resolve).
    ``present`` is ``None`` until the relationship has been checked.
    """

    target: ObjectLookup | None = None
    subject: ObjectLookup | None = None
    present: bool | None = None


@dataclass(slots=True, frozen=True, kw_only=True)
class Mutation:
    """Exactly one remote write."""

    kind: RelationshipKind
    target: RemoteObjectRef | None = None
    subject: RemoteObjectRef | str | None = None
    create: ObjectSpec | None = None
    attributes: dict[str, str] = field(default_factory=dict[str, str])

    def describe(self) -> str:
        if self.create is not None:
            return f"create {self.create.kind} {self.create.name!r}"
        subject = self.subject
        if subject is not None and not isinstance(subject, str):
            subject = subject.label
        target = self.target.label if self.target is not None else ""
        return f"add {self.kind} for {subject!r} on {target!r}"


@dataclass(slots=True, frozen=True)
class Skip:
    reason: Reason
    message: str = ""


@dataclass(slots=True, frozen=True)
class Apply:
    mutation: Mutation


@dataclass(slots=True, frozen=True)
class Fail:
    reason: Reason
    message: str = ""


type RowDecision = Skip | Apply | Fail
