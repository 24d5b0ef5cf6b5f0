"""Ports for rendering run reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from datetime import datetime


@dataclass(slots=True, frozen=True, kw_only=True)
class TableDocument:
    """Format-neutral report: a titled table plus a summary block."""

    title: str
    columns: Sequence[str]
    rows: Sequence[Mapping[str, str]]
    summary: Mapping[str, int] = field(default_factory=dict[str, int])
    generated_at: datetime | None = None


@runtime_checkable
class ReportRenderer(Protocol):
    """Turn a table document into a serialized report."""

    suffix: str

    def __call__(self, document: TableDocument) -> str: ...
