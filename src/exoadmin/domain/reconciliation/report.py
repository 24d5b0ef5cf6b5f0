"""Run reporter: append-only outcome log, summary and rendering."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from exoadmin.domain.model import Decision
from exoadmin.domain.ports.reporting import TableDocument

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from exoadmin.domain.model import Reason, RelationshipKind
    from exoadmin.domain.ports.reporting import ReportRenderer


class ReportFormat(StrEnum):
    CSV = "csv"
    HTML = "html"


OUTCOME_COLUMNS: tuple[str, ...] = (
    "Row",
    "Target",
    "Subject",
    "Relationship",
    "Status",
    "Reason",
    "Message",
    "Timestamp",
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True, kw_only=True)
class OutcomeRecord:
    row_index: int
    target: str
    subject: str
    kind: RelationshipKind
    decision: Decision
    reason: Reason
    message: str
    timestamp: datetime

    def as_row(self) -> dict[str, str]:
        return {
            "Row": str(self.row_index),
            "Target": self.target,
            "Subject": self.subject,
            "Relationship": str(self.kind),
            "Status": str(self.decision),
            "Reason": str(self.reason),
            "Message": self.message,
            "Timestamp": self.timestamp.isoformat(timespec="seconds"),
        }


@dataclass(frozen=True, slots=True)
class RunSummary:
    skipped: int = 0
    applied: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.skipped + self.applied + self.failed

    def as_dict(self) -> dict[str, int]:
        return {
            str(Decision.SKIPPED): self.skipped,
            str(Decision.APPLIED): self.applied,
            str(Decision.FAILED): self.failed,
            "Total": self.total,
        }


@dataclass(slots=True)
class RunReporter:
    """Collects one outcome per processed row, in processing order.

    Renderers are injected per format; rendering never touches the remote
    service, it only reads the accumulated outcomes.
    """

    title: str = "Reconciliation report"
    renderers: Mapping[ReportFormat, ReportRenderer] = field(
        default_factory=dict["ReportFormat", "ReportRenderer"]
    )
    clock: Callable[[], datetime] = _utcnow
    _outcomes: list[OutcomeRecord] = field(default_factory=list["OutcomeRecord"])

    @property
    def outcomes(self) -> Sequence[OutcomeRecord]:
        return tuple(self._outcomes)

    def record(self, outcome: OutcomeRecord) -> None:
        self._outcomes.append(outcome)

    def summarize(self) -> RunSummary:
        counts = Counter(outcome.decision for outcome in self._outcomes)
        return RunSummary(
            skipped=counts[Decision.SKIPPED],
            applied=counts[Decision.APPLIED],
            failed=counts[Decision.FAILED],
        )

    def document(self) -> TableDocument:
        return TableDocument(
            title=self.title,
            columns=OUTCOME_COLUMNS,
            rows=[outcome.as_row() for outcome in self._outcomes],
            summary=self.summarize().as_dict(),
            generated_at=self.clock(),
        )

    def render(self, fmt: ReportFormat) -> str:
        renderer = self.renderers.get(fmt)
        if renderer is None:
            raise ValueError(f"No renderer registered for {fmt} reports")
        return renderer(self.document())
