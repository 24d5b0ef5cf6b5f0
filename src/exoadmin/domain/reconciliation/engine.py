"""Orchestrator for the reconciliation subsystem.

Rows run one at a time through lookup, decision and (when actionable) the
applier, and every row ends as exactly one outcome on the reporter. Per-row
errors are caught at the row boundary; only setup errors escape ``reconcile``.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from exoadmin.domain.model import Decision, Reason
from exoadmin.domain.ports import RemoteError, UnsupportedRelationshipError

from .apply import MutationApplier
from .contracts import Apply, Fail, Skip
from .decide import decide
from .lookup import RemoteStateLookup
from .report import OutcomeRecord, RunReporter, RunSummary

if TYPE_CHECKING:
    from collections.abc import Iterable

    from exoadmin.domain.ports import AdminDirectoryClient

    from .contracts import RowDecision
    from .jobs import ReconciliationJob
    from .records import DesiredStateRow

log = getLogger(__name__)


@dataclass(slots=True)
class ReconciliationEngine:
    """Run one job's desired-state rows against a directory client."""

    client: AdminDirectoryClient
    job: ReconciliationJob
    dry_run: bool = False

    def reconcile(
        self,
        rows: Iterable[DesiredStateRow],
        *,
        reporter: RunReporter | None = None,
    ) -> tuple[RunReporter, RunSummary]:
        if self.job.kind not in self.client.supported_kinds:
            raise UnsupportedRelationshipError(
                f"{type(self.client).__name__} cannot reconcile {self.job.kind}"
            )

        effective_reporter = reporter or RunReporter(title=self.job.description)
        lookup = RemoteStateLookup(self.client)
        applier = MutationApplier(self.client)

        for row in rows:
            outcome = self._process_row(
                row,
                lookup=lookup,
                applier=applier,
                reporter=effective_reporter,
            )
            effective_reporter.record(outcome)
            _log_outcome(outcome)

        summary = effective_reporter.summarize()
        log.info(
            "Finished %s: total=%s, applied=%s, skipped=%s, failed=%s",
            self.job.name,
            summary.total,
            summary.applied,
            summary.skipped,
            summary.failed,
        )
        return effective_reporter, summary

    def _process_row(
        self,
        row: DesiredStateRow,
        *,
        lookup: RemoteStateLookup,
        applier: MutationApplier,
        reporter: RunReporter,
    ) -> OutcomeRecord:
        try:
            state = lookup.observe(row, self.job)
            decision: RowDecision = decide(row, state, job=self.job)
        except RemoteError as exc:
            decision = Fail(Reason.REMOTE_ERROR, f"Lookup failed: {exc}")

        if isinstance(decision, Apply):
            if self.dry_run:
                decision = Skip(Reason.DRY_RUN, f"Would {decision.mutation.describe()}")
            else:
                try:
                    message = applier(decision.mutation)
                except RemoteError as exc:
                    decision = Fail(Reason.REMOTE_ERROR, f"Write failed: {exc}")
                else:
                    return self._outcome(row, Decision.APPLIED, Reason.APPLIED, message, reporter)

        if isinstance(decision, Skip):
            return self._outcome(row, Decision.SKIPPED, decision.reason, decision.message, reporter)
        if isinstance(decision, Fail):
            return self._outcome(row, Decision.FAILED, decision.reason, decision.message, reporter)
        raise TypeError(f"Unexpected decision type: {type(decision).__name__}")

    def _outcome(
        self,
        row: DesiredStateRow,
        decision: Decision,
        reason: Reason,
        message: str,
        reporter: RunReporter,
    ) -> OutcomeRecord:
        return OutcomeRecord(
            row_index=row.index,
            target=self.job.target_key(row),
            subject=self.job.subject_key(row),
            kind=self.job.kind,
            decision=decision,
            reason=reason,
            message=message,
            timestamp=reporter.clock(),
        )


def _log_outcome(outcome: OutcomeRecord) -> None:
    if outcome.decision is Decision.FAILED:
        log.warning(
            "Row %s (%s / %s): %s [%s] %s",
            outcome.row_index,
            outcome.target,
            outcome.subject,
            outcome.decision,
            outcome.reason,
            outcome.message,
        )
        return
    log.info(
        "Row %s (%s / %s): %s [%s]",
        outcome.row_index,
        outcome.target,
        outcome.subject,
        outcome.decision,
        outcome.reason,
    )
