"""Delta decision: classify one row against the observed remote state.

Policy, in order:
1. an empty required field skips the row
2. a missing or ambiguous target fails it
3. a missing or ambiguous subject fails it
4. a relationship that already holds skips it
5. anything else becomes exactly one mutation

Existence failures are kept apart from "nothing to do" because they need
different remediation by the operator.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from exoadmin.domain.model import ObjectSpec, Reason

from .contracts import Ambiguous, Apply, Fail, Found, Mutation, NotFound, Skip

if TYPE_CHECKING:
    from exoadmin.domain.model import RemoteObjectRef

    from .contracts import CurrentState, ObjectLookup, RowDecision
    from .jobs import ReconciliationJob
    from .records import DesiredStateRow


def decide(row: DesiredStateRow, state: CurrentState, *, job: ReconciliationJob) -> RowDecision:
    empty = row.empty_columns(job.required_columns)
    if empty:
        return Skip(Reason.EMPTY_INPUT, f"Empty value for {', '.join(empty)}")

    if job.creates_target:
        return _decide_existence(row, state, job=job)

    target = state.target
    if not isinstance(target, Found):
        return _unresolved(target, role="target", not_found=Reason.TARGET_NOT_FOUND)

    subject: RemoteObjectRef | str = job.subject_key(row)
    if job.subject_kind is not None:
        if not isinstance(state.subject, Found):
            return _unresolved(state.subject, role="subject", not_found=Reason.SUBJECT_NOT_FOUND)
        subject = state.subject.ref

    if state.present is None:
        raise ValueError(f"Row {row.index}: relationship state was not observed")
    if state.present:
        label = subject if isinstance(subject, str) else subject.label
        return Skip(
            Reason.ALREADY_SATISFIED,
            f"{label} already has {job.kind} on {target.ref.label}",
        )

    return Apply(
        Mutation(
            kind=job.kind,
            target=target.ref,
            subject=subject,
            attributes=job.attributes(row),
        )
    )


def _decide_existence(
    row: DesiredStateRow, state: CurrentState, *, job: ReconciliationJob
) -> RowDecision:
    target = state.target
    if isinstance(target, Found):
        return Skip(Reason.ALREADY_SATISFIED, f"{target.ref.label} already exists")
    if isinstance(target, Ambiguous):
        return _unresolved(target, role="target", not_found=Reason.TARGET_NOT_FOUND)
    if target is None:
        raise ValueError(f"Row {row.index}: target lookup was not observed")
    return Apply(
        Mutation(
            kind=job.kind,
            create=ObjectSpec(
                kind=job.target_kind,
                name=job.target_key(row),
                attributes=job.attributes(row),
            ),
        )
    )


def _unresolved(lookup: ObjectLookup | None, *, role: str, not_found: Reason) -> Fail:
    if isinstance(lookup, Ambiguous):
        names = ", ".join(candidate.label for candidate in lookup.candidates)
        return Fail(
            Reason.AMBIGUOUS_MATCH,
            f"{role.capitalize()} {lookup.identifier!r} matches {len(lookup.candidates)} "
            f"objects: {names}",
        )
    if isinstance(lookup, NotFound):
        return Fail(not_found, f"{role.capitalize()} {lookup.identifier!r} was not found")
    raise ValueError(f"{role.capitalize()} lookup was not observed")
