"""Remote state lookup: read-only queries against the directory.

Every call maps to exactly one read on the client. Nothing is cached between
rows, so a later row sees changes made by earlier ones.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from exoadmin.domain.model import identity_keys

from .contracts import Ambiguous, CurrentState, Found, NotFound, ObjectLookup

if TYPE_CHECKING:
    from exoadmin.domain.model import ObjectKind, RelationshipKind, RemoteObjectRef
    from exoadmin.domain.ports import AdminDirectoryClient

    from .jobs import ReconciliationJob
    from .records import DesiredStateRow

log = getLogger(__name__)


@dataclass(slots=True)
class RemoteStateLookup:
    client: AdminDirectoryClient

    def lookup(self, identifier: str, *, kind: ObjectKind) -> ObjectLookup:
        matches = tuple(self.client.find_object(identifier, kind=kind))
        if not matches:
            log.debug("No %s matches %r", kind, identifier)
            return NotFound(identifier=identifier)
        if len(matches) > 1:
            log.debug("%s %r matched %d objects", kind, identifier, len(matches))
            return Ambiguous(identifier=identifier, candidates=matches)
        return Found(ref=matches[0])

    def lookup_relationship(
        self,
        target: RemoteObjectRef,
        subject: RemoteObjectRef | str,
        *,
        kind: RelationshipKind,
    ) -> bool:
        """Return whether ``subject`` already holds ``kind`` on ``target``."""

        keys = subject.keys() if not isinstance(subject, str) else identity_keys((subject,))
        relationships = self.client.get_relationships(target, kind=kind)
        return any(relationship.matches(keys) for relationship in relationships)

    def observe(self, row: DesiredStateRow, job: ReconciliationJob) -> CurrentState:
        """Collect the remote state ``decide`` needs for ``row``.

        Stops at the first lookup that cannot resolve, so a missing target never
        costs a subject lookup. Incomplete rows issue no reads at all.
        """

        if not row.is_complete(job.required_columns):
            return CurrentState()

        target = self.lookup(job.target_key(row), kind=job.target_kind)
        if job.creates_target or not isinstance(target, Found):
            return CurrentState(target=target)

        subject: ObjectLookup | None = None
        subject_value: RemoteObjectRef | str = job.subject_key(row)
        if job.subject_kind is not None:
            subject = self.lookup(job.subject_key(row), kind=job.subject_kind)
            if not isinstance(subject, Found):
                return CurrentState(target=target, subject=subject)
            subject_value = subject.ref

        present = self.lookup_relationship(target.ref, subject_value, kind=job.kind)
        return CurrentState(target=target, subject=subject, present=present)
