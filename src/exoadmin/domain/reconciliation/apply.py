"""Mutation applier: issue the single remote write behind an ``Apply``.

There is no retry here. Idempotence comes from the pre-check in ``decide``;
the service offers no transaction boundary between lookup and write.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from exoadmin.domain.model import RelationshipKind

if TYPE_CHECKING:
    from exoadmin.domain.ports import AdminDirectoryClient

    from .contracts import Mutation

log = getLogger(__name__)


@dataclass(slots=True)
class MutationApplier:
    client: AdminDirectoryClient

    def __call__(self, mutation: Mutation) -> str:
        """Apply ``mutation`` and return a short description of what was done.

        Raises ``RemoteError`` when the service rejects the write.
        """

        if mutation.kind is RelationshipKind.GROUP_EXISTENCE:
            if mutation.create is None:
                raise ValueError("Group creation requires an object spec")
            created = self.client.create_object(mutation.create)
            log.debug("Created %s %s (%s)", created.kind, created.label, created.id)
            return f"Created {created.kind} {created.label}"

        if mutation.target is None or mutation.subject is None:
            raise ValueError(f"{mutation.kind} requires a target and a subject")
        self.client.apply_relationship(
            mutation.target,
            mutation.subject,
            kind=mutation.kind,
            attributes=dict(mutation.attributes),
        )
        return f"Applied: {mutation.describe()}"
