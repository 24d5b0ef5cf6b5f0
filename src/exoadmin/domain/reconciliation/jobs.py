"""Catalogue of reconciliation jobs.

Each job describes one administrative routine: which relationship it
reconciles, which CSV columns must be present, and which of them name the
target object and the subject.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from exoadmin.domain.model import ObjectKind, RelationshipKind

if TYPE_CHECKING:
    from .records import DesiredStateRow


@dataclass(frozen=True, slots=True, kw_only=True)
class ReconciliationJob:
    name: str
    kind: RelationshipKind
    description: str
    target_column: str
    target_kind: ObjectKind
    subject_column: str | None = None
    # None means the subject is a literal value (an address) rather than an object.
    subject_kind: ObjectKind | None = None
    optional_columns: tuple[str, ...] = ()

    @property
    def required_columns(self) -> tuple[str, ...]:
        if self.subject_column is None:
            return (self.target_column,)
        return (self.target_column, self.subject_column)

    @property
    def creates_target(self) -> bool:
        return self.kind is RelationshipKind.GROUP_EXISTENCE

    def target_key(self, row: DesiredStateRow) -> str:
        return row.get(self.target_column)

    def subject_key(self, row: DesiredStateRow) -> str:
        return row.get(self.subject_column) if self.subject_column else ""

    def attributes(self, row: DesiredStateRow) -> dict[str, str]:
        return {column: row.get(column) for column in self.optional_columns if row.get(column)}


GRANT_FULL_ACCESS = ReconciliationJob(
    name="grant-full-access",
    kind=RelationshipKind.FULL_ACCESS,
    description="Grant Full Access on mailboxes",
    target_kind=ObjectKind.MAILBOX,
    subject_kind=ObjectKind.RECIPIENT,
    optional_columns=("AutoMapping",),
    target_column="MailboxAlias",
    subject_column="PermissionHolder",
)

GRANT_SEND_AS = ReconciliationJob(
    name="grant-send-as",
    kind=RelationshipKind.SEND_AS,
    description="Grant Send As on mailboxes",
    target_kind=ObjectKind.MAILBOX,
    subject_kind=ObjectKind.RECIPIENT,
    target_column="MailboxAlias",
    subject_column="PermissionHolder",
)

GRANT_SEND_ON_BEHALF = ReconciliationJob(
    name="grant-send-on-behalf",
    kind=RelationshipKind.SEND_ON_BEHALF,
    description="Grant Send on Behalf on mailboxes",
    target_kind=ObjectKind.MAILBOX,
    subject_kind=ObjectKind.RECIPIENT,
    target_column="MailboxAlias",
    subject_column="PermissionHolder",
)

IMPORT_GROUP_MEMBERS = ReconciliationJob(
    name="import-group-members",
    kind=RelationshipKind.GROUP_MEMBERSHIP,
    description="Add members to distribution and security groups",
    target_column="GroupName",
    target_kind=ObjectKind.GROUP,
    subject_column="UserPrincipalName",
    subject_kind=ObjectKind.RECIPIENT,
)

CREATE_GROUPS = ReconciliationJob(
    name="create-groups",
    kind=RelationshipKind.GROUP_EXISTENCE,
    description="Create groups that do not exist yet",
    target_column="GroupName",
    target_kind=ObjectKind.GROUP,
    optional_columns=("Alias", "PrimarySmtpAddress", "GroupType", "Description"),
)

ADD_ALIASES = ReconciliationJob(
    name="add-aliases",
    kind=RelationshipKind.MAILBOX_ALIAS,
    description="Add secondary e-mail addresses to mailboxes",
    target_column="Mailbox",
    target_kind=ObjectKind.MAILBOX,
    subject_column="Alias",
)

JOBS: dict[str, ReconciliationJob] = {
    job.name: job
    for job in (
        GRANT_FULL_ACCESS,
        GRANT_SEND_AS,
        GRANT_SEND_ON_BEHALF,
        IMPORT_GROUP_MEMBERS,
        CREATE_GROUPS,
        ADD_ALIASES,
    )
}


def get_job(name: str) -> ReconciliationJob:
    try:
        return JOBS[name]
    except KeyError:
        known = ", ".join(sorted(JOBS))
        raise ValueError(f"Unknown job {name!r} (known jobs: {known})") from None
