"""Read-only inventory exports: mailbox permissions and group membership.

Both exports walk a set of objects and read one relationship kind per object.
A failed read is recorded and the walk continues with the next object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from exoadmin.domain.model import ObjectKind, RelationshipKind
from exoadmin.domain.ports import RemoteError
from exoadmin.domain.ports.reporting import TableDocument

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from exoadmin.domain.model import RemoteObjectRef
    from exoadmin.domain.ports import AdminDirectoryClient

log = getLogger(__name__)

MAILBOX_PERMISSION_COLUMNS: tuple[str, ...] = (
    "MailboxAlias",
    "MailboxAddress",
    "PermissionHolder",
    "Permission",
    "Detail",
)

# Matches the import-group-members job so an export can be edited and re-imported.
GROUP_MEMBER_COLUMNS: tuple[str, ...] = (
    "GroupName",
    "GroupAddress",
    "UserPrincipalName",
    "MemberName",
)


@dataclass(slots=True)
class InventoryFailure:
    identifier: str
    message: str


@dataclass(slots=True)
class InventoryResult:
    title: str
    columns: Sequence[str]
    rows: list[dict[str, str]] = field(default_factory=list[dict[str, str]])
    failures: list[InventoryFailure] = field(default_factory=list[InventoryFailure])

    def document(self) -> TableDocument:
        return TableDocument(
            title=self.title,
            columns=self.columns,
            rows=self.rows,
            summary={"Rows": len(self.rows), "Failures": len(self.failures)},
        )


def export_mailbox_permissions(
    client: AdminDirectoryClient,
    *,
    mailboxes: Sequence[str] = (),
    kinds: Sequence[RelationshipKind] = (
        RelationshipKind.FULL_ACCESS,
        RelationshipKind.SEND_AS,
        RelationshipKind.SEND_ON_BEHALF,
    ),
) -> InventoryResult:
    """List who holds which permission on each mailbox.

    ``mailboxes`` restricts the export to the named mailboxes; by default every
    mailbox the client can enumerate is included.
    """

    result = InventoryResult(title="Mailbox permissions", columns=MAILBOX_PERMISSION_COLUMNS)
    for mailbox in _resolve_objects(client, mailboxes, kind=ObjectKind.MAILBOX, result=result):
        for kind in kinds:
            try:
                relationships = client.get_relationships(mailbox, kind=kind)
            except RemoteError as exc:
                log.warning("Could not read %s on %s: %s", kind, mailbox.label, exc)
                result.failures.append(InventoryFailure(mailbox.label, f"{kind}: {exc}"))
                continue
            result.rows.extend(
                {
                    "MailboxAlias": mailbox.alias or mailbox.display_name or mailbox.id,
                    "MailboxAddress": mailbox.primary_address or "",
                    "PermissionHolder": relationship.subject_label,
                    "Permission": str(kind),
                    "Detail": relationship.detail or "",
                }
                for relationship in sorted(relationships, key=lambda item: item.subject_label)
            )
    log.info(
        "Exported %s mailbox permission entries (%s failures)",
        len(result.rows),
        len(result.failures),
    )
    return result


def export_group_members(
    client: AdminDirectoryClient,
    *,
    groups: Sequence[str] = (),
) -> InventoryResult:
    """List the members of each group in the import-group-members column layout."""

    result = InventoryResult(title="Group membership", columns=GROUP_MEMBER_COLUMNS)
    for group in _resolve_objects(client, groups, kind=ObjectKind.GROUP, result=result):
        try:
            relationships = client.get_relationships(group, kind=RelationshipKind.GROUP_MEMBERSHIP)
        except RemoteError as exc:
            log.warning("Could not read members of %s: %s", group.label, exc)
            result.failures.append(InventoryFailure(group.label, str(exc)))
            continue
        result.rows.extend(
            {
                "GroupName": group.display_name or group.alias or group.id,
                "GroupAddress": group.primary_address or "",
                "UserPrincipalName": relationship.subject_label,
                "MemberName": relationship.detail or "",
            }
            for relationship in sorted(relationships, key=lambda item: item.subject_label)
        )
    log.info(
        "Exported %s group membership entries (%s failures)",
        len(result.rows),
        len(result.failures),
    )
    return result


def _resolve_objects(
    client: AdminDirectoryClient,
    identifiers: Sequence[str],
    *,
    kind: ObjectKind,
    result: InventoryResult,
) -> Iterable[RemoteObjectRef]:
    if not identifiers:
        yield from client.iter_objects(kind)
        return

    for identifier in identifiers:
        try:
            matches = tuple(client.find_object(identifier, kind=kind))
        except RemoteError as exc:
            result.failures.append(InventoryFailure(identifier, str(exc)))
            continue
        if not matches:
            result.failures.append(InventoryFailure(identifier, f"{kind} not found"))
            continue
        if len(matches) > 1:
            result.failures.append(
                InventoryFailure(identifier, f"{kind} is ambiguous ({len(matches)} matches)")
            )
            continue
        yield matches[0]
