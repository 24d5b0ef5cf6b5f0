"""Translate Exchange Online payloads into directory domain objects."""

from __future__ import annotations

from typing import TYPE_CHECKING

from exoadmin.domain.model import (
    ObjectKind,
    Relationship,
    RelationshipKind,
    RemoteObjectRef,
    identity_keys,
    normalize_key,
)

from .schema import MailboxPermissionPayload, RecipientPayload, RecipientPermissionPayload

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

# Built-in principals that show up on every mailbox ACL.
_SYSTEM_PRINCIPAL_PREFIXES = ("nt authority\\", "s-1-5-")


def _is_system_principal(name: str) -> bool:
    return name.strip().casefold().startswith(_SYSTEM_PRINCIPAL_PREFIXES)


def _smtp_addresses(addresses: Iterable[str]) -> tuple[str, ...]:
    return tuple(
        address for address in addresses if address.partition(":")[0].casefold() == "smtp"
    )


def parse_recipient(payload: Mapping[str, object] | RecipientPayload) -> RecipientPayload:
    if isinstance(payload, RecipientPayload):
        return payload
    return RecipientPayload.model_validate(payload)


def to_object_ref(
    payload: Mapping[str, object] | RecipientPayload,
    *,
    kind: ObjectKind,
) -> RemoteObjectRef:
    recipient = parse_recipient(payload)
    extra = (
        recipient.identity,
        recipient.guid,
        recipient.external_directory_object_id,
        recipient.name,
        *_smtp_addresses(recipient.email_addresses),
    )
    return RemoteObjectRef(
        id=recipient.object_id,
        kind=kind,
        display_name=recipient.display_name or recipient.name,
        primary_address=recipient.primary_smtp_address,
        alias=recipient.alias,
        user_principal_name=recipient.user_principal_name,
        recipient_type=recipient.recipient_type_details,
        extra_keys=tuple(value for value in extra if value),
    )


def full_access_relationships(
    target: RemoteObjectRef,
    payloads: Iterable[Mapping[str, object]],
) -> frozenset[Relationship]:
    relationships: set[Relationship] = set()
    for raw in payloads:
        permission = MailboxPermissionPayload.model_validate(raw)
        if permission.deny or permission.is_inherited or _is_system_principal(permission.user):
            continue
        if not any(right.casefold() == "fullaccess" for right in permission.access_rights):
            continue
        relationships.add(
            Relationship(
                kind=RelationshipKind.FULL_ACCESS,
                target_id=target.id,
                subject_keys=identity_keys((permission.user,)),
                subject_label=permission.user,
                detail=", ".join(permission.access_rights),
            )
        )
    return frozenset(relationships)


def send_as_relationships(
    target: RemoteObjectRef,
    payloads: Iterable[Mapping[str, object]],
) -> frozenset[Relationship]:
    relationships: set[Relationship] = set()
    for raw in payloads:
        permission = RecipientPermissionPayload.model_validate(raw)
        if permission.access_control_type.casefold() != "allow" or permission.is_inherited:
            continue
        if _is_system_principal(permission.trustee):
            continue
        if not any(right.casefold() == "sendas" for right in permission.access_rights):
            continue
        relationships.add(
            Relationship(
                kind=RelationshipKind.SEND_AS,
                target_id=target.id,
                subject_keys=identity_keys((permission.trustee,)),
                subject_label=permission.trustee,
            )
        )
    return frozenset(relationships)


def send_on_behalf_relationships(
    target: RemoteObjectRef,
    mailbox: Mapping[str, object] | RecipientPayload,
) -> frozenset[Relationship]:
    recipient = parse_recipient(mailbox)
    return frozenset(
        Relationship(
            kind=RelationshipKind.SEND_ON_BEHALF,
            target_id=target.id,
            subject_keys=identity_keys((delegate,)),
            subject_label=delegate,
        )
        for delegate in recipient.grant_send_on_behalf_to
    )


def alias_relationships(
    target: RemoteObjectRef,
    mailbox: Mapping[str, object] | RecipientPayload,
) -> frozenset[Relationship]:
    recipient = parse_recipient(mailbox)
    relationships: set[Relationship] = set()
    for address in _smtp_addresses(recipient.email_addresses):
        # Upper-case SMTP: marks the primary address.
        primary = address.startswith("SMTP:")
        relationships.add(
            Relationship(
                kind=RelationshipKind.MAILBOX_ALIAS,
                target_id=target.id,
                subject_keys=frozenset({normalize_key(address)}),
                subject_label=address.partition(":")[2],
                detail="primary" if primary else "secondary",
            )
        )
    return frozenset(relationships)


def member_relationships(
    target: RemoteObjectRef,
    payloads: Iterable[Mapping[str, object]],
) -> frozenset[Relationship]:
    relationships: set[Relationship] = set()
    for raw in payloads:
        member = to_object_ref(raw, kind=ObjectKind.RECIPIENT)
        relationships.add(
            Relationship(
                kind=RelationshipKind.GROUP_MEMBERSHIP,
                target_id=target.id,
                subject_keys=member.keys(),
                subject_label=(
                    member.user_principal_name or member.primary_address or member.label
                ),
                detail=member.display_name,
            )
        )
    return frozenset(relationships)
