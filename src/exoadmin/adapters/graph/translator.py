"""Translate Microsoft Graph payloads into directory domain objects."""

from __future__ import annotations

from typing import TYPE_CHECKING

from exoadmin.domain.model import ObjectKind, Relationship, RelationshipKind, RemoteObjectRef

from .schema import DirectoryObjectPayload

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


def _group_type(payload: DirectoryObjectPayload) -> str:
    if "Unified" in payload.group_types:
        return "Microsoft365"
    if payload.mail_enabled and payload.security_enabled:
        return "MailEnabledSecurity"
    if payload.mail_enabled:
        return "Distribution"
    return "Security"


def to_object_ref(payload: Mapping[str, object], *, kind: ObjectKind) -> RemoteObjectRef:
    directory_object = DirectoryObjectPayload.model_validate(payload)
    if kind is ObjectKind.GROUP:
        recipient_type = _group_type(directory_object)
    else:
        recipient_type = directory_object.object_type
    return RemoteObjectRef(
        id=directory_object.id,
        kind=kind,
        display_name=directory_object.display_name,
        primary_address=directory_object.mail,
        alias=directory_object.mail_nickname,
        user_principal_name=directory_object.user_principal_name,
        recipient_type=recipient_type,
        extra_keys=tuple(
            address
            for address in directory_object.proxy_addresses
            if address.partition(":")[0].casefold() == "smtp"
        ),
    )


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
