"""Exchange Online admin API client.

Cmdlets run through the REST endpoint the ExchangeOnlineManagement module
uses (``InvokeCommand``), so no PowerShell host is needed. Each public method
issues the cmdlet calls for one directory operation and blocks until done.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING, ClassVar
from uuid import UUID

import httpx
from pydantic import ValidationError

from exoadmin.adapters.auth import BearerTokenAuth, MsalTokenProvider, TokenProvider
from exoadmin.adapters.session import ClientFactory, DirectorySession, default_client_factory
from exoadmin.config import ExchangeConfig, get_exchange_config
from exoadmin.domain.model import ObjectKind, RelationshipKind
from exoadmin.domain.ports import AdminDirectoryClient, RemoteError, UnsupportedRelationshipError

from .schema import CmdletResponse, ErrorResponse
from .translator import (
    alias_relationships,
    full_access_relationships,
    member_relationships,
    send_as_relationships,
    send_on_behalf_relationships,
    to_object_ref,
)

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence
    from types import TracebackType

    from exoadmin.domain.model import ObjectSpec, Relationship, RemoteObjectRef

log = getLogger(__name__)

INVOKE_COMMAND_PATH = "InvokeCommand"
# App-only sessions are routed through the organization's system mailbox.
_ANCHOR_MAILBOX = "APP:SystemMailbox{bb558c35-97f1-4cb9-8ff7-d53741dc928c}@"
_GENERIC_HASHTABLE = "#Exchange.GenericHashTable"

_LOOKUP_CMDLETS: dict[ObjectKind, str] = {
    ObjectKind.MAILBOX: "Get-Mailbox",
    ObjectKind.GROUP: "Get-DistributionGroup",
    ObjectKind.RECIPIENT: "Get-Recipient",
}

_LOOKUP_PROPERTIES: dict[ObjectKind, tuple[str, ...]] = {
    ObjectKind.MAILBOX: ("Alias", "PrimarySmtpAddress", "UserPrincipalName", "Name", "DisplayName"),
    ObjectKind.GROUP: ("Alias", "PrimarySmtpAddress", "Name", "DisplayName"),
    ObjectKind.RECIPIENT: ("Alias", "PrimarySmtpAddress", "Name", "DisplayName"),
}

_GROUP_TYPES = {"distribution": "Distribution", "security": "Security"}


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def build_identity_filter(identifier: str, *, kind: ObjectKind) -> str:
    """OPATH filter matching ``identifier`` against every naming property of ``kind``."""

    value = identifier.strip()
    clauses = [f"{prop} -eq {_quote(value)}" for prop in _LOOKUP_PROPERTIES[kind]]
    if "@" in value:
        clauses.append(f"EmailAddresses -eq {_quote('smtp:' + value)}")
    try:
        UUID(value)
    except ValueError:
        pass
    else:
        clauses.append(f"ExternalDirectoryObjectId -eq {_quote(value)}")
    return " -or ".join(clauses)


def _as_bool(value: str | None, *, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().casefold() in {"1", "true", "yes", "y"}


def _secondary_address(value: str) -> str:
    address = value.strip()
    if address.casefold().startswith("smtp:"):
        address = address[len("smtp:") :]
    # Lower-case smtp: keeps the primary address unchanged.
    return f"smtp:{address}"


def _hashtable_add(values: Sequence[str]) -> dict[str, object]:
    return {"@odata.type": _GENERIC_HASHTABLE, "add": list(values)}


def _subject_identity(subject: RemoteObjectRef | str) -> str:
    if isinstance(subject, str):
        return subject
    return subject.primary_address or subject.user_principal_name or subject.id


@contextmanager
def _payload_errors(cmdlet: str) -> Iterator[None]:
    """Report result objects the translator cannot read as a failed cmdlet call."""

    try:
        yield
    except ValidationError as exc:
        raise RemoteError(f"{cmdlet} returned an unexpected payload") from exc


@dataclass(slots=True)
class ExchangeDirectoryClient:
    """``AdminDirectoryClient`` backed by Exchange Online."""

    supported_kinds: ClassVar[frozenset[RelationshipKind]] = frozenset(RelationshipKind)

    config: ExchangeConfig = field(default_factory=get_exchange_config)
    client_factory: ClientFactory = field(default=default_client_factory)
    token_provider: TokenProvider | None = None
    _session: DirectorySession | None = field(default=None, init=False)

    def __enter__(self) -> ExchangeDirectoryClient:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def open(self) -> None:
        if self._session is not None:
            return
        token_provider = self.token_provider or MsalTokenProvider(
            credentials=self.config.credentials,
            scope=self.config.scope,
        )
        # Fail fast on bad credentials before any row is processed.
        token_provider()
        resilience = replace(
            self.config.resilience,
            auth=BearerTokenAuth(token_provider),
            default_headers={
                "X-AnchorMailbox": f"{_ANCHOR_MAILBOX}{self.config.organization}",
                "X-ResponseFormat": "json",
                "Accept": "application/json",
            },
        )
        session = DirectorySession(client_factory=self.client_factory)
        session.open(resilience)
        self._session = session
        log.info("Connected to Exchange Online (%s)", self.config.organization)

    def close(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            session.close()

    def find_object(self, identifier: str, *, kind: ObjectKind) -> Sequence[RemoteObjectRef]:
        cmdlet = _LOOKUP_CMDLETS[kind]
        payloads = self.invoke(
            cmdlet,
            {"Filter": build_identity_filter(identifier, kind=kind), "ResultSize": "Unlimited"},
        )
        with _payload_errors(cmdlet):
            return tuple(to_object_ref(payload, kind=kind) for payload in payloads)

    def iter_objects(self, kind: ObjectKind) -> Sequence[RemoteObjectRef]:
        cmdlet = _LOOKUP_CMDLETS[kind]
        payloads = self.invoke(cmdlet, {"ResultSize": "Unlimited"})
        with _payload_errors(cmdlet):
            return tuple(to_object_ref(payload, kind=kind) for payload in payloads)

    def get_relationships(
        self, target: RemoteObjectRef, *, kind: RelationshipKind
    ) -> frozenset[Relationship]:
        identity = {"Identity": target.id}
        if kind is RelationshipKind.FULL_ACCESS:
            permissions = self.invoke("Get-MailboxPermission", identity)
            with _payload_errors("Get-MailboxPermission"):
                return full_access_relationships(target, permissions)
        if kind is RelationshipKind.SEND_AS:
            permissions = self.invoke("Get-RecipientPermission", identity)
            with _payload_errors("Get-RecipientPermission"):
                return send_as_relationships(target, permissions)
        if kind is RelationshipKind.SEND_ON_BEHALF:
            mailbox = self._get_mailbox(target)
            with _payload_errors("Get-Mailbox"):
                return send_on_behalf_relationships(target, mailbox)
        if kind is RelationshipKind.MAILBOX_ALIAS:
            mailbox = self._get_mailbox(target)
            with _payload_errors("Get-Mailbox"):
                return alias_relationships(target, mailbox)
        if kind is RelationshipKind.GROUP_MEMBERSHIP:
            members = self.invoke(
                "Get-DistributionGroupMember", {**identity, "ResultSize": "Unlimited"}
            )
            with _payload_errors("Get-DistributionGroupMember"):
                return member_relationships(target, members)
        raise UnsupportedRelationshipError(f"{kind} has no relationship listing")

    def apply_relationship(
        self,
        target: RemoteObjectRef,
        subject: RemoteObjectRef | str,
        *,
        kind: RelationshipKind,
        attributes: dict[str, str] | None = None,
    ) -> None:
        attrs = attributes or {}
        member = _subject_identity(subject)
        if kind is RelationshipKind.FULL_ACCESS:
            self.invoke(
                "Add-MailboxPermission",
                {
                    "Identity": target.id,
                    "User": member,
                    "AccessRights": ["FullAccess"],
                    "InheritanceType": "All",
                    "AutoMapping": _as_bool(attrs.get("AutoMapping"), default=True),
                },
            )
        elif kind is RelationshipKind.SEND_AS:
            self.invoke(
                "Add-RecipientPermission",
                {
                    "Identity": target.id,
                    "Trustee": member,
                    "AccessRights": ["SendAs"],
                    "Confirm": False,
                },
            )
        elif kind is RelationshipKind.SEND_ON_BEHALF:
            self.invoke(
                "Set-Mailbox",
                {"Identity": target.id, "GrantSendOnBehalfTo": _hashtable_add([member])},
            )
        elif kind is RelationshipKind.GROUP_MEMBERSHIP:
            self.invoke(
                "Add-DistributionGroupMember",
                {"Identity": target.id, "Member": member, "BypassSecurityGroupManagerCheck": True},
            )
        elif kind is RelationshipKind.MAILBOX_ALIAS:
            addresses = _hashtable_add([_secondary_address(member)])
            self.invoke("Set-Mailbox", {"Identity": target.id, "EmailAddresses": addresses})
        else:
            raise UnsupportedRelationshipError(f"{kind} cannot be granted on an existing object")

    def create_object(self, spec: ObjectSpec) -> RemoteObjectRef:
        if spec.kind is not ObjectKind.GROUP:
            raise UnsupportedRelationshipError(f"Creating {spec.kind} objects is not supported")

        group_type = spec.attributes.get("GroupType", "Distribution")
        resolved_type = _GROUP_TYPES.get(group_type.strip().casefold())
        if resolved_type is None:
            raise RemoteError(
                f"Unsupported GroupType {group_type!r} (use Distribution or Security)",
                code="InvalidGroupType",
            )

        parameters: dict[str, object] = {"Name": spec.name, "Type": resolved_type}
        for column, parameter in (
            ("Alias", "Alias"),
            ("PrimarySmtpAddress", "PrimarySmtpAddress"),
            ("Description", "Notes"),
        ):
            if spec.attributes.get(column):
                parameters[parameter] = spec.attributes[column]

        created = self.invoke("New-DistributionGroup", parameters)
        if not created:
            raise RemoteError(f"New-DistributionGroup returned no object for {spec.name!r}")
        with _payload_errors("New-DistributionGroup"):
            return to_object_ref(created[0], kind=ObjectKind.GROUP)

    def invoke(self, cmdlet: str, parameters: Mapping[str, object]) -> list[dict[str, object]]:
        """Run ``cmdlet`` and return every result object across all pages."""

        if self._session is None:
            raise RuntimeError("ExchangeDirectoryClient is not open")
        return self._session.run(self._invoke_async(self._session, cmdlet, dict(parameters)))

    def _get_mailbox(self, target: RemoteObjectRef) -> dict[str, object]:
        mailboxes = self.invoke("Get-Mailbox", {"Identity": target.id})
        if not mailboxes:
            raise RemoteError(f"Mailbox {target.label} disappeared", status_code=404)
        return mailboxes[0]

    async def _invoke_async(
        self,
        session: DirectorySession,
        cmdlet: str,
        parameters: dict[str, object],
    ) -> list[dict[str, object]]:
        body = {"CmdletInput": {"CmdletName": cmdlet, "Parameters": parameters}}
        url: str = INVOKE_COMMAND_PATH
        results: list[dict[str, object]] = []
        while True:
            try:
                response = await session.http.post(url, json=body, headers={"X-CmdletName": cmdlet})
            except httpx.HTTPError as exc:
                raise RemoteError(f"{cmdlet} request failed: {exc}") from exc
            page = _parse_response(cmdlet, response)
            results.extend(page.value)
            if not page.next_link:
                return results
            url = page.next_link


def _parse_response(cmdlet: str, response: httpx.Response) -> CmdletResponse:
    if response.is_error:
        raise _error_from_response(cmdlet, response)
    if not response.content:
        return CmdletResponse()
    try:
        return CmdletResponse.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise RemoteError(f"{cmdlet} returned an unexpected payload") from exc


def _error_from_response(cmdlet: str, response: httpx.Response) -> RemoteError:
    try:
        error = ErrorResponse.model_validate(response.json()).error
    except (ValueError, ValidationError):
        return RemoteError(
            f"{cmdlet} failed with HTTP {response.status_code}",
            status_code=response.status_code,
        )
    log.debug(f"{cmdlet} error {error.code}: {error.message}")
    return RemoteError(
        f"{cmdlet} failed: {error.message or error.code}",
        status_code=response.status_code,
        code=error.code,
    )


if TYPE_CHECKING:
    _client_check: AdminDirectoryClient = ExchangeDirectoryClient()
