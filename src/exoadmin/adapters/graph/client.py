"""Microsoft Graph client for Entra ID group administration."""

from __future__ import annotations

import re
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING, ClassVar
from uuid import UUID

import httpx
from pydantic import ValidationError

from exoadmin.adapters.auth import BearerTokenAuth, MsalTokenProvider, TokenProvider
from exoadmin.adapters.session import ClientFactory, DirectorySession, default_client_factory
from exoadmin.config import GraphConfig, get_graph_config
from exoadmin.config.directory import GRAPH_BASE_URL
from exoadmin.domain.model import ObjectKind, RelationshipKind
from exoadmin.domain.ports import AdminDirectoryClient, RemoteError, UnsupportedRelationshipError

from .schema import CollectionResponse, ErrorResponse
from .translator import member_relationships, to_object_ref

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence
    from types import TracebackType

    from exoadmin.domain.model import ObjectSpec, Relationship, RemoteObjectRef

log = getLogger(__name__)

_GROUP_SELECT = (
    "id,displayName,mail,mailNickname,proxyAddresses,securityEnabled,mailEnabled,groupTypes"
)
_USER_SELECT = "id,displayName,mail,mailNickname,userPrincipalName,proxyAddresses"
_MEMBER_SELECT = "id,displayName,mail,mailNickname,userPrincipalName"

_LOOKUP_PROPERTIES: dict[ObjectKind, tuple[str, ...]] = {
    ObjectKind.GROUP: ("displayName", "mail", "mailNickname"),
    ObjectKind.MAILBOX: ("userPrincipalName", "mail", "mailNickname", "displayName"),
    ObjectKind.RECIPIENT: ("userPrincipalName", "mail", "mailNickname", "displayName"),
}

_INVALID_NICKNAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def build_identity_filter(identifier: str, *, kind: ObjectKind) -> str:
    """OData ``$filter`` matching ``identifier`` on every naming property of ``kind``."""

    value = identifier.strip()
    clauses = [f"{prop} eq {_quote(value)}" for prop in _LOOKUP_PROPERTIES[kind]]
    try:
        UUID(value)
    except ValueError:
        pass
    else:
        clauses.append(f"id eq {_quote(value)}")
    return " or ".join(clauses)


def mail_nickname(name: str) -> str:
    """Derive a valid ``mailNickname`` from a display name."""

    nickname = _INVALID_NICKNAME_CHARS.sub("", name.replace(" ", "-"))
    return nickname[:64] or "group"


@dataclass(frozen=True, slots=True)
class _Collection:
    path: str
    select: str
    kind: ObjectKind


_COLLECTIONS: dict[ObjectKind, tuple[_Collection, ...]] = {
    ObjectKind.GROUP: (_Collection("groups", _GROUP_SELECT, ObjectKind.GROUP),),
    ObjectKind.MAILBOX: (_Collection("users", _USER_SELECT, ObjectKind.MAILBOX),),
    # Groups can be members of other groups, so recipients span both collections.
    ObjectKind.RECIPIENT: (
        _Collection("users", _USER_SELECT, ObjectKind.RECIPIENT),
        _Collection("groups", _GROUP_SELECT, ObjectKind.GROUP),
    ),
}


@contextmanager
def _payload_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except ValidationError as exc:
        raise RemoteError(f"{operation} returned an unexpected payload") from exc


@dataclass(slots=True)
class GraphDirectoryClient:
    """``AdminDirectoryClient`` backed by Microsoft Graph.

    Graph has no API for mailbox permissions or secondary addresses, so this
    backend only reconciles group membership and group existence.
    """

    supported_kinds: ClassVar[frozenset[RelationshipKind]] = frozenset(
        {RelationshipKind.GROUP_MEMBERSHIP, RelationshipKind.GROUP_EXISTENCE}
    )

    config: GraphConfig = field(default_factory=get_graph_config)
    client_factory: ClientFactory = field(default=default_client_factory)
    token_provider: TokenProvider | None = None
    _session: DirectorySession | None = field(default=None, init=False)

    def __enter__(self) -> GraphDirectoryClient:
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
        token_provider()
        resilience = replace(
            self.config.resilience,
            auth=BearerTokenAuth(token_provider),
            default_headers={"Accept": "application/json"},
        )
        session = DirectorySession(client_factory=self.client_factory)
        session.open(resilience)
        self._session = session
        log.info("Connected to Microsoft Graph (tenant %s)", self.config.credentials.tenant_id)

    def close(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            session.close()

    def find_object(self, identifier: str, *, kind: ObjectKind) -> Sequence[RemoteObjectRef]:
        matches: list[RemoteObjectRef] = []
        for collection in _COLLECTIONS[kind]:
            payloads = self._get_all(
                collection.path,
                params={
                    "$filter": build_identity_filter(identifier, kind=collection.kind),
                    "$select": collection.select,
                },
            )
            with _payload_errors(f"GET {collection.path}"):
                matches.extend(to_object_ref(payload, kind=collection.kind) for payload in payloads)
        return tuple(matches)

    def iter_objects(self, kind: ObjectKind) -> Sequence[RemoteObjectRef]:
        objects: list[RemoteObjectRef] = []
        for collection in _COLLECTIONS[kind]:
            payloads = self._get_all(
                collection.path, params={"$select": collection.select, "$top": "999"}
            )
            with _payload_errors(f"GET {collection.path}"):
                objects.extend(to_object_ref(payload, kind=collection.kind) for payload in payloads)
        return tuple(objects)

    def get_relationships(
        self, target: RemoteObjectRef, *, kind: RelationshipKind
    ) -> frozenset[Relationship]:
        if kind is not RelationshipKind.GROUP_MEMBERSHIP:
            raise UnsupportedRelationshipError(f"Microsoft Graph cannot list {kind}")
        members = self._get_all(
            f"groups/{target.id}/members",
            params={"$select": _MEMBER_SELECT, "$top": "999"},
        )
        with _payload_errors(f"GET groups/{target.id}/members"):
            return member_relationships(target, members)

    def apply_relationship(
        self,
        target: RemoteObjectRef,
        subject: RemoteObjectRef | str,
        *,
        kind: RelationshipKind,
        attributes: dict[str, str] | None = None,  # noqa: ARG002
    ) -> None:
        if kind is not RelationshipKind.GROUP_MEMBERSHIP:
            raise UnsupportedRelationshipError(f"Microsoft Graph cannot grant {kind}")
        if isinstance(subject, str):
            raise UnsupportedRelationshipError("Group members must be resolved directory objects")
        self._send(
            "POST",
            f"groups/{target.id}/members/$ref",
            json={"@odata.id": f"{GRAPH_BASE_URL}directoryObjects/{subject.id}"},
        )

    def create_object(self, spec: ObjectSpec) -> RemoteObjectRef:
        if spec.kind is not ObjectKind.GROUP:
            raise UnsupportedRelationshipError(f"Creating {spec.kind} objects is not supported")

        group_type = spec.attributes.get("GroupType", "Security").strip().casefold()
        body: dict[str, object] = {
            "displayName": spec.name,
            "mailNickname": spec.attributes.get("Alias") or mail_nickname(spec.name),
        }
        if group_type == "security":
            body.update({"mailEnabled": False, "securityEnabled": True})
        elif group_type in {"microsoft365", "unified"}:
            body.update({"mailEnabled": True, "securityEnabled": False, "groupTypes": ["Unified"]})
        else:
            raise RemoteError(
                f"Microsoft Graph cannot create {group_type!r} groups "
                "(use Security or Microsoft365)",
                code="InvalidGroupType",
            )
        if spec.attributes.get("Description"):
            body["description"] = spec.attributes["Description"]

        created = self._send("POST", "groups", json=body)
        with _payload_errors("POST groups"):
            return to_object_ref(created, kind=ObjectKind.GROUP)

    def _get_all(self, path: str, *, params: Mapping[str, str]) -> list[dict[str, object]]:
        if self._session is None:
            raise RuntimeError("GraphDirectoryClient is not open")
        return self._session.run(self._get_all_async(self._session, path, dict(params)))

    def _send(self, method: str, path: str, *, json: object) -> dict[str, object]:
        if self._session is None:
            raise RuntimeError("GraphDirectoryClient is not open")
        return self._session.run(self._send_async(self._session, method, path, json))

    async def _get_all_async(
        self,
        session: DirectorySession,
        path: str,
        params: dict[str, str],
    ) -> list[dict[str, object]]:
        results: list[dict[str, object]] = []
        url: str = path
        query: dict[str, str] | None = params
        while True:
            try:
                response = await session.http.get(url, params=query)
            except httpx.HTTPError as exc:
                raise RemoteError(f"GET {path} failed: {exc}") from exc
            page = _parse_collection(path, response)
            results.extend(page.value)
            if not page.next_link:
                return results
            # nextLink already carries the query string.
            url, query = page.next_link, None

    async def _send_async(
        self,
        session: DirectorySession,
        method: str,
        path: str,
        body: object,
    ) -> dict[str, object]:
        try:
            response = await session.http.request(method, path, json=body)
        except httpx.HTTPError as exc:
            raise RemoteError(f"{method} {path} failed: {exc}") from exc
        if response.is_error:
            raise _error_from_response(f"{method} {path}", response)
        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteError(f"{method} {path} returned an unexpected payload") from exc
        return payload if isinstance(payload, dict) else {}


def _parse_collection(path: str, response: httpx.Response) -> CollectionResponse:
    if response.is_error:
        raise _error_from_response(f"GET {path}", response)
    try:
        return CollectionResponse.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise RemoteError(f"GET {path} returned an unexpected payload") from exc


def _error_from_response(operation: str, response: httpx.Response) -> RemoteError:
    try:
        error = ErrorResponse.model_validate(response.json()).error
    except (ValueError, ValidationError):
        return RemoteError(
            f"{operation} failed with HTTP {response.status_code}",
            status_code=response.status_code,
        )
    log.debug(f"{operation} error {error.code}: {error.message}")
    return RemoteError(
        f"{operation} failed: {error.message or error.code}",
        status_code=response.status_code,
        code=error.code,
    )


if TYPE_CHECKING:
    _client_check: AdminDirectoryClient = GraphDirectoryClient()
