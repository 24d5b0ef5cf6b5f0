"""Port for the remote directory/mailbox service."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence
    from types import TracebackType

    from exoadmin.domain.model import (
        ObjectKind,
        ObjectSpec,
        Relationship,
        RelationshipKind,
        RemoteObjectRef,
    )


class RemoteError(RuntimeError):
    """Raised when a directory read or write fails.

    ``status_code`` and ``code`` carry the HTTP status and the service error code
    when the failure came from a service response rather than the transport.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class UnsupportedRelationshipError(RemoteError):
    """Raised when a backend cannot reconcile a relationship kind."""


@runtime_checkable
class AdminDirectoryClient(Protocol):
    """Capability interface over an administrative directory API.

    Implementations own authentication and the session; callers drive the
    lifecycle with ``open``/``close`` or a ``with`` block.
    """

    @property
    def supported_kinds(self) -> frozenset[RelationshipKind]: ...

    def open(self) -> None: ...

    def close(self) -> None: ...

    def __enter__(self) -> AdminDirectoryClient: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None: ...

    def find_object(self, identifier: str, *, kind: ObjectKind) -> Sequence[RemoteObjectRef]:
        """Return every object matching ``identifier``; empty when nothing matches."""
        ...

    def get_relationships(
        self, target: RemoteObjectRef, *, kind: RelationshipKind
    ) -> frozenset[Relationship]: ...

    def apply_relationship(
        self,
        target: RemoteObjectRef,
        subject: RemoteObjectRef | str,
        *,
        kind: RelationshipKind,
        attributes: dict[str, str] | None = None,
    ) -> None: ...

    def create_object(self, spec: ObjectSpec) -> RemoteObjectRef: ...

    def iter_objects(self, kind: ObjectKind) -> Iterable[RemoteObjectRef]: ...


type DirectoryClientFactory = Callable[[], AdminDirectoryClient]
