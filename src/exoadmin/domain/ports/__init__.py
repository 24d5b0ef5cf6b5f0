"""Domain port definitions for adapters."""

from __future__ import annotations

from .directory import (
    AdminDirectoryClient,
    DirectoryClientFactory,
    RemoteError,
    UnsupportedRelationshipError,
)
from .reporting import ReportRenderer, TableDocument

__all__ = [
    "AdminDirectoryClient",
    "DirectoryClientFactory",
    "RemoteError",
    "ReportRenderer",
    "TableDocument",
    "UnsupportedRelationshipError",
]
