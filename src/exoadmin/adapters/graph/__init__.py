"""Public interface for the Microsoft Graph adapter."""

from __future__ import annotations

from .client import GraphDirectoryClient, build_identity_filter, mail_nickname
from .translator import to_object_ref

__all__ = [
    "GraphDirectoryClient",
    "build_identity_filter",
    "mail_nickname",
    "to_object_ref",
]
