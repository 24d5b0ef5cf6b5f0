"""Public interface for the Exchange Online adapter."""

from __future__ import annotations

from .client import ExchangeDirectoryClient, build_identity_filter
from .schema import CmdletResponse, RecipientPayload
from .translator import to_object_ref

__all__ = [
    "CmdletResponse",
    "ExchangeDirectoryClient",
    "RecipientPayload",
    "build_identity_filter",
    "to_object_ref",
]
