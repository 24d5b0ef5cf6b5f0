"""App-only bearer tokens for Microsoft Graph and Exchange Online via MSAL."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

import httpx
import msal

from exoadmin.config import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Generator

    from exoadmin.config import DirectoryCredentials

log = getLogger(__name__)


class AuthenticationError(ConfigurationError):
    """Raised when the identity platform refuses to issue a token."""


class TokenProvider(Protocol):
    def __call__(self) -> str: ...


def _client_credential(credentials: DirectoryCredentials) -> str | dict[str, str]:
    if credentials.certificate_path is not None:
        try:
            private_key = credentials.certificate_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(
                f"Cannot read certificate {credentials.certificate_path}: {exc}"
            ) from exc
        return {
            "private_key": private_key,
            "thumbprint": credentials.certificate_thumbprint or "",
        }
    if credentials.client_secret is None:
        raise ConfigurationError("No client secret or certificate configured")
    return credentials.client_secret


@dataclass(slots=True)
class MsalTokenProvider:
    """Acquire client-credential tokens for one resource scope.

    MSAL keeps an in-memory token cache, so repeated calls only hit the
    identity platform when the cached token is close to expiry.
    """

    credentials: DirectoryCredentials
    scope: str
    _app: msal.ConfidentialClientApplication | None = field(default=None, init=False)

    def __call__(self) -> str:
        if self._app is None:
            self._app = msal.ConfidentialClientApplication(
                client_id=self.credentials.client_id,
                client_credential=_client_credential(self.credentials),
                authority=self.credentials.authority,
            )
        result = self._app.acquire_token_for_client(scopes=[self.scope])
        if not result or "access_token" not in result:
            error = (result or {}).get("error", "unknown_error")
            description = (result or {}).get("error_description", "no description")
            log.error(f"Token request for {self.scope} failed: {error}")
            raise AuthenticationError(f"Could not acquire token ({error}): {description}")
        return str(result["access_token"])


class BearerTokenAuth(httpx.Auth):
    """Attach ``Authorization: Bearer`` from a token provider to every request."""

    def __init__(self, token_provider: TokenProvider) -> None:
        self._token_provider = token_provider

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self._token_provider()}"
        yield request
