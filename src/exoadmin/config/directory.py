"""Directory service credentials and endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

LOGIN_AUTHORITY_URL = "https://login.microsoftonline.com"

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0/"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"

EXCHANGE_ADMIN_URL = "https://outlook.office365.com/adminapi/beta"
EXCHANGE_SCOPE = "https://outlook.office365.com/.default"

DIRECTORY_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class DirectoryCredentials:
    """App registration used for client-credential (app-only) sign-in.

    Exactly one of ``client_secret`` or ``certificate_path`` is expected; a
    certificate additionally needs its SHA-1 thumbprint.
    """

    tenant_id: str
    client_id: str
    client_secret: str | None = None
    certificate_path: Path | None = None
    certificate_thumbprint: str | None = None

    @property
    def authority(self) -> str:
        return f"{LOGIN_AUTHORITY_URL}/{self.tenant_id}"


@dataclass(frozen=True, slots=True)
class GraphConfig:
    credentials: DirectoryCredentials
    resilience: ResilienceConfig
    scope: str = GRAPH_SCOPE


@dataclass(frozen=True, slots=True)
class ExchangeConfig:
    credentials: DirectoryCredentials
    organization: str
    resilience: ResilienceConfig
    scope: str = EXCHANGE_SCOPE


def get_directory_credentials() -> DirectoryCredentials:
    values = require_env_vars(("EXOADMIN_TENANT_ID", "EXOADMIN_CLIENT_ID"))
    secret = optional_env_var("EXOADMIN_CLIENT_SECRET")
    certificate = optional_env_var("EXOADMIN_CERTIFICATE_PATH")
    thumbprint = optional_env_var("EXOADMIN_CERTIFICATE_THUMBPRINT")

    if secret is None and certificate is None:
        raise ConfigurationError(
            "Set EXOADMIN_CLIENT_SECRET or EXOADMIN_CERTIFICATE_PATH to authenticate"
        )
    if certificate is not None and thumbprint is None:
        raise ConfigurationError(
            "EXOADMIN_CERTIFICATE_THUMBPRINT is required with EXOADMIN_CERTIFICATE_PATH"
        )

    return DirectoryCredentials(
        tenant_id=values["EXOADMIN_TENANT_ID"],
        client_id=values["EXOADMIN_CLIENT_ID"],
        client_secret=secret,
        certificate_path=Path(certificate).expanduser() if certificate else None,
        certificate_thumbprint=thumbprint,
    )


def get_graph_config(
    *,
    credentials: DirectoryCredentials | None = None,
    retry: RetryPolicy | None = None,
) -> GraphConfig:
    return GraphConfig(
        credentials=credentials or get_directory_credentials(),
        resilience=ResilienceConfig(
            name="graph",
            base_url=GRAPH_BASE_URL,
            timeout_seconds=DIRECTORY_TIMEOUT_SECONDS,
            retry=retry,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        ),
    )


def get_exchange_config(
    *,
    credentials: DirectoryCredentials | None = None,
    retry: RetryPolicy | None = None,
) -> ExchangeConfig:
    effective_credentials = credentials or get_directory_credentials()
    organization = require_env_vars(("EXOADMIN_ORGANIZATION",))["EXOADMIN_ORGANIZATION"]
    return ExchangeConfig(
        credentials=effective_credentials,
        organization=organization,
        resilience=ResilienceConfig(
            name="exchange",
            base_url=f"{EXCHANGE_ADMIN_URL}/{effective_credentials.tenant_id}/",
            timeout_seconds=DIRECTORY_TIMEOUT_SECONDS,
            retry=retry,
            ratelimit=RateLimit(max_calls=4, per_seconds=1.0),
        ),
    )
