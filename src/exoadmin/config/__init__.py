"""Application configuration helpers."""

from __future__ import annotations

from .directory import (
    DirectoryCredentials,
    ExchangeConfig,
    GraphConfig,
    get_directory_credentials,
    get_exchange_config,
    get_graph_config,
)
from .env import optional_env_var, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .reports import ReportConfig, get_report_config

__all__ = [
    "ConfigurationError",
    "DirectoryCredentials",
    "ExchangeConfig",
    "GraphConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ReportConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "configure_logging",
    "get_directory_credentials",
    "get_exchange_config",
    "get_graph_config",
    "get_report_config",
    "optional_env_var",
    "require_env_var",
    "require_env_vars",
]
