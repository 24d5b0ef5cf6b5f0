"""Synchronous session over an async HTTP client.

The reconciliation engine is synchronous and processes one row at a time, so
each directory client owns a private event loop for the lifetime of its
session and runs every request to completion on it.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .http_resilience import ResilientClient

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

    from exoadmin.config import ResilienceConfig

log = getLogger(__name__)

type ClientFactory = Callable[[ResilienceConfig], ResilientClient]


def default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class DirectorySession:
    client_factory: ClientFactory = field(default=default_client_factory)
    _runner: asyncio.Runner | None = field(default=None, init=False)
    _http: ResilientClient | None = field(default=None, init=False)

    @property
    def is_open(self) -> bool:
        return self._http is not None

    @property
    def http(self) -> ResilientClient:
        if self._http is None:
            raise RuntimeError("Directory session is not open")
        return self._http

    def open(self, config: ResilienceConfig) -> None:
        if self._http is not None:
            return
        self._runner = asyncio.Runner()
        self._http = self.client_factory(config)
        log.debug("Opened %s session", config.name)

    def run[T](self, coro: Coroutine[object, object, T]) -> T:
        if self._runner is None:
            coro.close()
            raise RuntimeError("Directory session is not open")
        return self._runner.run(coro)

    def close(self) -> None:
        http, runner = self._http, self._runner
        self._http = None
        self._runner = None
        try:
            if http is not None and runner is not None:
                runner.run(http.aclose())
        finally:
            if runner is not None:
                runner.close()
