from __future__ import annotations

import os

import pytest


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's real tenant settings out of the test run."""

    for name in list(os.environ):
        if name.startswith("EXOADMIN_"):
            monkeypatch.delenv(name, raising=False)
