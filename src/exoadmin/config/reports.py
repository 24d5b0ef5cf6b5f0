"""Report output configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "exoadmin"
REPORTS_DIR_NAME: Final[str] = "reports"


@dataclass(frozen=True, slots=True)
class ReportConfig:
    output_dir: Path

    def resolve_output_dir(self) -> Path:
        return self.output_dir.expanduser().resolve()

    def ensure_output_dir(self) -> Path:
        output_dir = self.resolve_output_dir()
        output_dir.mkdir(parents=True, exist_ok=True)
        return output_dir

    def run_stem(self, name: str, *, now: datetime | None = None) -> str:
        """Return a timestamped file stem such as ``grant-send-as-20250101T120000Z``.

        Every report of one run shares the stem. A counter is appended when an
        earlier run in the same second already wrote reports under it.
        """

        stamp = (now or datetime.now(UTC)).astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")
        output_dir = self.ensure_output_dir()
        stem = f"{name}-{stamp}"
        counter = 1
        while any(output_dir.glob(f"{stem}.*")):
            counter += 1
            stem = f"{name}-{stamp}-{counter}"
        return stem

    def report_path(self, stem: str, suffix: str) -> Path:
        return self.ensure_output_dir() / f"{stem}.{suffix.lstrip('.')}"


def _default_output_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME / REPORTS_DIR_NAME).expanduser().resolve()


def get_report_config(*, output_dir: Path | None = None) -> ReportConfig:
    if output_dir is not None:
        return ReportConfig(output_dir=output_dir)
    env_dir = os.getenv("EXOADMIN_REPORT_DIR")
    return ReportConfig(output_dir=Path(env_dir) if env_dir else _default_output_dir())
