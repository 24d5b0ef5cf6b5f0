from __future__ import annotations

from pathlib import Path

import pytest

from exoadmin.app import Backend, InventoryReport, InventoryRun, ReconciliationRun
from exoadmin.config import MissingConfigurationError
from exoadmin.domain.inventory import InventoryResult
from exoadmin.domain.reconciliation import ReportFormat, RunReporter, RunSummary, get_job
from exoadmin.ui import cli as cli_module


def _fake_run(captured: dict[str, object]):
    def fake_run_reconciliation(
        job_name: str, input_path: Path, **kwargs: object
    ) -> ReconciliationRun:
        captured.update(kwargs, job_name=job_name, input_path=input_path)
        return ReconciliationRun(
            job=get_job(job_name),
            summary=RunSummary(applied=1),
            reporter=RunReporter(),
        )

    return fake_run_reconciliation


def test_reconcile_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    captured: dict[str, object] = {}
    monkeypatch.setattr(cli_module, "run_reconciliation", _fake_run(captured))
    monkeypatch.delenv("EXOADMIN_REPORT_DIR", raising=False)

    cli_module.main(["reconcile", "grant-send-as", "--input", str(tmp_path / "rows.csv")])

    assert captured["job_name"] == "grant-send-as"
    assert captured["input_path"] == tmp_path / "rows.csv"
    assert captured["backend"] is Backend.EXCHANGE
    assert captured["dry_run"] is False
    assert captured["retries"] == 0
    assert captured["formats"] == [ReportFormat.CSV, ReportFormat.HTML]


def test_reconcile_with_flags(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    captured: dict[str, object] = {}
    monkeypatch.setattr(cli_module, "run_reconciliation", _fake_run(captured))

    cli_module.main(
        [
            "reconcile",
            "import-group-members",
            "-i",
            "members.csv",
            "--backend",
            "graph",
            "--dry-run",
            "--retries",
            "2",
            "--format",
            "html",
            "--report-dir",
            str(tmp_path),
        ]
    )

    assert captured["backend"] is Backend.GRAPH
    assert captured["dry_run"] is True
    assert captured["retries"] == 2
    assert captured["formats"] == [ReportFormat.HTML]
    report_config = captured["report_config"]
    assert report_config.output_dir == tmp_path  # type: ignore[attr-defined]


def test_unknown_job_exits_with_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["reconcile", "grant-everything", "--input", "rows.csv"])

    assert excinfo.value.code == 2


def test_negative_retries_exit_with_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["reconcile", "grant-send-as", "--input", "rows.csv", "--retries", "-1"])

    assert excinfo.value.code == 2


def test_setup_failures_exit_with_status_one(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_run(*_: object, **__: object) -> ReconciliationRun:
        raise MissingConfigurationError("Missing configuration for: EXOADMIN_TENANT_ID")

    monkeypatch.setattr(cli_module, "run_reconciliation", failing_run)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["reconcile", "grant-send-as", "--input", "rows.csv"])

    assert excinfo.value.code == 1


def test_unreadable_input_exits_with_status_one(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["reconcile", "create-groups", "--input", str(tmp_path / "missing.csv")])

    assert excinfo.value.code == 1


def test_export_collects_repeated_identifiers(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_export(report: InventoryReport, **kwargs: object) -> InventoryRun:
        captured.update(kwargs, report=report)
        return InventoryRun(result=InventoryResult(title="Mailbox permissions", columns=()))

    monkeypatch.setattr(cli_module, "run_inventory_export", fake_export)

    cli_module.main(
        ["export", "mailbox-permissions", "--mailbox", "sales", "--mailbox", "support"]
    )

    assert captured["report"] is InventoryReport.MAILBOX_PERMISSIONS
    assert captured["identifiers"] == ["sales", "support"]
    assert captured["formats"] == [ReportFormat.CSV]
