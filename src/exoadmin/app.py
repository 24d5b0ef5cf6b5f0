"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from exoadmin.adapters.exchange import ExchangeDirectoryClient
from exoadmin.adapters.graph import GraphDirectoryClient
from exoadmin.adapters.reporting import CsvReportRenderer, HtmlReportRenderer, read_table
from exoadmin.config import (
    RetryPolicy,
    get_exchange_config,
    get_graph_config,
    get_report_config,
)
from exoadmin.domain.inventory import export_group_members, export_mailbox_permissions
from exoadmin.domain.reconciliation import (
    ReconciliationEngine,
    ReportFormat,
    RunReporter,
    get_job,
    parse,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

    from exoadmin.config import ReportConfig
    from exoadmin.domain.inventory import InventoryResult
    from exoadmin.domain.ports import (
        AdminDirectoryClient,
        DirectoryClientFactory,
        ReportRenderer,
        TableDocument,
    )
    from exoadmin.domain.reconciliation import ReconciliationJob, RunSummary

log = getLogger(__name__)


class Backend(StrEnum):
    EXCHANGE = "exchange"
    GRAPH = "graph"


class InventoryReport(StrEnum):
    MAILBOX_PERMISSIONS = "mailbox-permissions"
    GROUP_MEMBERS = "group-members"


DEFAULT_FORMATS: tuple[ReportFormat, ...] = (ReportFormat.CSV, ReportFormat.HTML)


def default_renderers() -> dict[ReportFormat, ReportRenderer]:
    return {ReportFormat.CSV: CsvReportRenderer(), ReportFormat.HTML: HtmlReportRenderer()}


def build_directory_client(backend: Backend, *, retries: int = 0) -> AdminDirectoryClient:
    """Create an unopened directory client for ``backend`` from the environment."""

    if retries < 0:
        raise ValueError("Retries must be non-negative")
    retry = RetryPolicy(total=retries) if retries else None

    if backend is Backend.GRAPH:
        return GraphDirectoryClient(config=get_graph_config(retry=retry))

    return ExchangeDirectoryClient(config=get_exchange_config(retry=retry))


@dataclass(slots=True)
class ReconciliationRun:
    job: ReconciliationJob
    summary: RunSummary
    reporter: RunReporter
    report_paths: list[Path] = field(default_factory=list)


@dataclass(slots=True)
class InventoryRun:
    result: InventoryResult
    report_paths: list[Path] = field(default_factory=list)


def run_reconciliation(
    job_name: str,
    input_path: Path,
    *,
    backend: Backend = Backend.EXCHANGE,
    client_factory: DirectoryClientFactory | None = None,
    dry_run: bool = False,
    retries: int = 0,
    formats: Sequence[ReportFormat] = DEFAULT_FORMATS,
    report_config: ReportConfig | None = None,
) -> ReconciliationRun:
    """Reconcile the rows of ``input_path`` with the directory and write reports.

    Schema problems and unreadable input fail before any connection is made.
    """

    job = get_job(job_name)
    rows = parse(read_table(input_path), job.required_columns)
    log.info(
        "Starting %s from %s: rows=%s, backend=%s, dry_run=%s",
        job.name,
        input_path,
        len(rows),
        backend,
        dry_run,
    )

    reporter = RunReporter(title=job.description, renderers=default_renderers())
    client = _make_client(client_factory, backend, retries=retries)
    with client:
        engine = ReconciliationEngine(client=client, job=job, dry_run=dry_run)
        _, summary = engine.reconcile(rows, reporter=reporter)

    effective_config = report_config or get_report_config()
    stem = effective_config.run_stem(job.name)
    paths = [
        _write_report(
            reporter.render(fmt),
            effective_config.report_path(stem, reporter.renderers[fmt].suffix),
        )
        for fmt in formats
    ]
    return ReconciliationRun(job=job, summary=summary, reporter=reporter, report_paths=paths)


def run_inventory_export(
    report: InventoryReport,
    *,
    identifiers: Sequence[str] = (),
    backend: Backend = Backend.EXCHANGE,
    client_factory: DirectoryClientFactory | None = None,
    retries: int = 0,
    formats: Sequence[ReportFormat] = (ReportFormat.CSV,),
    report_config: ReportConfig | None = None,
    renderers: Mapping[ReportFormat, ReportRenderer] | None = None,
) -> InventoryRun:
    """Export mailbox permissions or group membership to report files."""

    client = _make_client(client_factory, backend, retries=retries)
    with client:
        if report is InventoryReport.MAILBOX_PERMISSIONS:
            result = export_mailbox_permissions(client, mailboxes=identifiers)
        else:
            result = export_group_members(client, groups=identifiers)

    effective_config = report_config or get_report_config()
    effective_renderers = renderers or default_renderers()
    document = result.document()
    stem = effective_config.run_stem(str(report))
    paths = [
        _render_to_file(document, effective_renderers[fmt], effective_config, stem=stem)
        for fmt in formats
    ]
    return InventoryRun(result=result, report_paths=paths)


def _make_client(
    client_factory: DirectoryClientFactory | None,
    backend: Backend,
    *,
    retries: int,
) -> AdminDirectoryClient:
    if client_factory is not None:
        return client_factory()
    return build_directory_client(backend, retries=retries)


def _render_to_file(
    document: TableDocument,
    renderer: ReportRenderer,
    config: ReportConfig,
    *,
    stem: str,
) -> Path:
    return _write_report(renderer(document), config.report_path(stem, renderer.suffix))


def _write_report(content: str, path: Path) -> Path:
    path.write_text(content, encoding="utf-8")
    log.info("Wrote report %s", path)
    return path
