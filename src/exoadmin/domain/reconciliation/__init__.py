"""Reconciliation core: drive desired state from a table against a directory.

Layered flow per row:
1) parse the table into typed rows (``records``)
2) read the current remote state (``lookup``)
3) classify the row as skip / apply / fail (``decide``)
4) issue the single remote write for actionable rows (``apply``)
5) append one outcome per row to the run report (``report``)
"""

from __future__ import annotations

from .contracts import (
    Ambiguous,
    Apply,
    CurrentState,
    Fail,
    Found,
    Mutation,
    NotFound,
    ObjectLookup,
    RowDecision,
    Skip,
)
from .engine import ReconciliationEngine
from .jobs import JOBS, ReconciliationJob, get_job
from .records import DesiredStateRow, RawTable, SchemaError, parse
from .report import OutcomeRecord, ReportFormat, RunReporter, RunSummary

__all__ = [
    "JOBS",
    "Ambiguous",
    "Apply",
    "CurrentState",
    "DesiredStateRow",
    "Fail",
    "Found",
    "Mutation",
    "NotFound",
    "ObjectLookup",
    "OutcomeRecord",
    "RawTable",
    "ReconciliationEngine",
    "ReconciliationJob",
    "ReportFormat",
    "RowDecision",
    "RunReporter",
    "RunSummary",
    "SchemaError",
    "Skip",
    "get_job",
    "parse",
]
