"""Report readers and renderers."""

from __future__ import annotations

from .csv_table import CsvReportRenderer, parse_table, read_table
from .html import HtmlReportRenderer

__all__ = [
    "CsvReportRenderer",
    "HtmlReportRenderer",
    "parse_table",
    "read_table",
]
