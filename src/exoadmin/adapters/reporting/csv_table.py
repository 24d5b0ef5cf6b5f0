"""CSV input tables and CSV report rendering."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from typing import TYPE_CHECKING

from exoadmin.domain.reconciliation import RawTable

if TYPE_CHECKING:
    from pathlib import Path

    from exoadmin.domain.ports import TableDocument

# Export-Csv without -NoTypeInformation writes this line above the header.
_TYPE_INFO_PREFIX = "#TYPE"
# Everything from this line on is the report summary, not table data.
_SUMMARY_MARKER = "#SUMMARY"


def read_table(path: Path, *, delimiter: str = ",") -> RawTable:
    """Read ``path`` into a raw table; an unreadable file raises ``OSError``."""

    with path.open(newline="", encoding="utf-8-sig") as handle:
        return parse_table(handle.read(), delimiter=delimiter)


def parse_table(text: str, *, delimiter: str = ",") -> RawTable:
    """Parse CSV text, ignoring type information and a trailing summary block.

    Reports written by ``CsvReportRenderer`` can therefore be read back as
    input, which is how a membership export is edited and re-imported.
    """

    lines = text.splitlines(keepends=True)
    while lines and (not lines[0].strip() or lines[0].startswith(_TYPE_INFO_PREFIX)):
        lines.pop(0)
    for position, line in enumerate(lines):
        if line.startswith(_SUMMARY_MARKER):
            del lines[position:]
            break
    reader = csv.DictReader(lines, delimiter=delimiter)
    rows = list(reader)
    return RawTable(header=tuple(reader.fieldnames or ()), rows=rows)


@dataclass(slots=True, frozen=True)
class CsvReportRenderer:
    """One CSV row per table row, then the summary counts below a marker line."""

    suffix: str = "csv"

    def __call__(self, document: TableDocument) -> str:
        buffer = io.StringIO()
        writer = csv.DictWriter(
            buffer,
            fieldnames=list(document.columns),
            extrasaction="ignore",
            lineterminator="\n",
        )
        writer.writeheader()
        writer.writerows(document.rows)
        if document.summary:
            buffer.write(f"\n{_SUMMARY_MARKER}\n")
            summary_writer = csv.writer(buffer, lineterminator="\n")
            summary_writer.writerows(document.summary.items())
        return buffer.getvalue()
