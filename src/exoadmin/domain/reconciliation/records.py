"""Record parsing: tabular input into typed desired-state rows."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence


class SchemaError(ValueError):
    """Raised when an input table is empty or lacks required columns."""

    def __init__(self, message: str, *, missing: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.missing = tuple(missing)


@dataclass(frozen=True, slots=True)
class RawTable:
    """Header plus rows as read from a tabular source."""

    header: Sequence[str]
    rows: Sequence[Mapping[str, str | None]]


@dataclass(frozen=True, slots=True)
class DesiredStateRow:
    """One input record with trimmed values.

    ``index`` is 1-based and counts data rows only, so it matches what an
    operator sees below the header line in a spreadsheet.
    """

    index: int
    values: Mapping[str, str]

    def get(self, column: str) -> str:
        return self.values.get(column, "")

    def empty_columns(self, columns: Iterable[str]) -> tuple[str, ...]:
        return tuple(column for column in columns if not self.get(column))

    def is_complete(self, columns: Iterable[str]) -> bool:
        return not self.empty_columns(columns)


def parse(raw_table: RawTable, required_columns: Sequence[str]) -> tuple[DesiredStateRow, ...]:
    """Validate the header and return typed rows.

    Blank cells are kept as empty strings; whether a row is usable is decided
    per row later so that one bad line does not abort the run.
    """

    header = [column.strip() for column in raw_table.header if column and column.strip()]
    if not header:
        raise SchemaError("Input is empty: no header row found")

    missing = [column for column in required_columns if column not in header]
    if missing:
        raise SchemaError(
            f"Input is missing required column(s): {', '.join(missing)}",
            missing=missing,
        )

    rows: list[DesiredStateRow] = []
    for index, raw in enumerate(raw_table.rows, start=1):
        values = {
            column.strip(): (value or "").strip()
            for column, value in raw.items()
            if column is not None and column.strip()
        }
        for column in header:
            values.setdefault(column, "")
        rows.append(DesiredStateRow(index=index, values=MappingProxyType(values)))
    return tuple(rows)
