from __future__ import annotations

import pytest

from exoadmin.domain.reconciliation import RawTable, SchemaError, parse


def test_parse_trims_header_and_values() -> None:
    table = RawTable(
        header=[" MailboxAlias ", "PermissionHolder"],
        rows=[{" MailboxAlias ": "  sales ", "PermissionHolder": "\tSalesTeam  "}],
    )

    rows = parse(table, ("MailboxAlias", "PermissionHolder"))

    assert len(rows) == 1
    assert rows[0].index == 1
    assert rows[0].get("MailboxAlias") == "sales"
    assert rows[0].get("PermissionHolder") == "SalesTeam"


def test_parse_numbers_rows_from_one() -> None:
    table = RawTable(
        header=["GroupName"],
        rows=[{"GroupName": "A"}, {"GroupName": "B"}, {"GroupName": "C"}],
    )

    rows = parse(table, ("GroupName",))

    assert [row.index for row in rows] == [1, 2, 3]


def test_parse_reports_every_missing_column() -> None:
    table = RawTable(header=["Other"], rows=[])

    with pytest.raises(SchemaError) as excinfo:
        parse(table, ("MailboxAlias", "PermissionHolder"))

    assert excinfo.value.missing == ("MailboxAlias", "PermissionHolder")
    assert "MailboxAlias, PermissionHolder" in str(excinfo.value)


def test_parse_rejects_empty_input() -> None:
    with pytest.raises(SchemaError, match="empty"):
        parse(RawTable(header=[], rows=[]), ("GroupName",))


def test_parse_keeps_blank_cells_for_the_decision_stage() -> None:
    table = RawTable(
        header=["MailboxAlias", "PermissionHolder"],
        rows=[{"MailboxAlias": "   ", "PermissionHolder": None}],
    )

    (row,) = parse(table, ("MailboxAlias", "PermissionHolder"))

    assert row.get("MailboxAlias") == ""
    assert row.get("PermissionHolder") == ""
    assert row.empty_columns(("MailboxAlias", "PermissionHolder")) == (
        "MailboxAlias",
        "PermissionHolder",
    )
    assert not row.is_complete(("MailboxAlias",))


def test_parse_ignores_overflow_cells() -> None:
    # csv.DictReader stores surplus cells under the ``None`` key
    table = RawTable(
        header=["GroupName"],
        rows=[{"GroupName": "Sales", None: "extra"}],  # pyright: ignore[reportArgumentType]
    )

    (row,) = parse(table, ("GroupName",))

    assert dict(row.values) == {"GroupName": "Sales"}


def test_parsed_rows_are_read_only() -> None:
    (row,) = parse(RawTable(header=["GroupName"], rows=[{"GroupName": "Sales"}]), ("GroupName",))

    with pytest.raises(TypeError):
        row.values["GroupName"] = "Other"  # pyright: ignore[reportIndexIssue]
