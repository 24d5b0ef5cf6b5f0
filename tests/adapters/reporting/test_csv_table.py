from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from exoadmin.adapters.reporting import CsvReportRenderer, parse_table, read_table
from exoadmin.domain.ports import TableDocument

if TYPE_CHECKING:
    from pathlib import Path


def test_read_table_strips_byte_order_mark(tmp_path: Path) -> None:
    path = tmp_path / "input.csv"
    path.write_bytes("\ufeffMailboxAlias,PermissionHolder\r\nsales,alice\r\n".encode())

    table = read_table(path)

    assert tuple(table.header) == ("MailboxAlias", "PermissionHolder")
    assert table.rows == [{"MailboxAlias": "sales", "PermissionHolder": "alice"}]


def test_read_table_raises_for_missing_files(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        read_table(tmp_path / "missing.csv")


def test_parse_table_skips_type_information_and_blank_lines() -> None:
    text = '\n#TYPE Selected.System.Management.Automation.PSCustomObject\n"GroupName"\n"Sales"\n'

    table = parse_table(text)

    assert tuple(table.header) == ("GroupName",)
    assert table.rows == [{"GroupName": "Sales"}]


def test_parse_table_supports_other_delimiters() -> None:
    table = parse_table("Mailbox;Alias\nsales;orders@contoso.com\n", delimiter=";")

    assert table.rows == [{"Mailbox": "sales", "Alias": "orders@contoso.com"}]


def test_parse_table_of_empty_text_has_no_header() -> None:
    table = parse_table("")

    assert tuple(table.header) == ()
    assert table.rows == []


def test_csv_renderer_writes_header_and_rows_in_column_order() -> None:
    document = TableDocument(
        title="Report",
        columns=("Row", "Status"),
        rows=[{"Status": "Applied", "Row": "1", "Ignored": "x"}, {"Row": "2", "Status": "Failed"}],
        summary={"Total": 2, "Applied": 1, "Failed": 1},
    )

    rendered = CsvReportRenderer()(document)

    assert rendered == (
        "Row,Status\n1,Applied\n2,Failed\n\n#SUMMARY\nTotal,2\nApplied,1\nFailed,1\n"
    )


def test_csv_renderer_omits_empty_summary() -> None:
    document = TableDocument(title="Report", columns=("Row",), rows=[{"Row": "1"}])

    assert CsvReportRenderer()(document) == "Row\n1\n"


def test_rendered_report_reads_back_without_its_summary() -> None:
    document = TableDocument(
        title="Group members",
        columns=("GroupName", "UserPrincipalName"),
        rows=[{"GroupName": "Sales", "UserPrincipalName": "alice@contoso.com"}],
        summary={"Rows": 1, "Failures": 0},
    )

    table = parse_table(CsvReportRenderer()(document))

    assert tuple(table.header) == ("GroupName", "UserPrincipalName")
    assert table.rows == [{"GroupName": "Sales", "UserPrincipalName": "alice@contoso.com"}]


def test_csv_renderer_quotes_embedded_separators() -> None:
    document = TableDocument(
        title="Report",
        columns=("Message",),
        rows=[{"Message": 'Target "sales, eu" was not found'}],
    )

    assert CsvReportRenderer()(document).splitlines()[1] == '"Target ""sales, eu"" was not found"'
