from __future__ import annotations

from exoadmin.domain.model import ObjectKind, RelationshipKind
from exoadmin.domain.reconciliation import Ambiguous, Found, NotFound, RawTable, get_job, parse
from exoadmin.domain.reconciliation.lookup import RemoteStateLookup
from tests.support.directory import FakeDirectoryClient, make_group, make_mailbox


def _row(job_name: str, **values: str):
    job = get_job(job_name)
    (row,) = parse(RawTable(header=list(values), rows=[values]), job.required_columns)
    return job, row


def test_lookup_distinguishes_found_missing_and_ambiguous() -> None:
    sales = make_mailbox("sales")
    client = FakeDirectoryClient().add(
        sales,
        make_group("Helpdesk"),
        make_group("Helpdesk", domain="fabrikam.com"),
    )
    lookup = RemoteStateLookup(client)

    assert lookup.lookup("SALES@contoso.com", kind=ObjectKind.MAILBOX) == Found(ref=sales)
    assert lookup.lookup("nobody", kind=ObjectKind.MAILBOX) == NotFound(identifier="nobody")
    ambiguous = lookup.lookup("Helpdesk", kind=ObjectKind.GROUP)
    assert isinstance(ambiguous, Ambiguous)
    assert len(ambiguous.candidates) == 2


def test_lookup_relationship_matches_subject_identity_keys() -> None:
    sales = make_mailbox("sales")
    alice = make_mailbox("alice")
    client = FakeDirectoryClient().add(sales, alice).link(sales, alice, RelationshipKind.SEND_AS)
    lookup = RemoteStateLookup(client)

    assert lookup.lookup_relationship(sales, alice, kind=RelationshipKind.SEND_AS)
    assert not lookup.lookup_relationship(sales, alice, kind=RelationshipKind.FULL_ACCESS)


def test_lookup_relationship_accepts_literal_addresses() -> None:
    sales = make_mailbox("sales")
    client = FakeDirectoryClient().add(sales)
    client.link(sales, "smtp:Orders@contoso.com", RelationshipKind.MAILBOX_ALIAS)
    lookup = RemoteStateLookup(client)

    assert lookup.lookup_relationship(
        sales, "orders@CONTOSO.com", kind=RelationshipKind.MAILBOX_ALIAS
    )


def test_observe_issues_no_reads_for_incomplete_rows() -> None:
    client = FakeDirectoryClient().add(make_mailbox("sales"))
    job, row = _row("grant-full-access", MailboxAlias="", PermissionHolder="alice")

    state = RemoteStateLookup(client).observe(row, job)

    assert state.target is None
    assert client.reads == []


def test_observe_stops_after_missing_target() -> None:
    client = FakeDirectoryClient().add(make_mailbox("alice"))
    job, row = _row("grant-full-access", MailboxAlias="ghost", PermissionHolder="alice")

    state = RemoteStateLookup(client).observe(row, job)

    assert isinstance(state.target, NotFound)
    assert state.subject is None
    assert client.reads == [("find_object", "ghost")]


def test_observe_collects_target_subject_and_presence() -> None:
    sales = make_mailbox("sales")
    alice = make_mailbox("alice")
    client = FakeDirectoryClient().add(sales, alice)
    client.link(sales, alice, RelationshipKind.FULL_ACCESS)
    job, row = _row("grant-full-access", MailboxAlias="sales", PermissionHolder="alice")

    state = RemoteStateLookup(client).observe(row, job)

    assert state.target == Found(ref=sales)
    assert state.subject == Found(ref=alice)
    assert state.present is True


def test_observe_skips_subject_lookup_for_literal_subjects() -> None:
    client = FakeDirectoryClient().add(make_mailbox("sales"))
    job, row = _row("add-aliases", Mailbox="sales", Alias="orders@contoso.com")

    state = RemoteStateLookup(client).observe(row, job)

    assert state.subject is None
    assert state.present is False
    assert client.reads == [("find_object", "sales"), ("get_relationships", "mbx-sales")]


def test_observe_for_group_creation_reads_only_the_target() -> None:
    client = FakeDirectoryClient()
    job, row = _row("create-groups", GroupName="Sales")

    state = RemoteStateLookup(client).observe(row, job)

    assert isinstance(state.target, NotFound)
    assert state.present is None
    assert client.reads == [("find_object", "Sales")]
