from __future__ import annotations

import httpx
import pytest

from exoadmin.adapters.exchange import ExchangeDirectoryClient, build_identity_filter
from exoadmin.config import ExchangeConfig, ResilienceConfig
from exoadmin.domain.model import Decision, ObjectKind, ObjectSpec, Reason, RelationshipKind
from exoadmin.domain.ports import RemoteError
from exoadmin.domain.reconciliation import RawTable, ReconciliationEngine, get_job, parse
from tests.support.directory import make_mailbox
from tests.support.http import CREDENTIALS, RecordedRequests, make_client_factory

BASE_URL = "https://outlook.office365.com/adminapi/beta/tenant-id/"
ORGANIZATION = "contoso.onmicrosoft.com"

SALES_PAYLOAD: dict[str, object] = {
    "Identity": "sales",
    "Guid": "7d1c9a4e-0000-4000-8000-000000000001",
    "ExternalDirectoryObjectId": "5b0f6f1e-0000-4000-8000-000000000001",
    "Name": "sales",
    "DisplayName": "Sales",
    "Alias": "sales",
    "PrimarySmtpAddress": "sales@contoso.com",
    "UserPrincipalName": "sales@contoso.com",
    "RecipientTypeDetails": "SharedMailbox",
    "EmailAddresses": ["SMTP:sales@contoso.com", "smtp:orders@contoso.com", "X500:/o=legacy"],
    "GrantSendOnBehalfTo": None,
}


def _ok(*values: dict[str, object], next_link: str | None = None) -> httpx.Response:
    payload: dict[str, object] = {"value": list(values)}
    if next_link:
        payload["@odata.nextLink"] = next_link
    return httpx.Response(200, json=payload)


def _client(recorder: RecordedRequests) -> ExchangeDirectoryClient:
    config = ExchangeConfig(
        credentials=CREDENTIALS,
        organization=ORGANIZATION,
        resilience=ResilienceConfig(name="exchange", base_url=BASE_URL),
    )
    return ExchangeDirectoryClient(
        config=config,
        client_factory=make_client_factory(recorder),
        token_provider=lambda: "token-123",
    )


def test_identity_filter_matches_names_and_addresses() -> None:
    text = build_identity_filter("o'brien@contoso.com", kind=ObjectKind.GROUP)

    assert "Alias -eq 'o''brien@contoso.com'" in text
    assert "EmailAddresses -eq 'smtp:o''brien@contoso.com'" in text
    assert "ExternalDirectoryObjectId" not in text
    assert text.count(" -or ") == 4


def test_identity_filter_adds_object_id_for_guids() -> None:
    text = build_identity_filter("5b0f6f1e-0000-4000-8000-000000000001", kind=ObjectKind.MAILBOX)

    assert text.endswith("ExternalDirectoryObjectId -eq '5b0f6f1e-0000-4000-8000-000000000001'")


def test_find_object_invokes_cmdlet_with_session_headers() -> None:
    recorder = RecordedRequests([_ok(SALES_PAYLOAD)])

    with _client(recorder) as client:
        (ref,) = client.find_object("sales", kind=ObjectKind.MAILBOX)

    request = recorder.requests[0]
    assert request.method == "POST"
    assert str(request.url) == f"{BASE_URL}InvokeCommand"
    assert request.headers["Authorization"] == "Bearer token-123"
    assert request.headers["X-CmdletName"] == "Get-Mailbox"
    assert request.headers["X-AnchorMailbox"].endswith(f"@{ORGANIZATION}")
    body = recorder.bodies()[0]
    assert body["CmdletInput"]["CmdletName"] == "Get-Mailbox"  # type: ignore[index]
    assert "Alias -eq 'sales'" in body["CmdletInput"]["Parameters"]["Filter"]  # type: ignore[index]

    assert ref.id == "5b0f6f1e-0000-4000-8000-000000000001"
    assert ref.label == "sales@contoso.com"
    assert ref.recipient_type == "SharedMailbox"
    assert "orders@contoso.com" in ref.keys()


def test_find_object_returns_every_match() -> None:
    other = {**SALES_PAYLOAD, "ExternalDirectoryObjectId": "other", "Alias": "sales2"}
    recorder = RecordedRequests([_ok(SALES_PAYLOAD, other)])

    with _client(recorder) as client:
        matches = client.find_object("Sales", kind=ObjectKind.MAILBOX)

    assert len(matches) == 2


def test_invoke_follows_next_links() -> None:
    next_link = f"{BASE_URL}InvokeCommand?$skiptoken=page2"
    recorder = RecordedRequests(
        [
            _ok({"Alias": "a", "Name": "a"}, next_link=next_link),
            _ok({"Alias": "b", "Name": "b"}),
        ]
    )

    with _client(recorder) as client:
        refs = client.iter_objects(ObjectKind.GROUP)

    assert [ref.alias for ref in refs] == ["a", "b"]
    assert recorder.requests[1].url.params["$skiptoken"] == "page2"


def test_full_access_ignores_system_inherited_and_denied_entries() -> None:
    recorder = RecordedRequests(
        [
            _ok(
                {"User": "NT AUTHORITY\\SELF", "AccessRights": ["FullAccess"]},
                {"User": "admin@contoso.com", "AccessRights": ["FullAccess"], "IsInherited": True},
                {"User": "eve@contoso.com", "AccessRights": ["FullAccess"], "Deny": True},
                {"User": "bob@contoso.com", "AccessRights": "ReadPermission"},
                {"User": "alice@contoso.com", "AccessRights": "FullAccess, ReadPermission"},
            )
        ]
    )

    with _client(recorder) as client:
        relationships = client.get_relationships(
            make_mailbox("sales"), kind=RelationshipKind.FULL_ACCESS
        )

    (relationship,) = relationships
    assert relationship.subject_label == "alice@contoso.com"
    assert relationship.detail == "FullAccess, ReadPermission"
    assert recorder.bodies()[0]["CmdletInput"] == {
        "CmdletName": "Get-MailboxPermission",
        "Parameters": {"Identity": "mbx-sales"},
    }


def test_send_as_reads_recipient_permissions() -> None:
    recorder = RecordedRequests(
        [
            _ok(
                {"Trustee": "alice@contoso.com", "AccessRights": ["SendAs"]},
                {
                    "Trustee": "bob@contoso.com",
                    "AccessRights": ["SendAs"],
                    "AccessControlType": "Deny",
                },
            )
        ]
    )

    with _client(recorder) as client:
        relationships = client.get_relationships(
            make_mailbox("sales"), kind=RelationshipKind.SEND_AS
        )

    assert {relationship.subject_label for relationship in relationships} == {"alice@contoso.com"}


def test_alias_relationships_cover_smtp_addresses_only() -> None:
    recorder = RecordedRequests([_ok(SALES_PAYLOAD)])

    with _client(recorder) as client:
        relationships = client.get_relationships(
            make_mailbox("sales"), kind=RelationshipKind.MAILBOX_ALIAS
        )

    details = {relationship.subject_label: relationship.detail for relationship in relationships}
    assert details == {"sales@contoso.com": "primary", "orders@contoso.com": "secondary"}


def test_full_access_grant_honours_auto_mapping() -> None:
    recorder = RecordedRequests([_ok()])

    with _client(recorder) as client:
        client.apply_relationship(
            make_mailbox("sales"),
            make_mailbox("alice"),
            kind=RelationshipKind.FULL_ACCESS,
            attributes={"AutoMapping": "False"},
        )

    parameters = recorder.bodies()[0]["CmdletInput"]["Parameters"]  # type: ignore[index]
    assert parameters == {
        "Identity": "mbx-sales",
        "User": "alice@contoso.com",
        "AccessRights": ["FullAccess"],
        "InheritanceType": "All",
        "AutoMapping": False,
    }


def test_send_on_behalf_and_alias_writes_use_hashtable_adds() -> None:
    recorder = RecordedRequests([httpx.Response(200), httpx.Response(204)])

    with _client(recorder) as client:
        client.apply_relationship(
            make_mailbox("sales"), make_mailbox("alice"), kind=RelationshipKind.SEND_ON_BEHALF
        )
        client.apply_relationship(
            make_mailbox("sales"), "orders@contoso.com", kind=RelationshipKind.MAILBOX_ALIAS
        )

    first, second = (body["CmdletInput"] for body in recorder.bodies())
    assert first["CmdletName"] == "Set-Mailbox"  # type: ignore[index]
    assert first["Parameters"]["GrantSendOnBehalfTo"] == {  # type: ignore[index]
        "@odata.type": "#Exchange.GenericHashTable",
        "add": ["alice@contoso.com"],
    }
    assert second["Parameters"]["EmailAddresses"]["add"] == [  # type: ignore[index]
        "smtp:orders@contoso.com"
    ]


def test_create_distribution_group() -> None:
    recorder = RecordedRequests([_ok({"Name": "Finance", "Alias": "finance"})])

    with _client(recorder) as client:
        created = client.create_object(
            ObjectSpec(
                kind=ObjectKind.GROUP,
                name="Finance",
                attributes={"Alias": "finance", "Description": "Finance team"},
            )
        )

    assert created.alias == "finance"
    assert recorder.bodies()[0]["CmdletInput"] == {
        "CmdletName": "New-DistributionGroup",
        "Parameters": {
            "Name": "Finance",
            "Type": "Distribution",
            "Alias": "finance",
            "Notes": "Finance team",
        },
    }


def test_create_group_rejects_unknown_group_type_without_calling_service() -> None:
    recorder = RecordedRequests()

    with _client(recorder) as client, pytest.raises(RemoteError) as excinfo:
        client.create_object(
            ObjectSpec(kind=ObjectKind.GROUP, name="Finance", attributes={"GroupType": "Dynamic"})
        )

    assert excinfo.value.code == "InvalidGroupType"
    assert recorder.requests == []


def test_service_errors_become_remote_errors() -> None:
    recorder = RecordedRequests(
        [
            httpx.Response(
                400,
                json={
                    "error": {
                        "code": "ManagementObjectNotFoundException",
                        "message": (
                            "The operation couldn't be performed because 'ghost' "
                            "couldn't be found."
                        ),
                    }
                },
            )
        ]
    )

    with _client(recorder) as client, pytest.raises(RemoteError) as excinfo:
        client.find_object("ghost", kind=ObjectKind.MAILBOX)

    assert excinfo.value.status_code == 400
    assert excinfo.value.code == "ManagementObjectNotFoundException"
    assert "couldn't be found" in str(excinfo.value)


def test_transport_failures_become_remote_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = ExchangeDirectoryClient(
        config=ExchangeConfig(
            credentials=CREDENTIALS,
            organization=ORGANIZATION,
            resilience=ResilienceConfig(name="exchange", base_url=BASE_URL),
        ),
        client_factory=make_client_factory(handler),
        token_provider=lambda: "token-123",
    )

    with client, pytest.raises(RemoteError, match="Get-Recipient request failed"):
        client.find_object("alice", kind=ObjectKind.RECIPIENT)


def test_client_must_be_open() -> None:
    client = _client(RecordedRequests())

    with pytest.raises(RuntimeError, match="not open"):
        client.find_object("sales", kind=ObjectKind.MAILBOX)

    with client:
        pass
    with pytest.raises(RuntimeError, match="not open"):
        client.invoke("Get-Mailbox", {})


def test_prefixed_alias_is_not_prefixed_twice() -> None:
    recorder = RecordedRequests([httpx.Response(204)])

    with _client(recorder) as client:
        client.apply_relationship(
            make_mailbox("sales"), "SMTP:orders@contoso.com", kind=RelationshipKind.MAILBOX_ALIAS
        )

    parameters = recorder.bodies()[0]["CmdletInput"]["Parameters"]  # type: ignore[index]
    assert parameters["EmailAddresses"]["add"] == ["smtp:orders@contoso.com"]  # type: ignore[index]


def test_malformed_permission_entries_become_remote_errors() -> None:
    recorder = RecordedRequests([_ok({"AccessRights": ["FullAccess"]})])

    with _client(recorder) as client, pytest.raises(RemoteError, match="unexpected payload"):
        client.get_relationships(make_mailbox("sales"), kind=RelationshipKind.FULL_ACCESS)


def test_malformed_payload_fails_only_its_row() -> None:
    alice = {"Name": "alice", "Alias": "alice", "PrimarySmtpAddress": "alice@contoso.com"}
    bob = {"Name": "bob", "Alias": "bob", "PrimarySmtpAddress": "bob@contoso.com"}
    recorder = RecordedRequests(
        [
            _ok(SALES_PAYLOAD),
            _ok(alice),
            _ok({"AccessRights": ["FullAccess"]}),
            _ok(SALES_PAYLOAD),
            _ok(bob),
            _ok(),
            httpx.Response(200),
        ]
    )
    job = get_job("grant-full-access")
    rows = parse(
        RawTable(
            header=["MailboxAlias", "PermissionHolder"],
            rows=[
                {"MailboxAlias": "sales", "PermissionHolder": "alice"},
                {"MailboxAlias": "sales", "PermissionHolder": "bob"},
            ],
        ),
        job.required_columns,
    )

    with _client(recorder) as client:
        reporter, summary = ReconciliationEngine(client=client, job=job).reconcile(rows)

    first, second = reporter.outcomes
    assert (first.decision, first.reason) == (Decision.FAILED, Reason.REMOTE_ERROR)
    assert "Get-MailboxPermission returned an unexpected payload" in first.message
    assert (second.decision, second.reason) == (Decision.APPLIED, Reason.APPLIED)
    assert (summary.failed, summary.applied, summary.total) == (1, 1, 2)
    assert recorder.requests[-1].headers["X-CmdletName"] == "Add-MailboxPermission"
