"""Pydantic models describing Exchange Online admin API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _split_rights(value: object) -> object:
    # Rights arrive either as a list or as a comma-separated string.
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


def _none_to_list(value: object) -> object:
    return [] if value is None else value


class ExchangeBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CmdletResponse(ExchangeBaseModel):
    value: list[dict[str, object]] = Field(default_factory=list[dict[str, object]])
    next_link: str | None = Field(default=None, alias="@odata.nextLink")


class ErrorDetail(ExchangeBaseModel):
    code: str | None = None
    message: str = ""


class ErrorResponse(ExchangeBaseModel):
    error: ErrorDetail


class RecipientPayload(ExchangeBaseModel):
    identity: str | None = Field(default=None, alias="Identity")
    guid: str | None = Field(default=None, alias="Guid")
    external_directory_object_id: str | None = Field(
        default=None, alias="ExternalDirectoryObjectId"
    )
    name: str | None = Field(default=None, alias="Name")
    display_name: str | None = Field(default=None, alias="DisplayName")
    alias: str | None = Field(default=None, alias="Alias")
    primary_smtp_address: str | None = Field(default=None, alias="PrimarySmtpAddress")
    user_principal_name: str | None = Field(default=None, alias="UserPrincipalName")
    recipient_type_details: str | None = Field(default=None, alias="RecipientTypeDetails")
    email_addresses: list[str] = Field(default_factory=list[str], alias="EmailAddresses")
    grant_send_on_behalf_to: list[str] = Field(
        default_factory=list[str], alias="GrantSendOnBehalfTo"
    )

    _normalize_lists = field_validator(
        "email_addresses", "grant_send_on_behalf_to", mode="before"
    )(_none_to_list)

    @property
    def object_id(self) -> str:
        return (
            self.external_directory_object_id
            or self.guid
            or self.identity
            or self.primary_smtp_address
            or self.name
            or ""
        )


class MailboxPermissionPayload(ExchangeBaseModel):
    user: str = Field(alias="User")
    access_rights: list[str] = Field(default_factory=list[str], alias="AccessRights")
    is_inherited: bool = Field(default=False, alias="IsInherited")
    deny: bool = Field(default=False, alias="Deny")

    _normalize_rights = field_validator("access_rights", mode="before")(_split_rights)


class RecipientPermissionPayload(ExchangeBaseModel):
    trustee: str = Field(alias="Trustee")
    access_rights: list[str] = Field(default_factory=list[str], alias="AccessRights")
    access_control_type: str = Field(default="Allow", alias="AccessControlType")
    is_inherited: bool = Field(default=False, alias="IsInherited")

    _normalize_rights = field_validator("access_rights", mode="before")(_split_rights)
