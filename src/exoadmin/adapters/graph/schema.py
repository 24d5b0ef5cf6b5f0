"""Pydantic models describing Microsoft Graph payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _none_to_list(value: object) -> object:
    return [] if value is None else value


class GraphBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CollectionResponse(GraphBaseModel):
    value: list[dict[str, object]] = Field(default_factory=list[dict[str, object]])
    next_link: str | None = Field(default=None, alias="@odata.nextLink")


class ErrorDetail(GraphBaseModel):
    code: str | None = None
    message: str = ""


class ErrorResponse(GraphBaseModel):
    error: ErrorDetail


class DirectoryObjectPayload(GraphBaseModel):
    id: str
    odata_type: str | None = Field(default=None, alias="@odata.type")
    display_name: str | None = Field(default=None, alias="displayName")
    mail: str | None = None
    mail_nickname: str | None = Field(default=None, alias="mailNickname")
    user_principal_name: str | None = Field(default=None, alias="userPrincipalName")
    proxy_addresses: list[str] = Field(default_factory=list[str], alias="proxyAddresses")
    security_enabled: bool | None = Field(default=None, alias="securityEnabled")
    mail_enabled: bool | None = Field(default=None, alias="mailEnabled")
    group_types: list[str] = Field(default_factory=list[str], alias="groupTypes")

    _normalize_lists = field_validator("proxy_addresses", "group_types", mode="before")(
        _none_to_list
    )

    @property
    def object_type(self) -> str | None:
        if self.odata_type is None:
            return None
        return self.odata_type.removeprefix("#microsoft.graph.")
