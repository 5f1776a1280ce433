"""
Keycloak Admin REST API representations.

Field names follow the API's camelCase through aliases. Unknown fields
returned by Keycloak are ignored so that newer server versions keep working.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class KeycloakModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_api(self) -> dict[str, Any]:
        """Request body for the Admin API."""
        return self.model_dump(by_alias=True, exclude_none=True)


class GroupRepresentation(KeycloakModel):
    id: str | None = None
    name: str
    path: str | None = None
    attributes: dict[str, list[str]] | None = None
    access: dict[str, bool] | None = None
    realm_roles: list[str] | None = Field(None, alias="realmRoles")
    sub_groups: list["GroupRepresentation"] | None = Field(None, alias="subGroups")


class ProtocolMapperRepresentation(KeycloakModel):
    id: str | None = None
    name: str
    protocol: str | None = None
    protocol_mapper: str | None = Field(None, alias="protocolMapper")
    config: dict[str, str] | None = None


class ClientScopeRepresentation(KeycloakModel):
    id: str | None = None
    name: str
    description: str | None = None
    protocol: str | None = None
    attributes: dict[str, str] | None = None
    protocol_mappers: list[ProtocolMapperRepresentation] | None = Field(
        None, alias="protocolMappers"
    )


class AuthenticatorConfigRepresentation(KeycloakModel):
    id: str | None = None
    alias: str
    config: dict[str, str] | None = None


class AuthenticationExecutionRepresentation(KeycloakModel):
    """Execution of a flow, as listed by Keycloak or sent to create one."""

    id: str | None = None
    parent_flow: str | None = Field(None, alias="parentFlow")
    authenticator: str | None = None
    authenticator_config: str | None = Field(None, alias="authenticatorConfig")
    authenticator_flow: bool = Field(False, alias="authenticatorFlow")
    flow_alias: str | None = Field(None, alias="flowAlias")
    priority: int = 0
    requirement: str | None = None


class AuthenticationFlowRepresentation(KeycloakModel):
    id: str | None = None
    alias: str
    description: str | None = None
    provider_id: str | None = Field(None, alias="providerId")
    top_level: bool = Field(True, alias="topLevel")
    built_in: bool = Field(False, alias="builtIn")
    authentication_executions: list[AuthenticationExecutionRepresentation] | None = (
        Field(None, alias="authenticationExecutions")
    )


class ComponentRepresentation(KeycloakModel):
    id: str | None = None
    name: str
    provider_id: str | None = Field(None, alias="providerId")
    provider_type: str | None = Field(None, alias="providerType")
    parent_id: str | None = Field(None, alias="parentId")
    config: dict[str, list[str]] | None = None


class AccessToken(KeycloakModel):
    """Token obtained from the handshake, as persisted in the token cache."""

    access_token: str
    expires_at: float = Field(..., description="Unix timestamp of expiry")

    def is_valid(self, now: float, leeway: float = 0) -> bool:
        """Whether the token stays usable for at least ``leeway`` seconds."""
        return now < self.expires_at - leeway
