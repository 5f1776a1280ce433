"""
Pydantic models for realm child resources.

Every child resource belongs to exactly one KeycloakRealm, named either by an
owner reference or by ``spec.realm``. The envelope (``ChildResource``) is
shared; the spec models below describe each kind's desired remote object.
"""

from typing import Any

from pydantic import BaseModel, Field

from .common import ChildStatus, ObjectMeta


class ChildResource(BaseModel):
    """
    Envelope of a realm child custom resource.

    The spec is kept as the raw mapping so that the reconciliation engine
    stays kind-agnostic; strategies parse it into their typed spec model.
    """

    model_config = {"populate_by_name": True}

    api_version: str = Field("", alias="apiVersion")
    kind: str = Field("", description="Resource kind")
    metadata: ObjectMeta
    spec: dict[str, Any] = Field(default_factory=dict)
    status: ChildStatus = Field(default_factory=ChildStatus)

    @classmethod
    def from_k8s(cls, body: dict[str, Any]) -> "ChildResource":
        if body.get("status") is None:
            body = {**body, "status": {}}
        return cls.model_validate(body)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def realm(self) -> str | None:
        """Fallback realm resource name from the spec."""
        return self.spec.get("realm") or None


class KeycloakRealmGroupSpec(BaseModel):
    """Desired state of a realm group."""

    model_config = {"populate_by_name": True}

    name: str = Field(..., description="Group name")
    realm: str | None = Field(None, description="KeycloakRealm resource name")
    path: str | None = Field(None, description="Group path")
    attributes: dict[str, list[str]] = Field(default_factory=dict)
    access: dict[str, bool] = Field(default_factory=dict)
    realm_roles: list[str] = Field(default_factory=list, alias="realmRoles")
    sub_groups: list[str] = Field(default_factory=list, alias="subGroups")


class ProtocolMapper(BaseModel):
    """Protocol mapper attached to a client scope."""

    model_config = {"populate_by_name": True}

    name: str = Field(..., description="Mapper name")
    protocol: str = Field("openid-connect", description="Protocol type")
    protocol_mapper: str = Field("", alias="protocolMapper", description="Mapper type")
    config: dict[str, str] = Field(default_factory=dict)


class KeycloakClientScopeSpec(BaseModel):
    """Desired state of a realm client scope."""

    model_config = {"populate_by_name": True}

    name: str = Field(..., description="Client scope name")
    realm: str | None = Field(None, description="KeycloakRealm resource name")
    description: str | None = Field(None)
    protocol: str = Field("openid-connect")
    attributes: dict[str, str] = Field(default_factory=dict)
    default: bool = Field(False, description="Whether the scope is a realm default")
    protocol_mappers: list[ProtocolMapper] = Field(
        default_factory=list, alias="protocolMappers"
    )


class AuthenticatorConfig(BaseModel):
    """Configuration bound to an authentication execution."""

    alias: str = Field(..., description="Config alias")
    config: dict[str, str] = Field(default_factory=dict)


class AuthenticationExecution(BaseModel):
    """One step of an authentication flow."""

    model_config = {"populate_by_name": True}

    authenticator: str = Field("", description="Authenticator provider id")
    authenticator_config: AuthenticatorConfig | None = Field(
        None, alias="authenticatorConfig"
    )
    authenticator_flow: bool = Field(False, alias="authenticatorFlow")
    priority: int = Field(0, description="Execution order within the flow")
    requirement: str = Field("REQUIRED", description="REQUIRED, ALTERNATIVE, ...")


class KeycloakAuthFlowSpec(BaseModel):
    """Desired state of an authentication flow."""

    model_config = {"populate_by_name": True}

    realm: str | None = Field(None, description="KeycloakRealm resource name")
    alias: str = Field(..., description="Flow alias")
    description: str = Field("")
    provider_id: str = Field("basic-flow", alias="providerId")
    top_level: bool = Field(True, alias="topLevel")
    built_in: bool = Field(False, alias="builtIn")
    authentication_executions: list[AuthenticationExecution] = Field(
        default_factory=list, alias="authenticationExecutions"
    )


class KeycloakComponentSpec(BaseModel):
    """Desired state of a realm component."""

    model_config = {"populate_by_name": True}

    name: str = Field(..., description="Component name")
    realm: str | None = Field(None, description="KeycloakRealm resource name")
    provider_id: str = Field(..., alias="providerId")
    provider_type: str = Field(..., alias="providerType")
    config: dict[str, list[str]] = Field(default_factory=dict)
