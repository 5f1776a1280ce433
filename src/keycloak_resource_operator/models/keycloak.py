"""
Pydantic models for the parent resources: Keycloak and KeycloakRealm.

A Keycloak resource describes a connection to a Keycloak server. A
KeycloakRealm belongs to one Keycloak resource and scopes every realm child.
Both are read-only to this operator.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

from keycloak_resource_operator.constants import (
    ADMIN_TYPE_SERVICE_ACCOUNT,
    ADMIN_TYPE_USER,
)

from .common import ObjectMeta


class KeycloakSpec(BaseModel):
    """Connection settings of a Keycloak server."""

    model_config = {"populate_by_name": True}

    url: str = Field(..., description="Root address of the Keycloak server")
    secret: str = Field(
        ..., description="Name of the secret holding username and password"
    )
    admin_type: Literal["user", "serviceAccount"] = Field(
        ADMIN_TYPE_USER,
        alias="adminType",
        description=f"'{ADMIN_TYPE_USER}' or '{ADMIN_TYPE_SERVICE_ACCOUNT}'",
    )
    realm: str = Field("master", description="Realm used for authentication")


class KeycloakStatus(BaseModel):
    """Connectivity state reported for a Keycloak server."""

    connected: bool = Field(False, description="Whether the server is reachable")


class Keycloak(BaseModel):
    """Keycloak custom resource."""

    model_config = {"populate_by_name": True}

    metadata: ObjectMeta
    spec: KeycloakSpec
    status: KeycloakStatus = Field(default_factory=KeycloakStatus)

    @classmethod
    def from_k8s(cls, body: dict[str, Any]) -> "Keycloak":
        return cls.model_validate(_with_status(body))


class KeycloakRealmSpec(BaseModel):
    """Realm identity and owner fallback."""

    model_config = {"populate_by_name": True}

    realm_name: str = Field(..., alias="realmName", description="Name of the realm")
    keycloak_owner: str | None = Field(
        None,
        alias="keycloakOwner",
        description="Keycloak resource name used when no owner reference is set",
    )


class KeycloakRealm(BaseModel):
    """KeycloakRealm custom resource."""

    model_config = {"populate_by_name": True}

    metadata: ObjectMeta
    spec: KeycloakRealmSpec

    @classmethod
    def from_k8s(cls, body: dict[str, Any]) -> "KeycloakRealm":
        return cls.model_validate(body)


def _with_status(body: dict[str, Any]) -> dict[str, Any]:
    # Objects fresh from the API server may carry "status": null
    if body.get("status") is None:
        return {**body, "status": {}}
    return body
