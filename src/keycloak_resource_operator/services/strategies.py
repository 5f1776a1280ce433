"""
Per-kind reconciliation strategies for realm child resources.

Each child kind is described by one ``ResourceStrategy`` value: how its spec
maps to a Keycloak representation, how that representation is synced, and how
the remote object is deleted. The reconciliation engine itself is shared.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import partial
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from keycloak_resource_operator.constants import (
    AUTH_FLOW_FINALIZER,
    CLIENT_SCOPE_FINALIZER,
    KIND_AUTH_FLOW,
    KIND_CLIENT_SCOPE,
    KIND_REALM_COMPONENT,
    KIND_REALM_GROUP,
    PLURAL_AUTH_FLOW,
    PLURAL_CLIENT_SCOPE,
    PLURAL_REALM_COMPONENT,
    PLURAL_REALM_GROUP,
    REALM_COMPONENT_FINALIZER,
    REALM_GROUP_FINALIZER,
)
from keycloak_resource_operator.errors import RemoteOperationError
from keycloak_resource_operator.models.keycloak_api import (
    AuthenticationExecutionRepresentation,
    AuthenticationFlowRepresentation,
    AuthenticatorConfigRepresentation,
    ClientScopeRepresentation,
    ComponentRepresentation,
    GroupRepresentation,
    ProtocolMapperRepresentation,
)
from keycloak_resource_operator.models.resources import (
    ChildResource,
    KeycloakAuthFlowSpec,
    KeycloakClientScopeSpec,
    KeycloakComponentSpec,
    KeycloakRealmGroupSpec,
)
from keycloak_resource_operator.utils.keycloak_admin import (
    ExecutionWithConfig,
    KeycloakAdminClient,
    KeycloakAdminError,
    KeycloakNotFoundError,
)

from .terminator import RemoteResourceTerminator, Terminator

S = TypeVar("S", bound=BaseModel)
R = TypeVar("R")


@dataclass(frozen=True)
class ResourceStrategy(Generic[S, R]):
    """
    Everything the shared engine needs to know about one child kind.

    Attributes:
        kind: Custom resource kind
        plural: Custom resource plural
        finalizer: Finalizer token guarding remote deletion
        description: Human-readable kind name used in messages
        spec_model: Model the raw spec is parsed into
        to_remote: Maps the spec to the desired Keycloak representation
        sync: Creates or updates the remote object; returns its id when known
        terminator_for: Builds the terminator deleting the remote object
    """

    kind: str
    plural: str
    finalizer: str
    description: str
    spec_model: type[S]
    to_remote: Callable[[S], R]
    sync: Callable[[KeycloakAdminClient, str, R, S], Awaitable[str | None]]
    terminator_for: Callable[[KeycloakAdminClient, str, S, logging.Logger], Terminator]

    def parse_spec(self, resource: ChildResource) -> S:
        return self.spec_model.model_validate(resource.spec)


# Realm groups


def group_to_remote(spec: KeycloakRealmGroupSpec) -> GroupRepresentation:
    return GroupRepresentation(
        name=spec.name,
        path=spec.path,
        attributes=spec.attributes or None,
        access=spec.access or None,
    )


async def sync_group(
    client: KeycloakAdminClient,
    realm_name: str,
    desired: GroupRepresentation,
    spec: KeycloakRealmGroupSpec,
) -> str | None:
    try:
        existing = await client.get_group(realm_name, desired.name)
    except KeycloakNotFoundError:
        group_id = await client.create_group(realm_name, desired)
    else:
        group_id = existing.id or ""
        await client.update_group(
            realm_name, group_id, desired.model_copy(update={"id": group_id})
        )

    await client.sync_group_realm_roles(realm_name, group_id, spec.realm_roles)
    await client.sync_sub_groups(realm_name, group_id, spec.sub_groups)
    return group_id


def group_terminator(
    client: KeycloakAdminClient,
    realm_name: str,
    spec: KeycloakRealmGroupSpec,
    logger: logging.Logger,
) -> Terminator:
    return RemoteResourceTerminator(
        f"realm group {spec.name} in realm {realm_name}",
        partial(client.delete_group, realm_name, spec.name),
        logger,
    )


# Client scopes


def client_scope_to_remote(spec: KeycloakClientScopeSpec) -> ClientScopeRepresentation:
    return ClientScopeRepresentation(
        name=spec.name,
        description=spec.description,
        protocol=spec.protocol,
        attributes=spec.attributes or None,
        protocol_mappers=[
            ProtocolMapperRepresentation(
                name=mapper.name,
                protocol=mapper.protocol,
                protocol_mapper=mapper.protocol_mapper,
                config=mapper.config or None,
            )
            for mapper in spec.protocol_mappers
        ]
        or None,
    )


async def sync_client_scope(
    client: KeycloakAdminClient,
    realm_name: str,
    desired: ClientScopeRepresentation,
    spec: KeycloakClientScopeSpec,
) -> str | None:
    try:
        existing = await client.get_client_scope(desired.name, realm_name)
    except KeycloakNotFoundError:
        scope_id = await client.create_client_scope(realm_name, desired)
    else:
        scope_id = existing.id or ""
        await client.update_client_scope(realm_name, scope_id, desired)

    if spec.default:
        await client.set_default_client_scope(realm_name, scope_id)
    return scope_id


async def delete_client_scope_by_name(
    client: KeycloakAdminClient, realm_name: str, scope_name: str
) -> None:
    """Look the scope up by name so that deletion does not depend on status."""
    scope = await client.get_client_scope(scope_name, realm_name)
    await client.delete_client_scope(realm_name, scope.id or "")


def client_scope_terminator(
    client: KeycloakAdminClient,
    realm_name: str,
    spec: KeycloakClientScopeSpec,
    logger: logging.Logger,
) -> Terminator:
    return RemoteResourceTerminator(
        f"client scope {spec.name} in realm {realm_name}",
        partial(delete_client_scope_by_name, client, realm_name, spec.name),
        logger,
    )


# Authentication flows


def auth_flow_to_remote(spec: KeycloakAuthFlowSpec) -> AuthenticationFlowRepresentation:
    return AuthenticationFlowRepresentation(
        alias=spec.alias,
        description=spec.description,
        provider_id=spec.provider_id,
        top_level=spec.top_level,
        built_in=spec.built_in,
        authentication_executions=[
            AuthenticationExecutionRepresentation(
                authenticator=execution.authenticator,
                authenticator_config=(
                    execution.authenticator_config.alias
                    if execution.authenticator_config
                    else None
                ),
                authenticator_flow=execution.authenticator_flow,
                priority=execution.priority,
                requirement=execution.requirement,
            )
            for execution in spec.authentication_executions
        ],
    )


async def sync_auth_flow(
    client: KeycloakAdminClient,
    realm_name: str,
    desired: AuthenticationFlowRepresentation,
    spec: KeycloakAuthFlowSpec,
) -> str | None:
    executions: list[ExecutionWithConfig] = []
    for execution, source in zip(
        desired.authentication_executions or [], spec.authentication_executions
    ):
        config = None
        if source.authenticator_config is not None:
            config = AuthenticatorConfigRepresentation(
                alias=source.authenticator_config.alias,
                config=source.authenticator_config.config,
            )
        executions.append(
            (execution.model_copy(update={"authenticator_config": None}), config)
        )

    return await client.sync_auth_flow(realm_name, desired, executions)


def auth_flow_terminator(
    client: KeycloakAdminClient,
    realm_name: str,
    spec: KeycloakAuthFlowSpec,
    logger: logging.Logger,
) -> Terminator:
    return RemoteResourceTerminator(
        f"auth flow {spec.alias} in realm {realm_name}",
        partial(client.delete_auth_flow, realm_name, spec.alias),
        logger,
    )


# Realm components


def component_to_remote(spec: KeycloakComponentSpec) -> ComponentRepresentation:
    return ComponentRepresentation(
        name=spec.name,
        provider_id=spec.provider_id,
        provider_type=spec.provider_type,
        config=spec.config,
    )


async def sync_component(
    client: KeycloakAdminClient,
    realm_name: str,
    desired: ComponentRepresentation,
    spec: KeycloakComponentSpec,
) -> str | None:
    try:
        existing = await client.get_component(realm_name, desired.name)
    except KeycloakNotFoundError:
        return await client.create_component(realm_name, desired)
    except KeycloakAdminError as e:
        raise RemoteOperationError(
            f"unable to get component, unexpected error: {e}",
            status_code=e.status_code,
            cause=e,
        ) from e

    updated = desired.model_copy(
        update={"id": existing.id, "parent_id": existing.parent_id}
    )
    await client.update_component(realm_name, updated)
    return existing.id


def component_terminator(
    client: KeycloakAdminClient,
    realm_name: str,
    spec: KeycloakComponentSpec,
    logger: logging.Logger,
) -> Terminator:
    return RemoteResourceTerminator(
        f"realm component {spec.name} in realm {realm_name}",
        partial(client.delete_component, realm_name, spec.name),
        logger,
    )


REALM_GROUP = ResourceStrategy(
    kind=KIND_REALM_GROUP,
    plural=PLURAL_REALM_GROUP,
    finalizer=REALM_GROUP_FINALIZER,
    description="realm group",
    spec_model=KeycloakRealmGroupSpec,
    to_remote=group_to_remote,
    sync=sync_group,
    terminator_for=group_terminator,
)

CLIENT_SCOPE = ResourceStrategy(
    kind=KIND_CLIENT_SCOPE,
    plural=PLURAL_CLIENT_SCOPE,
    finalizer=CLIENT_SCOPE_FINALIZER,
    description="client scope",
    spec_model=KeycloakClientScopeSpec,
    to_remote=client_scope_to_remote,
    sync=sync_client_scope,
    terminator_for=client_scope_terminator,
)

AUTH_FLOW = ResourceStrategy(
    kind=KIND_AUTH_FLOW,
    plural=PLURAL_AUTH_FLOW,
    finalizer=AUTH_FLOW_FINALIZER,
    description="auth flow",
    spec_model=KeycloakAuthFlowSpec,
    to_remote=auth_flow_to_remote,
    sync=sync_auth_flow,
    terminator_for=auth_flow_terminator,
)

REALM_COMPONENT = ResourceStrategy(
    kind=KIND_REALM_COMPONENT,
    plural=PLURAL_REALM_COMPONENT,
    finalizer=REALM_COMPONENT_FINALIZER,
    description="realm component",
    spec_model=KeycloakComponentSpec,
    to_remote=component_to_remote,
    sync=sync_component,
    terminator_for=component_terminator,
)

STRATEGIES: dict[str, ResourceStrategy[Any, Any]] = {
    strategy.kind: strategy
    for strategy in (REALM_GROUP, CLIENT_SCOPE, AUTH_FLOW, REALM_COMPONENT)
}
