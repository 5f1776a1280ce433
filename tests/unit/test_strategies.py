"""
Unit tests for the per-kind reconciliation strategies.

Each strategy is exercised against a mocked admin client: the mapping from
spec to Keycloak representation, create-or-update sync and the terminator.
"""

import logging

import pytest

from keycloak_resource_operator.constants import (
    AUTH_FLOW_FINALIZER,
    CLIENT_SCOPE_FINALIZER,
    KIND_AUTH_FLOW,
    KIND_CLIENT_SCOPE,
    KIND_REALM_COMPONENT,
    KIND_REALM_GROUP,
    REALM_COMPONENT_FINALIZER,
    REALM_GROUP_FINALIZER,
)
from keycloak_resource_operator.errors import RemoteOperationError
from keycloak_resource_operator.models.keycloak_api import (
    ClientScopeRepresentation,
    ComponentRepresentation,
    GroupRepresentation,
)
from keycloak_resource_operator.models.resources import (
    KeycloakAuthFlowSpec,
    KeycloakClientScopeSpec,
    KeycloakComponentSpec,
    KeycloakRealmGroupSpec,
)
from keycloak_resource_operator.services.strategies import (
    AUTH_FLOW,
    CLIENT_SCOPE,
    REALM_COMPONENT,
    REALM_GROUP,
    STRATEGIES,
    auth_flow_to_remote,
    client_scope_to_remote,
    component_to_remote,
    group_to_remote,
    sync_auth_flow,
    sync_client_scope,
    sync_component,
    sync_group,
)
from keycloak_resource_operator.utils.keycloak_admin import (
    KeycloakAdminError,
    KeycloakNotFoundError,
)

from .factories import make_child

LOGGER = logging.getLogger(__name__)


def test_every_kind_has_a_strategy():
    assert STRATEGIES == {
        KIND_REALM_GROUP: REALM_GROUP,
        KIND_CLIENT_SCOPE: CLIENT_SCOPE,
        KIND_AUTH_FLOW: AUTH_FLOW,
        KIND_REALM_COMPONENT: REALM_COMPONENT,
    }


def test_finalizers_are_distinct_per_kind():
    assert [s.finalizer for s in STRATEGIES.values()] == [
        REALM_GROUP_FINALIZER,
        CLIENT_SCOPE_FINALIZER,
        AUTH_FLOW_FINALIZER,
        REALM_COMPONENT_FINALIZER,
    ]
    assert len({s.finalizer for s in STRATEGIES.values()}) == 4


def test_parse_spec_uses_api_field_names():
    resource = make_child(
        spec={
            "name": "scope1",
            "realm": "test",
            "default": True,
            "protocolMappers": [
                {"name": "email", "protocolMapper": "oidc-usermodel-property-mapper"}
            ],
        }
    )

    spec = CLIENT_SCOPE.parse_spec(resource)

    assert isinstance(spec, KeycloakClientScopeSpec)
    assert spec.default is True
    assert spec.protocol_mappers[0].protocol_mapper == "oidc-usermodel-property-mapper"


class TestRealmGroup:
    def test_to_remote(self):
        spec = KeycloakRealmGroupSpec(name="admins", attributes={"team": ["ops"]})

        group = group_to_remote(spec)

        assert group.to_api() == {"name": "admins", "attributes": {"team": ["ops"]}}

    @pytest.mark.asyncio
    async def test_creates_group_and_syncs_memberships(self, keycloak_client):
        spec = KeycloakRealmGroupSpec(
            name="admins", realm_roles=["admin"], sub_groups=["ops"]
        )
        keycloak_client.get_group.side_effect = KeycloakNotFoundError("absent")
        keycloak_client.create_group.return_value = "g1"

        group_id = await sync_group(
            keycloak_client, "ns.test", group_to_remote(spec), spec
        )

        assert group_id == "g1"
        keycloak_client.sync_group_realm_roles.assert_awaited_once_with(
            "ns.test", "g1", ["admin"]
        )
        keycloak_client.sync_sub_groups.assert_awaited_once_with(
            "ns.test", "g1", ["ops"]
        )

    @pytest.mark.asyncio
    async def test_updates_existing_group(self, keycloak_client):
        spec = KeycloakRealmGroupSpec(name="admins")
        keycloak_client.get_group.return_value = GroupRepresentation(
            id="g1", name="admins"
        )

        await sync_group(keycloak_client, "ns.test", group_to_remote(spec), spec)

        realm_name, group_id, group = keycloak_client.update_group.call_args.args
        assert (realm_name, group_id, group.id) == ("ns.test", "g1", "g1")
        keycloak_client.create_group.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_terminator_deletes_by_name(self, keycloak_client):
        spec = KeycloakRealmGroupSpec(name="admins")

        terminator = REALM_GROUP.terminator_for(
            keycloak_client, "ns.test", spec, LOGGER
        )
        await terminator.delete_remote_resource()

        keycloak_client.delete_group.assert_awaited_once_with("ns.test", "admins")
        assert terminator.get_logger() is LOGGER


class TestClientScope:
    def test_to_remote_maps_protocol_mappers(self):
        spec = KeycloakClientScopeSpec.model_validate(
            {
                "name": "scope1",
                "protocolMappers": [
                    {
                        "name": "email",
                        "protocolMapper": "oidc-usermodel-property-mapper",
                        "config": {"claim.name": "email"},
                    }
                ],
            }
        )

        scope = client_scope_to_remote(spec)

        assert scope.to_api()["protocolMappers"] == [
            {
                "name": "email",
                "protocol": "openid-connect",
                "protocolMapper": "oidc-usermodel-property-mapper",
                "config": {"claim.name": "email"},
            }
        ]

    @pytest.mark.asyncio
    async def test_default_scope_is_registered(self, keycloak_client):
        spec = KeycloakClientScopeSpec(name="scope1", default=True)
        keycloak_client.get_client_scope.return_value = ClientScopeRepresentation(
            id="scope12", name="scope1"
        )

        scope_id = await sync_client_scope(
            keycloak_client, "ns.test", client_scope_to_remote(spec), spec
        )

        assert scope_id == "scope12"
        keycloak_client.set_default_client_scope.assert_awaited_once_with(
            "ns.test", "scope12"
        )

    @pytest.mark.asyncio
    async def test_non_default_scope_is_not_registered(self, keycloak_client):
        spec = KeycloakClientScopeSpec(name="scope1")
        keycloak_client.get_client_scope.side_effect = KeycloakNotFoundError("absent")
        keycloak_client.create_client_scope.return_value = "scope12"

        await sync_client_scope(
            keycloak_client, "ns.test", client_scope_to_remote(spec), spec
        )

        keycloak_client.set_default_client_scope.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_terminator_looks_up_scope_id(self, keycloak_client):
        spec = KeycloakClientScopeSpec(name="scope1")
        keycloak_client.get_client_scope.return_value = ClientScopeRepresentation(
            id="scope12", name="scope1"
        )

        terminator = CLIENT_SCOPE.terminator_for(
            keycloak_client, "ns.test", spec, LOGGER
        )
        await terminator.delete_remote_resource()

        keycloak_client.get_client_scope.assert_awaited_once_with("scope1", "ns.test")
        keycloak_client.delete_client_scope.assert_awaited_once_with(
            "ns.test", "scope12"
        )

    @pytest.mark.asyncio
    async def test_terminator_tolerates_missing_scope(self, keycloak_client):
        spec = KeycloakClientScopeSpec(name="scope1")
        keycloak_client.get_client_scope.side_effect = KeycloakNotFoundError("gone")

        terminator = CLIENT_SCOPE.terminator_for(
            keycloak_client, "ns.test", spec, LOGGER
        )
        await terminator.delete_remote_resource()

        keycloak_client.delete_client_scope.assert_not_awaited()


class TestAuthFlow:
    @pytest.fixture
    def spec(self) -> KeycloakAuthFlowSpec:
        return KeycloakAuthFlowSpec.model_validate(
            {
                "alias": "browser-otp",
                "authenticationExecutions": [
                    {
                        "authenticator": "auth-otp-form",
                        "priority": 1,
                        "requirement": "REQUIRED",
                        "authenticatorConfig": {
                            "alias": "otp-config",
                            "config": {"otpType": "totp"},
                        },
                    },
                    {"authenticator": "auth-cookie", "priority": 0},
                ],
            }
        )

    def test_to_remote(self, spec):
        flow = auth_flow_to_remote(spec)

        assert flow.alias == "browser-otp"
        assert flow.provider_id == "basic-flow"
        assert [e.authenticator for e in flow.authentication_executions] == [
            "auth-otp-form",
            "auth-cookie",
        ]

    @pytest.mark.asyncio
    async def test_sync_pairs_executions_with_config(self, spec, keycloak_client):
        keycloak_client.sync_auth_flow.return_value = "flow-1"

        flow_id = await sync_auth_flow(
            keycloak_client, "ns.test", auth_flow_to_remote(spec), spec
        )

        assert flow_id == "flow-1"
        realm_name, _, executions = keycloak_client.sync_auth_flow.call_args.args
        assert realm_name == "ns.test"
        (otp, otp_config), (cookie, cookie_config) = executions
        assert otp.authenticator == "auth-otp-form"
        assert otp.authenticator_config is None
        assert otp_config.alias == "otp-config"
        assert otp_config.config == {"otpType": "totp"}
        assert cookie.authenticator == "auth-cookie"
        assert cookie_config is None

    @pytest.mark.asyncio
    async def test_terminator_deletes_by_alias(self, spec, keycloak_client):
        terminator = AUTH_FLOW.terminator_for(keycloak_client, "ns.test", spec, LOGGER)

        await terminator.delete_remote_resource()

        keycloak_client.delete_auth_flow.assert_awaited_once_with(
            "ns.test", "browser-otp"
        )


class TestRealmComponent:
    @pytest.fixture
    def spec(self) -> KeycloakComponentSpec:
        return KeycloakComponentSpec.model_validate(
            {
                "name": "ldap",
                "providerId": "ldap",
                "providerType": "org.keycloak.storage.UserStorageProvider",
                "config": {"enabled": ["true"]},
            }
        )

    @pytest.mark.asyncio
    async def test_update_keeps_remote_id_and_parent(self, spec, keycloak_client):
        keycloak_client.get_component.return_value = ComponentRepresentation(
            id="c1", name="ldap", parent_id="realm-id"
        )

        component_id = await sync_component(
            keycloak_client, "ns.test", component_to_remote(spec), spec
        )

        assert component_id == "c1"
        realm_name, component = keycloak_client.update_component.call_args.args
        assert realm_name == "ns.test"
        assert (component.id, component.parent_id) == ("c1", "realm-id")
        assert component.config == {"enabled": ["true"]}

    @pytest.mark.asyncio
    async def test_unexpected_lookup_error(self, spec, keycloak_client):
        keycloak_client.get_component.side_effect = KeycloakAdminError(
            "GET realms/ns.test/components failed with HTTP 500", status_code=500
        )

        with pytest.raises(RemoteOperationError) as exc_info:
            await sync_component(
                keycloak_client, "ns.test", component_to_remote(spec), spec
            )

        assert str(exc_info.value).startswith(
            "unable to get component, unexpected error: "
        )
        assert exc_info.value.status_code == 500
        keycloak_client.create_component.assert_not_awaited()
        keycloak_client.update_component.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_terminator_deletes_by_name(self, spec, keycloak_client):
        terminator = REALM_COMPONENT.terminator_for(
            keycloak_client, "ns.test", spec, LOGGER
        )

        await terminator.delete_remote_resource()

        keycloak_client.delete_component.assert_awaited_once_with("ns.test", "ldap")
