"""
Unit tests for ReconcileHelper client creation.

The helper runs for real against the store double: the realm is resolved to
its Keycloak, the Keycloak is handed to a provisioner whose handshake fails.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from keycloak_resource_operator.constants import (
    KIND_KEYCLOAK,
    KIND_REALM,
    PLURAL_KEYCLOAK,
    PLURAL_REALM,
)
from keycloak_resource_operator.errors import (
    AuthenticationError,
    NotFoundError,
    ReconciliationError,
)
from keycloak_resource_operator.services.child_reconciler import (
    ChildResourceReconciler,
)
from keycloak_resource_operator.services.client_provisioner import ClientProvisioner
from keycloak_resource_operator.services.helper import ReconcileHelper
from keycloak_resource_operator.services.strategies import CLIENT_SCOPE
from keycloak_resource_operator.utils.keycloak_admin import (
    KeycloakAuthenticationError,
)

from .factories import keycloak_body, make_child, make_realm, realm_body

CREDENTIALS = {"username": "admin", "password": "s3cr3t-password"}


@pytest.fixture
def failing_client_factory():
    factory = MagicMock()
    factory.return_value.authenticate = AsyncMock(
        side_effect=KeycloakAuthenticationError(
            "authentication failed with HTTP 401", status_code=401
        )
    )
    return factory


@pytest.fixture
def helper(store, failing_client_factory):
    store.read_secret.side_effect = lambda name, namespace: (
        CREDENTIALS if name == "keycloak-admin" else None
    )
    provisioner = ClientProvisioner(store, client_factory=failing_client_factory)
    return ReconcileHelper(store, provisioner=provisioner)


def parents(store) -> None:
    """Serve the realm and its Keycloak from the store double."""
    bodies = {KIND_REALM: realm_body(), KIND_KEYCLOAK: keycloak_body()}
    store.get_custom_object.side_effect = (
        lambda kind, plural, name, namespace: bodies[kind]
    )


class TestCreateKeycloakClientForRealm:
    @pytest.mark.asyncio
    async def test_handshake_failure(self, helper, store, failing_client_factory):
        parents(store)

        with pytest.raises(AuthenticationError) as exc_info:
            await helper.create_keycloak_client_for_realm(make_realm())

        assert str(exc_info.value).startswith("could not get token")
        store.get_custom_object.assert_awaited_once_with(
            KIND_KEYCLOAK, PLURAL_KEYCLOAK, "keycloak", "ns"
        )
        failing_client_factory.assert_called_once()
        assert failing_client_factory.call_args.args == (
            "https://keycloak.example.com",
            "admin",
            CREDENTIALS["password"],
        )

    @pytest.mark.asyncio
    async def test_missing_keycloak(self, helper, store, failing_client_factory):
        store.get_custom_object.side_effect = NotFoundError(
            KIND_KEYCLOAK, "keycloak", "ns"
        )

        with pytest.raises(ReconciliationError) as exc_info:
            await helper.create_keycloak_client_for_realm(make_realm())

        assert str(exc_info.value).startswith("unable to get keycloak owner ref: ")
        assert isinstance(exc_info.value.__cause__, NotFoundError)
        store.read_secret.assert_not_awaited()
        failing_client_factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_realm_without_keycloak_owner(self, helper, store):
        with pytest.raises(ReconciliationError) as exc_info:
            await helper.create_keycloak_client_for_realm(
                make_realm(keycloak_owner=None)
            )

        assert "unable to get keycloak owner ref" in str(exc_info.value)
        store.get_custom_object.assert_not_awaited()


@pytest.mark.asyncio
async def test_reconcile_reports_handshake_failure(helper, store):
    parents(store)
    resource = make_child()

    result = await ChildResourceReconciler(CLIENT_SCOPE, helper).reconcile(resource)

    assert resource.status.value.startswith(
        "unable to create keycloak client: could not get token: "
    )
    assert resource.status.failure_count == 1
    assert result.error is not None
    assert [call.args[:2] for call in store.get_custom_object.await_args_list] == [
        (KIND_REALM, PLURAL_REALM),
        (KIND_KEYCLOAK, PLURAL_KEYCLOAK),
    ]
    store.patch_finalizers.assert_not_awaited()
