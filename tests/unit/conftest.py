"""Shared pytest fixtures for the reconciliation core tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from keycloak_resource_operator.utils.keycloak_admin import KeycloakAdminClient
from keycloak_resource_operator.utils.kubernetes import ResourceStore


@pytest.fixture
def store():
    """ResourceStore double whose finalizer writes update the local copy."""
    mock_store = MagicMock(spec=ResourceStore)

    async def patch_finalizers(resource, finalizers):
        resource.metadata.finalizers = list(finalizers)

    mock_store.patch_finalizers = AsyncMock(side_effect=patch_finalizers)
    mock_store.patch_status = AsyncMock()
    mock_store.get_custom_object = AsyncMock()
    mock_store.read_secret = AsyncMock(return_value=None)
    mock_store.write_secret = AsyncMock()
    return mock_store


@pytest.fixture
def keycloak_client():
    """KeycloakAdminClient double with every API method mocked."""
    return MagicMock(spec=KeycloakAdminClient)
