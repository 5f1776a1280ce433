"""
Facade over the shared reconciliation services.

Reconcilers of every child kind use this single entry point for ownership,
client provisioning, finalizer handling, failure counting and status writes.
"""

from keycloak_resource_operator.errors import ReconciliationError
from keycloak_resource_operator.models.keycloak import Keycloak, KeycloakRealm
from keycloak_resource_operator.models.resources import ChildResource
from keycloak_resource_operator.utils.keycloak_admin import KeycloakAdminClient
from keycloak_resource_operator.utils.kubernetes import ResourceStore

from .backoff import FailureTracker
from .client_provisioner import ClientProvisioner
from .ownership import keycloak_owner_resolver, realm_owner_resolver
from .status import StatusSynchronizer
from .terminator import Terminator, try_to_delete


class ReconcileHelper:
    """Shared services bound to one resource store."""

    def __init__(
        self,
        store: ResourceStore,
        failure_tracker: FailureTracker | None = None,
        provisioner: ClientProvisioner | None = None,
    ):
        self.store = store
        self.failure_tracker = failure_tracker or FailureTracker()
        self.provisioner = provisioner or ClientProvisioner(store)
        self.status_synchronizer = StatusSynchronizer(store)
        self._realm_owner = realm_owner_resolver(store)
        self._keycloak_owner = keycloak_owner_resolver(store)

    def set_failure_count(self, resource: ChildResource) -> float:
        """Increment the failure counter; returns the requeue delay."""
        return self.failure_tracker.record_failure(resource)

    def set_success_status(self, resource: ChildResource) -> None:
        self.failure_tracker.record_success(resource)

    async def update_status(self, resource: ChildResource) -> None:
        await self.status_synchronizer.update_status(resource)

    async def try_to_delete(
        self, resource: ChildResource, terminator: Terminator, finalizer: str
    ) -> bool:
        return await try_to_delete(self.store, resource, terminator, finalizer)

    async def get_or_create_realm_owner_ref(
        self, resource: ChildResource
    ) -> KeycloakRealm:
        """Read the realm owning ``resource``; never creates one."""
        return await self._realm_owner.resolve(resource)

    async def get_or_create_keycloak_owner_ref(self, realm: KeycloakRealm) -> Keycloak:
        """Read the Keycloak owning ``realm``; never creates one."""
        return await self._keycloak_owner.resolve(realm)

    async def create_keycloak_client_for_realm(
        self, realm: KeycloakRealm
    ) -> KeycloakAdminClient:
        """Build an authenticated client for the Keycloak behind ``realm``."""
        try:
            keycloak = await self.get_or_create_keycloak_owner_ref(realm)
        except Exception as e:
            raise ReconciliationError(
                f"unable to get keycloak owner ref: {e}", cause=e
            ) from e

        return await self.provisioner.provision(keycloak)
