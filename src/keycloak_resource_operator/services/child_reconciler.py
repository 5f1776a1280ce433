"""
Reconciliation engine shared by all realm child resources.

One reconciliation reads the realm owning the resource, builds an
authenticated Keycloak client for it and drives the finalizer protocol. An
Active resource then has its remote object synced through the kind's
strategy; a Terminating one has it deleted instead. The outcome is
recorded on the status: ``OK`` and a zero failure counter on success, the
error message and an incremented counter on failure.
"""

import logging
import time
from dataclasses import dataclass

from keycloak_resource_operator.errors import (
    ConflictError,
    NotFoundError,
    ReconciliationError,
    RemoteOperationError,
    find_cause,
)
from keycloak_resource_operator.models.resources import ChildResource
from keycloak_resource_operator.observability.logging import OperatorLogger
from keycloak_resource_operator.observability.metrics import metrics_collector
from keycloak_resource_operator.settings import settings
from keycloak_resource_operator.utils.keycloak_admin import KeycloakAdminError

from .helper import ReconcileHelper
from .strategies import ResourceStrategy


def is_conflict(error: BaseException | None) -> bool:
    """Whether a reconciliation error originates from a write conflict."""
    return find_cause(error, ConflictError) is not None


@dataclass
class ReconcileResult:
    """
    Outcome of one reconciliation.

    Attributes:
        requeue_after: Seconds until the next attempt, None when the resource
            is gone and needs no further attempt
        error: The failure of this attempt, if any
        deleted: Whether the remote object was deleted and the finalizer
            released
    """

    requeue_after: float | None
    error: Exception | None = None
    deleted: bool = False


class ChildResourceReconciler:
    """Reconciles one kind of realm child resource."""

    def __init__(self, strategy: ResourceStrategy, helper: ReconcileHelper):
        self.strategy = strategy
        self.helper = helper
        self.logger = OperatorLogger(f"{__name__}.{strategy.kind}")

    async def reconcile_by_name(
        self, name: str, namespace: str
    ) -> ReconcileResult | None:
        """
        Read the resource and reconcile it.

        Returns:
            The result, or None when the resource no longer exists
        """
        try:
            body = await self.helper.store.get_custom_object(
                self.strategy.kind, self.strategy.plural, name, namespace
            )
        except NotFoundError:
            self.logger.info(
                f"{self.strategy.kind} {namespace}/{name} instance not found",
                resource_type=self.strategy.kind,
                resource_name=name,
                namespace=namespace,
            )
            return None

        return await self.reconcile(ChildResource.from_k8s(body))

    async def reconcile(self, resource: ChildResource) -> ReconcileResult:
        kind = self.strategy.kind
        start_time = time.time()
        self.logger.log_reconciliation_start(kind, resource.name, resource.namespace)

        try:
            async with metrics_collector.track_reconciliation(kind, resource.namespace):
                deleted = await self._try_reconcile(resource)
        except Exception as e:
            if is_conflict(e):
                # Requeued promptly with a fresh read; the counter is left alone
                self.logger.warning(
                    f"{kind} {resource.namespace}/{resource.name} changed during "
                    f"reconciliation, retrying: {e}",
                    resource_type=kind,
                    resource_name=resource.name,
                    namespace=resource.namespace,
                )
                return ReconcileResult(settings.conflict_retry_delay_seconds, error=e)

            resource.status.value = str(e)
            requeue_after = self.helper.set_failure_count(resource)
            self.logger.log_reconciliation_error(
                kind,
                resource.name,
                resource.namespace,
                error=e,
                duration=time.time() - start_time,
                failure_count=resource.status.failure_count,
                requeue_after=requeue_after,
            )
            result = ReconcileResult(requeue_after, error=e)
        else:
            if deleted:
                metrics_collector.clear_failure_count(
                    kind, resource.namespace, resource.name
                )
                self.logger.log_reconciliation_success(
                    kind, resource.name, resource.namespace, time.time() - start_time
                )
                return ReconcileResult(None, deleted=True)

            self.helper.set_success_status(resource)
            self.logger.log_reconciliation_success(
                kind, resource.name, resource.namespace, time.time() - start_time
            )
            result = ReconcileResult(settings.success_reconcile_timeout_seconds)

        try:
            await self.helper.update_status(resource)
        except ConflictError as e:
            return ReconcileResult(settings.conflict_retry_delay_seconds, error=e)
        except Exception as e:
            raise ReconciliationError(f"unable to update status: {e}", cause=e) from e

        return result

    async def _try_reconcile(self, resource: ChildResource) -> bool:
        """
        Run the reconciliation steps.

        The finalizer protocol runs before the remote sync, so an Active
        resource always carries the finalizer by the time its remote object
        is created.

        Returns:
            Whether the remote object was deleted and the finalizer released
        """
        description = self.strategy.description

        try:
            realm = await self.helper.get_or_create_realm_owner_ref(resource)
        except Exception as e:
            raise ReconciliationError(
                f"unable to get realm owner ref: {e}", cause=e
            ) from e

        try:
            client = await self.helper.create_keycloak_client_for_realm(realm)
        except Exception as e:
            raise ReconciliationError(
                f"unable to create keycloak client: {e}", cause=e
            ) from e

        spec = self.strategy.parse_spec(resource)
        realm_name = realm.spec.realm_name

        terminator = self.strategy.terminator_for(
            client,
            realm_name,
            spec,
            logging.getLogger(f"{__name__}.{self.strategy.kind}.terminator"),
        )
        try:
            deleted = await self.helper.try_to_delete(
                resource, terminator, self.strategy.finalizer
            )
        except Exception as e:
            raise ReconciliationError(
                f"unable to tryToDelete {description}: {e}", cause=e
            ) from e
        if deleted:
            return True

        desired = self.strategy.to_remote(spec)
        try:
            remote_id = await self.strategy.sync(client, realm_name, desired, spec)
        except KeycloakAdminError as e:
            raise RemoteOperationError(
                f"unable to sync {description}: {e}",
                status_code=e.status_code,
                cause=e,
            ) from e
        except Exception as e:
            raise ReconciliationError(
                f"unable to sync {description}: {e}", cause=e
            ) from e
        if remote_id:
            resource.status.id = remote_id

        return False
