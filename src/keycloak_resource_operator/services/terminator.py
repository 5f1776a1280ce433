"""
Finalizer-guarded deletion of remote Keycloak objects.

A child resource is either Active (no deletion marker) or Terminating. While
Active, ``try_to_delete`` makes sure the finalizer is present so the resource
cannot disappear before its remote object is cleaned up. Once Terminating,
the remote object is deleted through a terminator and only then is the
finalizer released.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from keycloak_resource_operator.constants import ERROR_DELETION_FAILED
from keycloak_resource_operator.errors import TerminationError
from keycloak_resource_operator.models.resources import ChildResource
from keycloak_resource_operator.observability.metrics import metrics_collector
from keycloak_resource_operator.utils.keycloak_admin import KeycloakNotFoundError
from keycloak_resource_operator.utils.kubernetes import ResourceStore


class Terminator(Protocol):
    """Deletes one remote object; must succeed when the object is already gone."""

    async def delete_remote_resource(self) -> None: ...

    def get_logger(self) -> logging.Logger: ...


class RemoteResourceTerminator:
    """
    Terminator wrapping a single remote delete call.

    A not-found answer from Keycloak counts as a successful deletion.
    """

    def __init__(
        self,
        description: str,
        delete: Callable[[], Awaitable[None]],
        logger: logging.Logger,
    ):
        self.description = description
        self._delete = delete
        self._logger = logger

    async def delete_remote_resource(self) -> None:
        self._logger.info(f"Start deleting {self.description}")
        try:
            await self._delete()
        except KeycloakNotFoundError:
            self._logger.info(f"{self.description} is already absent")
            return
        self._logger.info(f"Done deleting {self.description}")

    def get_logger(self) -> logging.Logger:
        return self._logger


async def try_to_delete(
    store: ResourceStore,
    resource: ChildResource,
    terminator: Terminator,
    finalizer: str,
) -> bool:
    """
    Drive the finalizer protocol of a resource one step.

    Args:
        store: Store used to persist finalizer changes
        resource: The child resource; its metadata is updated in place
        terminator: Deletes the remote object
        finalizer: Finalizer token owned by the calling reconciler

    Returns:
        True once the remote object is deleted, False while the resource is
        still Active

    Raises:
        TerminationError: If the remote delete failed; the finalizer is kept
        ConflictError: If the finalizer write collided with another change
    """
    finalizers = resource.metadata.finalizers

    if not resource.metadata.is_being_deleted:
        if finalizer not in finalizers:
            await store.patch_finalizers(resource, [*finalizers, finalizer])
        return False

    try:
        await terminator.delete_remote_resource()
    except Exception as e:
        error = TerminationError(ERROR_DELETION_FAILED.format(e), cause=e)
        terminator.get_logger().error(
            str(error),
            extra={
                "resource_type": resource.kind,
                "resource_name": resource.name,
                "namespace": resource.namespace,
                "finalizer": finalizer,
            },
        )
        metrics_collector.record_termination(resource.kind, success=False)
        raise error from e

    metrics_collector.record_termination(resource.kind, success=True)

    if finalizer in finalizers:
        await store.patch_finalizers(
            resource, [name for name in finalizers if name != finalizer]
        )

    return True
