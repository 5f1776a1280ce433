"""Persistence of reconciliation outcomes onto the status subresource."""

import logging

from keycloak_resource_operator.models.resources import ChildResource
from keycloak_resource_operator.utils.kubernetes import ResourceStore

logger = logging.getLogger(__name__)


class StatusSynchronizer:
    def __init__(self, store: ResourceStore):
        self.store = store

    async def update_status(self, resource: ChildResource) -> None:
        """
        Write ``resource.status`` to the cluster.

        Errors, including write conflicts, propagate to the caller.
        """
        await self.store.patch_status(resource)
        logger.debug(
            f"Updated status of {resource.kind} {resource.namespace}/{resource.name}",
            extra={
                "resource_type": resource.kind,
                "resource_name": resource.name,
                "namespace": resource.namespace,
            },
        )
