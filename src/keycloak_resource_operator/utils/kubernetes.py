"""
Kubernetes utilities for the Keycloak resource operator.

This module provides the resource store used by the reconciliation core:
reads of parent and child custom objects, optimistic writes of finalizers and
status, and access to credential and token-cache secrets.

Every write carries the resourceVersion the object was read with, so a
concurrent change surfaces as a ConflictError instead of being overwritten.
"""

import asyncio
import base64
import logging
from typing import Any

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from keycloak_resource_operator.constants import API_GROUP, API_VERSION, CHILD_PLURALS
from keycloak_resource_operator.errors import (
    ConflictError,
    KubernetesAPIError,
    NotFoundError,
)
from keycloak_resource_operator.models.resources import ChildResource

logger = logging.getLogger(__name__)


def get_kubernetes_client() -> client.ApiClient:
    """
    Get configured Kubernetes API client.

    Tries the in-cluster configuration first and falls back to the local
    kubeconfig for development.
    """
    try:
        config.load_incluster_config()
        logger.debug("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        try:
            config.load_kube_config()
            logger.debug("Loaded kubeconfig from local environment")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise

    return client.ApiClient()


def _translate_api_exception(
    e: ApiException, action: str, kind: str, name: str, namespace: str
) -> Exception:
    if e.status == 404:
        return NotFoundError(kind, name, namespace)
    if e.status == 409:
        return ConflictError(
            f"unable to {action} {kind} {namespace}/{name}: object has been modified",
            cause=e,
        )
    return KubernetesAPIError(
        f"unable to {action} {kind} {namespace}/{name}", reason=e.reason, cause=e
    )


def decode_secret_data(secret: client.V1Secret) -> dict[str, str]:
    """Decode the base64 data of a secret into plain strings."""
    return {
        key: base64.b64decode(value).decode("utf-8")
        for key, value in (secret.data or {}).items()
    }


class ResourceStore:
    """Read and optimistic-write access to the objects the core works on."""

    def __init__(self, k8s_client: client.ApiClient | None = None):
        """
        Initialize the store.

        Args:
            k8s_client: Optional Kubernetes API client
        """
        self.k8s_client = k8s_client
        self._custom: client.CustomObjectsApi | None = None
        self._v1: client.CoreV1Api | None = None

    @property
    def custom_api(self) -> client.CustomObjectsApi:
        if self._custom is None:
            self._custom = client.CustomObjectsApi(self.k8s_client)
        return self._custom

    @property
    def v1(self) -> client.CoreV1Api:
        if self._v1 is None:
            self._v1 = client.CoreV1Api(self.k8s_client)
        return self._v1

    async def get_custom_object(
        self, kind: str, plural: str, name: str, namespace: str
    ) -> dict[str, Any]:
        """
        Read a custom object of this operator's API group.

        Raises:
            NotFoundError: If the object does not exist
            KubernetesAPIError: On any other API failure
        """
        try:
            return await asyncio.to_thread(
                self.custom_api.get_namespaced_custom_object,
                group=API_GROUP,
                version=API_VERSION,
                namespace=namespace,
                plural=plural,
                name=name,
            )
        except ApiException as e:
            raise _translate_api_exception(e, "get", kind, name, namespace) from e

    async def patch_finalizers(
        self, resource: ChildResource, finalizers: list[str]
    ) -> None:
        """
        Replace the finalizer list of a resource.

        The local copy is updated with the new list and resourceVersion so the
        following status write of the same reconciliation does not conflict.

        Raises:
            ConflictError: If the object changed since it was read
        """
        body = {
            "metadata": {
                "finalizers": finalizers,
                "resourceVersion": resource.metadata.resource_version,
            }
        }
        try:
            updated = await asyncio.to_thread(
                self.custom_api.patch_namespaced_custom_object,
                group=API_GROUP,
                version=API_VERSION,
                namespace=resource.namespace,
                plural=CHILD_PLURALS[resource.kind],
                name=resource.name,
                body=body,
            )
        except ApiException as e:
            raise _translate_api_exception(
                e,
                "update finalizers of",
                resource.kind,
                resource.name,
                resource.namespace,
            ) from e

        resource.metadata.finalizers = list(finalizers)
        self._refresh_version(resource, updated)

    async def patch_status(self, resource: ChildResource) -> None:
        """
        Write the status subresource of a resource.

        Raises:
            ConflictError: If the object changed since it was read
        """
        body = {
            "metadata": {"resourceVersion": resource.metadata.resource_version},
            "status": resource.status.to_patch(),
        }
        try:
            updated = await asyncio.to_thread(
                self.custom_api.patch_namespaced_custom_object_status,
                group=API_GROUP,
                version=API_VERSION,
                namespace=resource.namespace,
                plural=CHILD_PLURALS[resource.kind],
                name=resource.name,
                body=body,
            )
        except ApiException as e:
            raise _translate_api_exception(
                e, "update status of", resource.kind, resource.name, resource.namespace
            ) from e

        self._refresh_version(resource, updated)

    @staticmethod
    def _refresh_version(resource: ChildResource, updated: Any) -> None:
        if isinstance(updated, dict):
            version = updated.get("metadata", {}).get("resourceVersion")
            if version:
                resource.metadata.resource_version = version

    async def read_secret(self, name: str, namespace: str) -> dict[str, str] | None:
        """
        Read and decode a secret.

        Returns:
            Decoded secret data, or None if the secret does not exist

        Raises:
            KubernetesAPIError: If the read fails for reasons other than 404
        """
        try:
            secret = await asyncio.to_thread(
                self.v1.read_namespaced_secret, name=name, namespace=namespace
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise KubernetesAPIError(
                f"Failed to read secret {namespace}/{name}: {e.reason}",
                reason=e.reason,
                cause=e,
            ) from e
        return decode_secret_data(secret)

    async def write_secret(
        self,
        name: str,
        namespace: str,
        data: dict[str, str],
        labels: dict[str, str] | None = None,
    ) -> None:
        """
        Create a secret, or replace it when it already exists.

        Concurrent writers are last-write-wins.
        """
        secret = client.V1Secret(
            metadata=client.V1ObjectMeta(name=name, namespace=namespace, labels=labels),
            type="Opaque",
            string_data=data,
        )
        try:
            await asyncio.to_thread(
                self.v1.create_namespaced_secret, namespace=namespace, body=secret
            )
            return
        except ApiException as e:
            if e.status != 409:
                raise KubernetesAPIError(
                    f"Failed to create secret {namespace}/{name}: {e.reason}",
                    reason=e.reason,
                    cause=e,
                ) from e

        try:
            await asyncio.to_thread(
                self.v1.replace_namespaced_secret,
                name=name,
                namespace=namespace,
                body=secret,
            )
        except ApiException as e:
            raise KubernetesAPIError(
                f"Failed to replace secret {namespace}/{name}: {e.reason}",
                reason=e.reason,
                cause=e,
            ) from e
