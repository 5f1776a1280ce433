"""
Provisioning of authenticated Keycloak Admin API clients.

A client is built per reconciliation for one Keycloak parent resource. The
admin access token is cached in a secret next to the parent
(``kc-token-<keycloak name>``) so that reconciliations reuse a still valid
token instead of repeating the authentication handshake.

Credentials and tokens are never logged.
"""

import logging
import time
from collections.abc import Callable

from pydantic import ValidationError

from keycloak_resource_operator.constants import (
    SECRET_PASSWORD_KEY,
    SECRET_USERNAME_KEY,
    TOKEN_EXPIRY_BUFFER_SECONDS,
    TOKEN_SECRET_KEY,
    TOKEN_SECRET_PREFIX,
)
from keycloak_resource_operator.errors import (
    AuthenticationError,
    CredentialLookupError,
    KubernetesAPIError,
    ParentNotConnectedError,
)
from keycloak_resource_operator.models.keycloak import Keycloak
from keycloak_resource_operator.models.keycloak_api import AccessToken
from keycloak_resource_operator.observability.metrics import metrics_collector
from keycloak_resource_operator.settings import settings
from keycloak_resource_operator.utils.keycloak_admin import (
    KeycloakAdminClient,
    KeycloakAuthenticationError,
)
from keycloak_resource_operator.utils.kubernetes import ResourceStore

logger = logging.getLogger(__name__)


def token_secret_name(keycloak_name: str) -> str:
    """Name of the token-cache secret of a Keycloak resource."""
    return f"{TOKEN_SECRET_PREFIX}{keycloak_name}"


class ClientProvisioner:
    """Builds an authenticated KeycloakAdminClient for a Keycloak resource."""

    def __init__(
        self,
        store: ResourceStore,
        client_factory: type[KeycloakAdminClient] = KeycloakAdminClient,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.client_factory = client_factory
        self.clock = clock

    async def provision(self, keycloak: Keycloak) -> KeycloakAdminClient:
        """
        Return a client authenticated against the Keycloak server.

        Raises:
            ParentNotConnectedError: If the Keycloak resource is not connected
            CredentialLookupError: If the credential secret is missing or
                incomplete
            AuthenticationError: If the handshake fails
        """
        name = keycloak.metadata.name
        namespace = keycloak.metadata.namespace

        if not keycloak.status.connected:
            raise ParentNotConnectedError(name, namespace)

        username, password = await self._read_credentials(keycloak)
        client_kwargs = {
            "admin_type": keycloak.spec.admin_type,
            "realm": keycloak.spec.realm,
            "verify_ssl": settings.keycloak_verify_ssl,
            "timeout": settings.keycloak_http_timeout_seconds,
        }

        cached = await self._read_cached_token(name, namespace)
        if cached is not None:
            metrics_collector.record_token_cache(namespace, "hit")
            return self.client_factory.from_token(
                keycloak.spec.url, cached, username, password, **client_kwargs
            )

        admin_client = self.client_factory(
            keycloak.spec.url, username, password, **client_kwargs
        )
        try:
            token = await admin_client.authenticate()
        except KeycloakAuthenticationError as e:
            raise AuthenticationError(
                str(e), transport_failure=e.transport_failure, cause=e
            ) from e

        await self._store_token(name, namespace, token)
        return admin_client

    async def _read_credentials(self, keycloak: Keycloak) -> tuple[str, str]:
        secret_name = keycloak.spec.secret
        namespace = keycloak.metadata.namespace

        try:
            data = await self.store.read_secret(secret_name, namespace)
        except KubernetesAPIError as e:
            raise CredentialLookupError(
                f"unable to get credentials secret {namespace}/{secret_name}: {e}",
                cause=e,
            ) from e

        if data is None:
            raise CredentialLookupError(
                f"credentials secret {namespace}/{secret_name} not found"
            )

        missing = [
            key
            for key in (SECRET_USERNAME_KEY, SECRET_PASSWORD_KEY)
            if not data.get(key)
        ]
        if missing:
            raise CredentialLookupError(
                f"credentials secret {namespace}/{secret_name} lacks keys: "
                f"{', '.join(missing)}"
            )

        return data[SECRET_USERNAME_KEY], data[SECRET_PASSWORD_KEY]

    async def _read_cached_token(
        self, keycloak_name: str, namespace: str
    ) -> AccessToken | None:
        """Return the cached token if it is present and still valid."""
        data = await self.store.read_secret(token_secret_name(keycloak_name), namespace)
        if data is None or TOKEN_SECRET_KEY not in data:
            metrics_collector.record_token_cache(namespace, "miss")
            return None

        try:
            token = AccessToken.model_validate_json(data[TOKEN_SECRET_KEY])
        except ValidationError:
            logger.warning(
                "Ignoring unreadable token cache of keycloak "
                f"{namespace}/{keycloak_name}"
            )
            metrics_collector.record_token_cache(namespace, "miss")
            return None

        if not token.is_valid(self.clock(), TOKEN_EXPIRY_BUFFER_SECONDS):
            metrics_collector.record_token_cache(namespace, "expired")
            return None

        return token

    async def _store_token(
        self, keycloak_name: str, namespace: str, token: AccessToken
    ) -> None:
        # Best effort: a failed write is logged and ignored
        secret_name = token_secret_name(keycloak_name)
        try:
            await self.store.write_secret(
                secret_name,
                namespace,
                {TOKEN_SECRET_KEY: token.model_dump_json()},
                labels={"app.kubernetes.io/managed-by": settings.operator_name},
            )
        except KubernetesAPIError as e:
            logger.warning(
                f"unable to save token cache {namespace}/{secret_name}: {e}",
                extra={"namespace": namespace, "error_type": type(e).__name__},
            )
            metrics_collector.record_token_cache(namespace, "write_failed")
            return

        metrics_collector.record_token_cache(namespace, "stored")
