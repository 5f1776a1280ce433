"""
Keycloak Admin API client utilities.

This module provides the interface to the Keycloak Admin REST API used by the
realm child reconcilers.

The client handles:
- Authentication with admin user or service account credentials
- Reuse of a previously obtained (cached) access token
- Re-authentication when the server rejects a token
- Typed not-found errors, distinguishable from every other failure
"""

import asyncio
import logging
import time
from typing import Any
from urllib.parse import urljoin

import httpx

from keycloak_resource_operator.constants import (
    ADMIN_TYPE_SERVICE_ACCOUNT,
    DEFAULT_ADMIN_CLIENT_ID,
    DEFAULT_ADMIN_REALM,
    TOKEN_EXPIRY_BUFFER_SECONDS,
)
from keycloak_resource_operator.models.keycloak_api import (
    AccessToken,
    AuthenticationExecutionRepresentation,
    AuthenticationFlowRepresentation,
    AuthenticatorConfigRepresentation,
    ClientScopeRepresentation,
    ComponentRepresentation,
    GroupRepresentation,
    ProtocolMapperRepresentation,
)

logger = logging.getLogger(__name__)

# Execution of a flow together with its optional authenticator config
ExecutionWithConfig = tuple[
    AuthenticationExecutionRepresentation, AuthenticatorConfigRepresentation | None
]

# Global cache for httpx clients - one per Keycloak server
# Key: (server_url, verify_ssl), Value: httpx.AsyncClient
_httpx_client_cache: dict[tuple[str, bool], httpx.AsyncClient] = {}
_cache_lock = asyncio.Lock()


class KeycloakAdminError(Exception):
    """Base exception for Keycloak Admin API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body

    def body_preview(self, limit: int = 1024) -> str | None:
        """Return a truncated preview of the response body for logging."""
        if self.response_body is None:
            return None

        if len(self.response_body) <= limit:
            return self.response_body

        return f"{self.response_body[:limit]}...<truncated>"


class KeycloakNotFoundError(KeycloakAdminError):
    """The requested Keycloak object does not exist."""


class KeycloakAuthenticationError(KeycloakAdminError):
    """
    The token endpoint refused the credentials or could not be reached.

    ``status_code`` is None when the handshake failed at the transport level.
    """

    @property
    def transport_failure(self) -> bool:
        return self.status_code is None


def _id_from_location(response: httpx.Response) -> str:
    location = response.headers.get("Location", "")
    if not location:
        raise KeycloakAdminError(
            "created object has no Location header", status_code=response.status_code
        )
    return location.rstrip("/").rsplit("/", 1)[-1]


class KeycloakAdminClient:
    """
    High-level client for Keycloak Admin API operations.

    An instance is scoped to one Keycloak server and one set of admin
    credentials. It is built either from credentials (``authenticate`` is then
    called before the first request) or from a cached token via
    ``from_token``.
    """

    def __init__(
        self,
        server_url: str,
        username: str,
        password: str,
        admin_type: str = "user",
        realm: str = DEFAULT_ADMIN_REALM,
        client_id: str = DEFAULT_ADMIN_CLIENT_ID,
        verify_ssl: bool = True,
        timeout: float = 60,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize Keycloak Admin client.

        Args:
            server_url: Base URL of the Keycloak server
            username: Admin username, or client id for service accounts
            password: Admin password, or client secret for service accounts
            admin_type: "user" (password grant) or "serviceAccount"
                (client credentials grant)
            realm: Realm holding the admin account
            client_id: Client ID used for the password grant
            verify_ssl: Whether to verify SSL certificates
            timeout: Request timeout in seconds
            http_client: Explicit httpx client; bypasses the shared client cache
        """
        self.server_url = server_url.rstrip("/")
        self.username = username
        self.password = password
        self.admin_type = admin_type
        self.admin_realm = realm
        self.client_id = client_id
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self._http_client = http_client

        self.token: AccessToken | None = None

        logger.debug(f"Initialized Keycloak Admin client for {self.server_url}")

    @classmethod
    def from_token(
        cls,
        server_url: str,
        token: AccessToken,
        username: str,
        password: str,
        **kwargs: Any,
    ) -> "KeycloakAdminClient":
        """Build a client that starts with an already obtained token."""
        admin_client = cls(server_url, username, password, **kwargs)
        admin_client.token = token
        return admin_client

    @property
    def access_token(self) -> str | None:
        return self.token.access_token if self.token else None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create httpx client (lazy initialization with caching)."""
        if self._http_client is not None:
            return self._http_client

        cache_key = (self.server_url, self.verify_ssl)

        async with _cache_lock:
            cached_client = _httpx_client_cache.get(cache_key)
            if cached_client is not None and not cached_client.is_closed:
                return cached_client

            client = httpx.AsyncClient(
                verify=self.verify_ssl,
                timeout=httpx.Timeout(self.timeout),
                limits=httpx.Limits(
                    max_connections=100,
                    max_keepalive_connections=20,
                ),
                follow_redirects=False,
            )
            _httpx_client_cache[cache_key] = client
            logger.debug(f"Created and cached httpx client for {self.server_url}")
            return client

    def token_is_valid(self, now: float | None = None) -> bool:
        """Whether the current access token is usable for a while longer."""
        if self.token is None:
            return False
        now = time.time() if now is None else now
        return self.token.is_valid(now, TOKEN_EXPIRY_BUFFER_SECONDS)

    async def authenticate(self) -> AccessToken:
        """
        Perform the authentication handshake and store the obtained token.

        Uses the password grant for admin users and the client credentials
        grant for service accounts.

        Raises:
            KeycloakAuthenticationError: If the handshake fails
        """
        auth_url = (
            f"{self.server_url}/realms/{self.admin_realm}/protocol/openid-connect/token"
        )

        if self.admin_type == ADMIN_TYPE_SERVICE_ACCOUNT:
            auth_data = {
                "grant_type": "client_credentials",
                "client_id": self.username,
                "client_secret": self.password,
            }
        else:
            auth_data = {
                "grant_type": "password",
                "client_id": self.client_id,
                "username": self.username,
                "password": self.password,
            }

        client = await self._get_client()
        try:
            response = await client.post(
                auth_url,
                data=auth_data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            response.raise_for_status()
            token_data = response.json()
            self.token = AccessToken(
                access_token=token_data["access_token"],
                expires_at=time.time() + token_data.get("expires_in", 60),
            )
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Keycloak rejected authentication at {auth_url}",
                extra={"http_status": e.response.status_code},
            )
            raise KeycloakAuthenticationError(
                f"authentication failed with HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Failed to reach Keycloak token endpoint {auth_url}: {e}")
            raise KeycloakAuthenticationError(
                f"unable to reach token endpoint: {e}"
            ) from e
        except (KeyError, ValueError) as e:
            raise KeycloakAuthenticationError(
                f"malformed token response: {e}", status_code=response.status_code
            ) from e

        logger.debug("Successfully authenticated with Keycloak")
        return self.token

    async def _ensure_authenticated(self) -> None:
        if not self.token_is_valid():
            await self.authenticate()

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Make an authenticated request to the Keycloak Admin API.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            endpoint: API endpoint (relative to admin base)
            json: JSON request body
            params: Query parameters

        Returns:
            Response object with body already buffered

        Raises:
            KeycloakNotFoundError: On HTTP 404
            KeycloakAdminError: On any other API or transport error
        """
        await self._ensure_authenticated()

        url = urljoin(f"{self.server_url}/admin/", endpoint.lstrip("/"))
        client = await self._get_client()

        try:
            response = await client.request(
                method=method,
                url=url,
                json=json,
                params=params,
                headers={"Authorization": f"Bearer {self.access_token}"},
            )

            # Token might have been revoked since it was cached
            if response.status_code == 401:
                logger.warning("Received 401, attempting re-authentication")
                await self.authenticate()
                response = await client.request(
                    method=method,
                    url=url,
                    json=json,
                    params=params,
                    headers={"Authorization": f"Bearer {self.access_token}"},
                )

            response.raise_for_status()
            return response

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            response_body = e.response.text or "<no content>"

            if status_code == 404:
                raise KeycloakNotFoundError(
                    f"{method} {endpoint}: not found",
                    status_code=status_code,
                    response_body=response_body,
                ) from e

            error = KeycloakAdminError(
                f"{method} {endpoint} failed with HTTP {status_code}",
                status_code=status_code,
                response_body=response_body,
            )
            logger.error(
                f"Request failed: {method} {url} - {status_code}: "
                f"{error.body_preview(512)}",
                extra={"http_status": status_code},
            )
            raise error from e

        except httpx.HTTPError as e:
            logger.error(f"Request failed: {method} {url} - {e}")
            raise KeycloakAdminError(f"{method} {endpoint} failed: {e}") from e

    # Group Management Methods

    async def get_group(self, realm_name: str, group_name: str) -> GroupRepresentation:
        """
        Find a top-level group by exact name.

        Raises:
            KeycloakNotFoundError: If no group has that name
        """
        response = await self._make_request(
            "GET",
            f"realms/{realm_name}/groups",
            params={"search": group_name, "exact": "true"},
        )
        for item in response.json():
            group = GroupRepresentation.model_validate(item)
            if group.name == group_name:
                return group
        raise KeycloakNotFoundError(
            f"group '{group_name}' not found in realm '{realm_name}'"
        )

    async def create_group(self, realm_name: str, group: GroupRepresentation) -> str:
        response = await self._make_request(
            "POST", f"realms/{realm_name}/groups", json=group.to_api()
        )
        return _id_from_location(response)

    async def update_group(
        self, realm_name: str, group_id: str, group: GroupRepresentation
    ) -> None:
        await self._make_request(
            "PUT", f"realms/{realm_name}/groups/{group_id}", json=group.to_api()
        )

    async def delete_group(self, realm_name: str, group_name: str) -> None:
        group = await self.get_group(realm_name, group_name)
        await self._make_request("DELETE", f"realms/{realm_name}/groups/{group.id}")

    async def sync_group_realm_roles(
        self, realm_name: str, group_id: str, role_names: list[str]
    ) -> None:
        """Grant the named realm roles to the group."""
        if not role_names:
            return
        roles = []
        for role_name in role_names:
            response = await self._make_request(
                "GET", f"realms/{realm_name}/roles/{role_name}"
            )
            roles.append(response.json())
        await self._make_request(
            "POST",
            f"realms/{realm_name}/groups/{group_id}/role-mappings/realm",
            json=roles,
        )

    async def sync_sub_groups(
        self, realm_name: str, group_id: str, sub_group_names: list[str]
    ) -> None:
        """Move the named existing groups under the group."""
        for sub_group_name in sub_group_names:
            sub_group = await self.get_group(realm_name, sub_group_name)
            await self._make_request(
                "POST",
                f"realms/{realm_name}/groups/{group_id}/children",
                json=sub_group.to_api(),
            )

    # Client Scope Management Methods

    async def get_client_scope(
        self, scope_name: str, realm_name: str
    ) -> ClientScopeRepresentation:
        """
        Find a client scope by name.

        Raises:
            KeycloakNotFoundError: If no client scope has that name
        """
        response = await self._make_request("GET", f"realms/{realm_name}/client-scopes")
        for item in response.json():
            scope = ClientScopeRepresentation.model_validate(item)
            if scope.name == scope_name:
                return scope
        raise KeycloakNotFoundError(
            f"client scope '{scope_name}' not found in realm '{realm_name}'"
        )

    async def create_client_scope(
        self, realm_name: str, scope: ClientScopeRepresentation
    ) -> str:
        response = await self._make_request(
            "POST", f"realms/{realm_name}/client-scopes", json=scope.to_api()
        )
        return _id_from_location(response)

    async def update_client_scope(
        self, realm_name: str, scope_id: str, scope: ClientScopeRepresentation
    ) -> None:
        """Update scope attributes and replace its protocol mappers."""
        body = scope.model_copy(update={"id": scope_id, "protocol_mappers": None})
        await self._make_request(
            "PUT", f"realms/{realm_name}/client-scopes/{scope_id}", json=body.to_api()
        )

        mappers_endpoint = (
            f"realms/{realm_name}/client-scopes/{scope_id}/protocol-mappers"
        )
        response = await self._make_request("GET", f"{mappers_endpoint}/models")
        for item in response.json():
            mapper = ProtocolMapperRepresentation.model_validate(item)
            await self._make_request("DELETE", f"{mappers_endpoint}/models/{mapper.id}")

        if scope.protocol_mappers:
            await self._make_request(
                "POST",
                f"{mappers_endpoint}/add-models",
                json=[mapper.to_api() for mapper in scope.protocol_mappers],
            )

    async def set_default_client_scope(self, realm_name: str, scope_id: str) -> None:
        await self._make_request(
            "PUT", f"realms/{realm_name}/default-default-client-scopes/{scope_id}"
        )

    async def delete_client_scope(self, realm_name: str, scope_id: str) -> None:
        await self._make_request(
            "DELETE", f"realms/{realm_name}/client-scopes/{scope_id}"
        )

    # Authentication Flow Management Methods

    async def get_auth_flow(
        self, realm_name: str, alias: str
    ) -> AuthenticationFlowRepresentation:
        """
        Find an authentication flow by alias.

        Raises:
            KeycloakNotFoundError: If no flow has that alias
        """
        response = await self._make_request(
            "GET", f"realms/{realm_name}/authentication/flows"
        )
        for item in response.json():
            flow = AuthenticationFlowRepresentation.model_validate(item)
            if flow.alias == alias:
                return flow
        raise KeycloakNotFoundError(
            f"authentication flow '{alias}' not found in realm '{realm_name}'"
        )

    async def sync_auth_flow(
        self,
        realm_name: str,
        flow: AuthenticationFlowRepresentation,
        executions: list[ExecutionWithConfig],
    ) -> str:
        """
        Create or update a flow and replace its executions.

        Args:
            realm_name: Realm of the flow
            flow: Desired flow, matched on alias
            executions: Desired executions with their optional authenticator config

        Returns:
            Identifier of the flow
        """
        flows_endpoint = f"realms/{realm_name}/authentication/flows"
        body = flow.model_copy(update={"authentication_executions": None})

        try:
            existing = await self.get_auth_flow(realm_name, flow.alias)
        except KeycloakNotFoundError:
            response = await self._make_request(
                "POST", flows_endpoint, json=body.to_api()
            )
            flow_id = _id_from_location(response)
        else:
            flow_id = existing.id or ""
            await self._make_request(
                "PUT",
                f"{flows_endpoint}/{flow_id}",
                json=body.model_copy(update={"id": flow_id}).to_api(),
            )
            response = await self._make_request(
                "GET", f"{flows_endpoint}/{flow.alias}/executions"
            )
            for item in response.json():
                # Nested executions go away with their top-level parent
                if item.get("level", 0) > 0:
                    continue
                execution = AuthenticationExecutionRepresentation.model_validate(item)
                await self._make_request(
                    "DELETE",
                    f"realms/{realm_name}/authentication/executions/{execution.id}",
                )

        for execution, config in sorted(executions, key=lambda e: e[0].priority):
            response = await self._make_request(
                "POST",
                f"realms/{realm_name}/authentication/executions",
                json=execution.model_copy(update={"parent_flow": flow_id}).to_api(),
            )
            if config is not None:
                execution_id = _id_from_location(response)
                config_endpoint = (
                    f"realms/{realm_name}/authentication/executions/{execution_id}/config"
                )
                await self._make_request(
                    "POST",
                    config_endpoint,
                    json=config.to_api(),
                )

        return flow_id

    async def delete_auth_flow(self, realm_name: str, alias: str) -> None:
        flow = await self.get_auth_flow(realm_name, alias)
        await self._make_request(
            "DELETE", f"realms/{realm_name}/authentication/flows/{flow.id}"
        )

    # Component Management Methods

    async def get_component(
        self, realm_name: str, component_name: str
    ) -> ComponentRepresentation:
        """
        Find a realm component by name.

        Raises:
            KeycloakNotFoundError: If no component has that name
        """
        response = await self._make_request(
            "GET", f"realms/{realm_name}/components", params={"name": component_name}
        )
        for item in response.json():
            component = ComponentRepresentation.model_validate(item)
            if component.name == component_name:
                return component
        raise KeycloakNotFoundError(
            f"component '{component_name}' not found in realm '{realm_name}'"
        )

    async def create_component(
        self, realm_name: str, component: ComponentRepresentation
    ) -> str:
        response = await self._make_request(
            "POST", f"realms/{realm_name}/components", json=component.to_api()
        )
        return _id_from_location(response)

    async def update_component(
        self, realm_name: str, component: ComponentRepresentation
    ) -> None:
        await self._make_request(
            "PUT",
            f"realms/{realm_name}/components/{component.id}",
            json=component.to_api(),
        )

    async def delete_component(self, realm_name: str, component_name: str) -> None:
        component = await self.get_component(realm_name, component_name)
        await self._make_request(
            "DELETE", f"realms/{realm_name}/components/{component.id}"
        )
