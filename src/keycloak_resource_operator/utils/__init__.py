"""
Utils package - Utility modules for Keycloak resource operator functionality.

Contains helper modules for:
- Keycloak Admin API interactions
- Kubernetes resource reads and optimistic writes
"""

from keycloak_resource_operator.utils.keycloak_admin import (
    KeycloakAdminClient,
    KeycloakAdminError,
    KeycloakAuthenticationError,
    KeycloakNotFoundError,
)
from keycloak_resource_operator.utils.kubernetes import (
    ResourceStore,
    get_kubernetes_client,
)

__all__ = [
    "KeycloakAdminClient",
    "KeycloakAdminError",
    "KeycloakAuthenticationError",
    "KeycloakNotFoundError",
    "ResourceStore",
    "get_kubernetes_client",
]
