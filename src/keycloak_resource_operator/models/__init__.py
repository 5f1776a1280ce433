"""
Models package - Pydantic models for type-safe resource handling.

Defines data models for:
- Kubernetes object metadata and owner references
- Keycloak and KeycloakRealm parent resources
- Realm child resources (groups, client scopes, auth flows, components)
- Keycloak Admin API representations
"""
