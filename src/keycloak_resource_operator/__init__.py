"""
Keycloak Resource Operator - Kubernetes operator for Keycloak realm resources.

This operator keeps realm-scoped Keycloak objects in sync with their
Kubernetes declarations:
- Realm groups, client scopes, authentication flows and components
- Owner resolution from realm children to realms and Keycloak instances
- Finalizer-guarded cleanup of remote objects on deletion
- Failure-aware requeue with bounded backoff
"""

__version__ = "0.1.0"
