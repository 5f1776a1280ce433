"""
Constants used throughout the Keycloak resource operator.

This module defines all constant values used by the operator including:
- API group, version and resource kinds
- Finalizer names for cleanup coordination
- Token cache naming
- Status values and backoff defaults
"""

# Custom resource API coordinates
API_GROUP = "keycloak.operator.io"
API_VERSION = "v1"

KIND_KEYCLOAK = "Keycloak"
KIND_REALM = "KeycloakRealm"
KIND_REALM_GROUP = "KeycloakRealmGroup"
KIND_CLIENT_SCOPE = "KeycloakClientScope"
KIND_AUTH_FLOW = "KeycloakAuthFlow"
KIND_REALM_COMPONENT = "KeycloakRealmComponent"

PLURAL_KEYCLOAK = "keycloaks"
PLURAL_REALM = "keycloakrealms"
PLURAL_REALM_GROUP = "keycloakrealmgroups"
PLURAL_CLIENT_SCOPE = "keycloakclientscopes"
PLURAL_AUTH_FLOW = "keycloakauthflows"
PLURAL_REALM_COMPONENT = "keycloakrealmcomponents"

# Finalizer constants for cleanup coordination
# These prevent Kubernetes from deleting resources until remote cleanup is complete
REALM_GROUP_FINALIZER = "keycloak.realmgroup.operator.finalizer.name"
CLIENT_SCOPE_FINALIZER = "keycloak.clientscope.operator.finalizer.name"
AUTH_FLOW_FINALIZER = "keycloak.authflow.operator.finalizer.name"
REALM_COMPONENT_FINALIZER = "keycloak.realmcomponent.operator.finalizer.name"

# Token cache secret: "<prefix><keycloak name>"
TOKEN_SECRET_PREFIX = "kc-token-"
TOKEN_SECRET_KEY = "token"

# Credential secret keys
SECRET_USERNAME_KEY = "username"
SECRET_PASSWORD_KEY = "password"

# Admin types for Keycloak authentication
ADMIN_TYPE_USER = "user"
ADMIN_TYPE_SERVICE_ACCOUNT = "serviceAccount"

# Keycloak admin realm and client used for the handshake
DEFAULT_ADMIN_REALM = "master"
DEFAULT_ADMIN_CLIENT_ID = "admin-cli"

# Tokens expiring within this window are treated as expired
TOKEN_EXPIRY_BUFFER_SECONDS = 30

# Status values
STATUS_OK = "OK"

# Backoff defaults (in seconds)
DEFAULT_FAILURE_BACKOFF_BASE = 10.0
DEFAULT_FAILURE_BACKOFF_MULTIPLIER = 2.0
DEFAULT_FAILURE_BACKOFF_MAX = 600.0
DEFAULT_CONFLICT_RETRY_DELAY = 1.0
DEFAULT_SUCCESS_RECONCILE_TIMEOUT = 3600.0

# Error message templates
ERROR_DELETION_FAILED = "error during keycloak resource deletion: {}"
ERROR_OWNER_NOT_SPECIFIED = (
    "{} owner is not specified neither in ownerReference nor in spec for {} {}"
)

# Plural of every child kind, used to address its custom objects
CHILD_PLURALS = {
    KIND_REALM_GROUP: PLURAL_REALM_GROUP,
    KIND_CLIENT_SCOPE: PLURAL_CLIENT_SCOPE,
    KIND_AUTH_FLOW: PLURAL_AUTH_FLOW,
    KIND_REALM_COMPONENT: PLURAL_REALM_COMPONENT,
}
