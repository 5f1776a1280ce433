"""
Error handling module for the Keycloak resource operator.

This module provides the error hierarchy that classifies failures of
ownership resolution, client provisioning, remote operations and finalizer
handling.
"""

from .operator_errors import (
    AuthenticationError,
    ConflictError,
    CredentialLookupError,
    KubernetesAPIError,
    NotFoundError,
    OperatorError,
    OwnershipError,
    ParentNotConnectedError,
    ReconciliationError,
    RemoteOperationError,
    TerminationError,
    find_cause,
)

__all__ = [
    "OperatorError",
    "ReconciliationError",
    "OwnershipError",
    "ParentNotConnectedError",
    "CredentialLookupError",
    "AuthenticationError",
    "RemoteOperationError",
    "ConflictError",
    "TerminationError",
    "KubernetesAPIError",
    "NotFoundError",
    "find_cause",
]
