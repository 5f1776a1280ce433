"""
Service layer for the Keycloak resource operator.

This module provides the reconciliation core shared by every realm child
resource, separated from the kopf handler layer.
"""

from .backoff import FailureTracker
from .child_reconciler import ChildResourceReconciler, ReconcileResult
from .client_provisioner import ClientProvisioner
from .helper import ReconcileHelper
from .ownership import OwnershipResolver
from .status import StatusSynchronizer
from .strategies import STRATEGIES, ResourceStrategy
from .terminator import RemoteResourceTerminator, Terminator, try_to_delete

__all__ = [
    "ChildResourceReconciler",
    "ClientProvisioner",
    "FailureTracker",
    "OwnershipResolver",
    "ReconcileHelper",
    "ReconcileResult",
    "RemoteResourceTerminator",
    "ResourceStrategy",
    "STRATEGIES",
    "StatusSynchronizer",
    "Terminator",
    "try_to_delete",
]
