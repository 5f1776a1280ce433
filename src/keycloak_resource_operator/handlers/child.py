"""
Realm child handlers - Kopf handlers for every realm child resource kind.

Each kind (KeycloakRealmGroup, KeycloakClientScope, KeycloakAuthFlow,
KeycloakRealmComponent) gets the same set of handlers, bound to its
reconciliation strategy:

- create / resume: reconcile
- update: reconcile when the spec changed or deletion was requested
- delete: reconcile, which deletes the remote object and releases the
  finalizer owned by this operator
- timer: periodic re-reconciliation of healthy resources

Failures are re-raised as ``kopf.TemporaryError`` with the delay computed
from the resource's failure counter.
"""

import logging
from typing import Any

import kopf

from keycloak_resource_operator.constants import API_GROUP, API_VERSION
from keycloak_resource_operator.services import (
    STRATEGIES,
    ChildResourceReconciler,
    ReconcileHelper,
    ResourceStrategy,
)
from keycloak_resource_operator.settings import settings
from keycloak_resource_operator.utils.kubernetes import ResourceStore

logger = logging.getLogger(__name__)

_store: ResourceStore | None = None


def get_store() -> ResourceStore:
    """Store shared by all handlers, created on first use."""
    global _store
    if _store is None:
        _store = ResourceStore()
    return _store


def is_spec_updated(old: Any, new: Any) -> bool:
    """
    Whether an update event needs a reconciliation.

    True when the spec differs or the deletion marker has just appeared.
    """
    old = old or {}
    new = new or {}
    if old.get("spec") != new.get("spec"):
        return True

    old_deletion = (old.get("metadata") or {}).get("deletionTimestamp")
    new_deletion = (new.get("metadata") or {}).get("deletionTimestamp")
    return not old_deletion and bool(new_deletion)


def _spec_updated(old: Any, new: Any, **_) -> bool:
    return is_spec_updated(old, new)


async def run_reconciliation(
    strategy: ResourceStrategy, name: str, namespace: str
) -> None:
    """
    Reconcile one resource and translate the outcome for kopf.

    Raises:
        kopf.TemporaryError: If the reconciliation failed; carries the
            requeue delay
    """
    reconciler = ChildResourceReconciler(strategy, ReconcileHelper(get_store()))
    result = await reconciler.reconcile_by_name(name, namespace)

    if result is None or result.error is None:
        return

    raise kopf.TemporaryError(str(result.error), delay=result.requeue_after or 0)


def register_child_handlers(strategy: ResourceStrategy) -> None:
    """Register the kopf handlers of one child kind."""
    resource = {"group": API_GROUP, "version": API_VERSION}
    handler_id = strategy.kind.lower()

    async def reconcile_child(name: str, namespace: str, **_) -> None:
        await run_reconciliation(strategy, name, namespace)

    kopf.on.create(strategy.plural, id=f"{handler_id}-create", **resource)(
        reconcile_child
    )
    kopf.on.resume(strategy.plural, id=f"{handler_id}-resume", **resource)(
        reconcile_child
    )
    kopf.on.update(
        strategy.plural, id=f"{handler_id}-update", when=_spec_updated, **resource
    )(reconcile_child)
    # Deletion is guarded by our own finalizer, kopf must not add one
    kopf.on.delete(
        strategy.plural, id=f"{handler_id}-delete", optional=True, **resource
    )(reconcile_child)
    kopf.timer(
        strategy.plural,
        id=f"{handler_id}-requeue",
        interval=settings.success_reconcile_timeout_seconds,
        initial_delay=settings.success_reconcile_timeout_seconds,
        **resource,
    )(reconcile_child)

    logger.debug(f"Registered handlers for {strategy.kind}")


for _strategy in STRATEGIES.values():
    register_child_handlers(_strategy)
