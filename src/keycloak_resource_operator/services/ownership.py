"""
Ownership resolution between child and parent resources.

A child names its parent either through an owner reference or through a
fallback field of its spec. The owner reference wins when both are present,
and among owner references the first one of the parent kind wins.

Resolution is never cached: every call reads the parent from the store, and
a missing parent is reported, never created.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from keycloak_resource_operator.constants import (
    ERROR_OWNER_NOT_SPECIFIED,
    KIND_KEYCLOAK,
    KIND_REALM,
    PLURAL_KEYCLOAK,
    PLURAL_REALM,
)
from keycloak_resource_operator.errors import OwnershipError
from keycloak_resource_operator.models.common import ObjectMeta
from keycloak_resource_operator.models.keycloak import Keycloak, KeycloakRealm
from keycloak_resource_operator.utils.kubernetes import ResourceStore

logger = logging.getLogger(__name__)

P = TypeVar("P")


def owner_name_from_references(meta: ObjectMeta, parent_kind: str) -> str | None:
    """Name of the first owner reference of the given kind, if any."""
    for reference in meta.owner_references:
        if reference.kind == parent_kind:
            return reference.name
    return None


@dataclass(frozen=True)
class OwnershipResolver(Generic[P]):
    """
    Resolves the parent of a child resource.

    Attributes:
        store: Store the parent is read from
        parent_kind: Kind matched against owner references
        parent_plural: Plural used to read the parent
        parse: Builds the parent model from the raw object
        fallback: Reads the fallback parent name from the child's spec
        parent_label: Word naming the parent in error messages
        child_label: Word naming the child in error messages
    """

    store: ResourceStore
    parent_kind: str
    parent_plural: str
    parse: Callable[[dict[str, Any]], P]
    fallback: Callable[[Any], str | None]
    parent_label: str
    child_label: str

    def owner_name(self, child: Any) -> str:
        """
        Name of the parent of ``child``.

        Raises:
            OwnershipError: If neither an owner reference nor the spec names it
        """
        name = owner_name_from_references(child.metadata, self.parent_kind)
        if name:
            return name

        name = self.fallback(child)
        if name:
            return name

        raise OwnershipError(
            ERROR_OWNER_NOT_SPECIFIED.format(
                self.parent_label, self.child_label, child.metadata.name
            )
        )

    async def resolve(self, child: Any) -> P:
        """
        Read the parent of ``child`` from the store.

        Raises:
            OwnershipError: If no parent name can be determined; the store is
                not contacted in that case
            NotFoundError: If the named parent does not exist
        """
        name = self.owner_name(child)
        namespace = child.metadata.namespace
        logger.debug(
            f"Resolved {self.parent_kind} owner {namespace}/{name} "
            f"for {self.child_label} {child.metadata.name}"
        )
        body = await self.store.get_custom_object(
            self.parent_kind, self.parent_plural, name, namespace
        )
        return self.parse(body)


def realm_owner_resolver(store: ResourceStore) -> OwnershipResolver[KeycloakRealm]:
    """Resolver for the KeycloakRealm owning a realm child resource."""
    return OwnershipResolver(
        store=store,
        parent_kind=KIND_REALM,
        parent_plural=PLURAL_REALM,
        parse=KeycloakRealm.from_k8s,
        fallback=lambda child: child.realm,
        parent_label="realm",
        child_label="resource",
    )


def keycloak_owner_resolver(store: ResourceStore) -> OwnershipResolver[Keycloak]:
    """Resolver for the Keycloak owning a KeycloakRealm."""
    return OwnershipResolver(
        store=store,
        parent_kind=KIND_KEYCLOAK,
        parent_plural=PLURAL_KEYCLOAK,
        parse=Keycloak.from_k8s,
        fallback=lambda realm: realm.spec.keycloak_owner,
        parent_label="keycloak",
        child_label="realm",
    )
