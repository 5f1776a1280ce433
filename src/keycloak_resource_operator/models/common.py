"""
Common models shared across different resource types.

This module defines the Kubernetes object metadata the operator relies on:
owner references, finalizers, the deletion marker and the resource version
used for optimistic concurrency.
"""

from typing import Any

from pydantic import BaseModel, Field


class OwnerReference(BaseModel):
    """Link from a resource to the object that owns it."""

    model_config = {"populate_by_name": True}

    api_version: str = Field("", alias="apiVersion")
    kind: str = Field(..., description="Kind of the owning object")
    name: str = Field(..., description="Name of the owning object")
    uid: str = Field("", description="UID of the owning object")


class ObjectMeta(BaseModel):
    """Subset of Kubernetes object metadata used by the operator."""

    model_config = {"populate_by_name": True}

    name: str = Field(..., description="Object name")
    namespace: str = Field("", description="Object namespace")
    uid: str = Field("", description="Object UID")
    resource_version: str = Field("", alias="resourceVersion")
    generation: int = Field(0, description="Spec generation")
    owner_references: list[OwnerReference] = Field(
        default_factory=list, alias="ownerReferences"
    )
    finalizers: list[str] = Field(default_factory=list)
    deletion_timestamp: str | None = Field(None, alias="deletionTimestamp")

    @property
    def is_being_deleted(self) -> bool:
        """Whether the deletion marker is set."""
        return bool(self.deletion_timestamp)


class ChildStatus(BaseModel):
    """Status block shared by all realm child resources."""

    model_config = {"populate_by_name": True}

    value: str = Field("", description="OK or the last error message")
    failure_count: int = Field(
        0, alias="failureCount", description="Consecutive failed reconciliations"
    )
    id: str | None = Field(None, description="Identifier of the remote object")

    def to_patch(self) -> dict[str, Any]:
        """Status subresource body, in API field names."""
        return self.model_dump(by_alias=True, exclude_none=True)
