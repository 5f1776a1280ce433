"""
Test finalizer-guarded deletion of remote objects.

Exercises both states of a child resource: Active (no deletion marker) where
the finalizer must be ensured, and Terminating where the remote object is
deleted before the finalizer is released.
"""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from keycloak_resource_operator.constants import CLIENT_SCOPE_FINALIZER
from keycloak_resource_operator.errors import ConflictError, TerminationError
from keycloak_resource_operator.services.terminator import (
    RemoteResourceTerminator,
    try_to_delete,
)
from keycloak_resource_operator.utils.keycloak_admin import (
    KeycloakAdminError,
    KeycloakNotFoundError,
)

from .factories import make_child

DELETION_TIMESTAMP = "2024-01-01T00:00:00Z"


def make_terminator(side_effect=None) -> MagicMock:
    terminator = MagicMock()
    terminator.delete_remote_resource = AsyncMock(side_effect=side_effect)
    terminator.get_logger.return_value = MagicMock(spec=logging.Logger)
    return terminator


class TestActiveResource:
    @pytest.mark.asyncio
    async def test_adds_missing_finalizer(self, store):
        resource = make_child(finalizers=["other.finalizer"])
        terminator = make_terminator()

        deleted = await try_to_delete(
            store, resource, terminator, CLIENT_SCOPE_FINALIZER
        )

        assert deleted is False
        store.patch_finalizers.assert_awaited_once_with(
            resource, ["other.finalizer", CLIENT_SCOPE_FINALIZER]
        )
        terminator.delete_remote_resource.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_repeated_calls_leave_one_finalizer(self, store):
        resource = make_child()
        terminator = make_terminator()

        await try_to_delete(store, resource, terminator, CLIENT_SCOPE_FINALIZER)
        await try_to_delete(store, resource, terminator, CLIENT_SCOPE_FINALIZER)

        assert resource.metadata.finalizers.count(CLIENT_SCOPE_FINALIZER) == 1
        store.patch_finalizers.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_finalizer_already_present_needs_no_write(self, store):
        resource = make_child(finalizers=[CLIENT_SCOPE_FINALIZER])

        deleted = await try_to_delete(
            store, resource, make_terminator(), CLIENT_SCOPE_FINALIZER
        )

        assert deleted is False
        store.patch_finalizers.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_write_conflict_surfaces(self, store):
        store.patch_finalizers.side_effect = ConflictError("object has been modified")

        with pytest.raises(ConflictError):
            await try_to_delete(
                store, make_child(), make_terminator(), CLIENT_SCOPE_FINALIZER
            )


class TestTerminatingResource:
    @pytest.mark.asyncio
    async def test_successful_delete_releases_finalizer(self, store):
        resource = make_child(
            finalizers=[CLIENT_SCOPE_FINALIZER, "other.finalizer"],
            deletion_timestamp=DELETION_TIMESTAMP,
        )
        terminator = make_terminator()

        deleted = await try_to_delete(
            store, resource, terminator, CLIENT_SCOPE_FINALIZER
        )

        assert deleted is True
        terminator.delete_remote_resource.assert_awaited_once()
        assert resource.metadata.finalizers == ["other.finalizer"]

    @pytest.mark.asyncio
    async def test_calls_after_success_are_no_ops(self, store):
        resource = make_child(
            finalizers=[CLIENT_SCOPE_FINALIZER], deletion_timestamp=DELETION_TIMESTAMP
        )
        terminator = make_terminator()

        assert await try_to_delete(store, resource, terminator, CLIENT_SCOPE_FINALIZER)
        assert await try_to_delete(store, resource, terminator, CLIENT_SCOPE_FINALIZER)

        store.patch_finalizers.assert_awaited_once()
        assert CLIENT_SCOPE_FINALIZER not in resource.metadata.finalizers

    @pytest.mark.asyncio
    async def test_failed_delete_keeps_finalizer(self, store):
        resource = make_child(
            finalizers=[CLIENT_SCOPE_FINALIZER], deletion_timestamp=DELETION_TIMESTAMP
        )
        terminator = make_terminator(side_effect=Exception("delete resource fatal"))

        with pytest.raises(TerminationError) as exc_info:
            await try_to_delete(store, resource, terminator, CLIENT_SCOPE_FINALIZER)

        assert (
            str(exc_info.value)
            == "error during keycloak resource deletion: delete resource fatal"
        )
        assert resource.metadata.finalizers == [CLIENT_SCOPE_FINALIZER]
        store.patch_finalizers.assert_not_awaited()
        terminator.get_logger.return_value.error.assert_called_once()


class TestRemoteResourceTerminator:
    @pytest.mark.asyncio
    async def test_not_found_counts_as_deleted(self):
        delete = AsyncMock(side_effect=KeycloakNotFoundError("gone", status_code=404))
        terminator = RemoteResourceTerminator(
            "client scope scope1", delete, logging.getLogger(__name__)
        )

        await terminator.delete_remote_resource()

        delete.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self):
        delete = AsyncMock(side_effect=KeycloakAdminError("boom", status_code=500))
        terminator = RemoteResourceTerminator(
            "client scope scope1", delete, logging.getLogger(__name__)
        )

        with pytest.raises(KeycloakAdminError):
            await terminator.delete_remote_resource()

    def test_exposes_its_logger(self):
        logger = logging.getLogger("terminator-test")
        terminator = RemoteResourceTerminator("x", AsyncMock(), logger)

        assert terminator.get_logger() is logger
