"""
Operator error hierarchy.

Every failure of ownership resolution, client provisioning, remote operations
and finalizer handling is raised as one of these types. Reconciliation steps
wrap the underlying error with ``raise ... from`` so ``find_cause`` can still
classify the chain.
"""

from typing import TypeVar

E = TypeVar("E", bound=BaseException)


class OperatorError(Exception):
    """Base error class for all operator-related exceptions."""

    def __init__(self, message: str, cause: Exception | None = None):
        """
        Initialize operator error.

        Args:
            message: Human-readable error description, recorded on the status
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.cause = cause


class ReconciliationError(OperatorError):
    """A reconciliation step failed; wraps the step's underlying error."""


class OwnershipError(OperatorError):
    """Neither an owner reference nor the spec names the parent resource."""


class ParentNotConnectedError(OperatorError):
    """The parent Keycloak resource exists but is not marked connected."""

    def __init__(self, name: str, namespace: str):
        super().__init__(f"keycloak {namespace}/{name} is not connected")
        self.name = name
        self.namespace = namespace


class CredentialLookupError(OperatorError):
    """The credential secret referenced by the parent could not be read."""


class AuthenticationError(OperatorError):
    """The authentication handshake against Keycloak failed."""

    def __init__(
        self,
        message: str,
        transport_failure: bool = False,
        cause: Exception | None = None,
    ):
        super().__init__(f"could not get token: {message}", cause=cause)
        self.transport_failure = transport_failure


class RemoteOperationError(OperatorError):
    """A Keycloak Admin API call failed with anything other than not-found."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, cause=cause)
        self.status_code = status_code


class ConflictError(OperatorError):
    """An optimistic write collided with a concurrent change of the object."""


class TerminationError(OperatorError):
    """The terminator failed to delete the remote object; finalizer is kept."""


class KubernetesAPIError(OperatorError):
    """Error communicating with Kubernetes API."""

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        cause: Exception | None = None,
    ):
        if reason:
            message = f"{message} (reason: {reason})"
        super().__init__(message, cause=cause)
        self.reason = reason


class NotFoundError(KubernetesAPIError):
    """The requested Kubernetes object does not exist."""

    def __init__(self, kind: str, name: str, namespace: str):
        super().__init__(f'{kind} "{name}" not found in namespace "{namespace}"')
        self.kind = kind
        self.name = name
        self.namespace = namespace


def find_cause(
    error: BaseException | None, error_type: type[E]
) -> E | None:
    """
    Walk the exception chain and return the first error of the given type.

    Follows explicit chaining (``raise ... from``) first, then implicit
    context, so wrapped step errors can still be classified by their origin.
    """
    seen: set[int] = set()
    while error is not None and id(error) not in seen:
        if isinstance(error, error_type):
            return error
        seen.add(id(error))
        error = error.__cause__ or error.__context__
    return None
