"""Shared exceptions for service layer operations."""
from typing import Any
from uuid import UUID


class ServiceError(Exception):
    """
    Base exception for service layer failures.

    Each subclass carries the HTTP status and a stable error code so the API
    layer can render it without knowing every concrete type.
    """

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    @property
    def details(self) -> dict[str, Any] | None:
        """Structured payload included in the error response, if any."""
        return None


class ValidationError(ServiceError):
    """Raised when input has the wrong shape or an invalid value."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class AuthorizationError(ServiceError):
    """Raised when the caller lacks permission for the operation."""

    status_code = 403
    error_code = "FORBIDDEN"

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message)


class NotFoundError(ServiceError):
    """Raised when a user or post does not exist or is not visible to the caller."""

    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, entity_type: str, identifier: UUID | str) -> None:
        self.entity_type = entity_type
        self.identifier = identifier
        super().__init__(f"{entity_type.title()} not found: {identifier}")


class ConflictError(ServiceError):
    """Base for follow-graph operations that conflict with the current edge state."""

    status_code = 409
    error_code = "CONFLICT"


class SelfReferenceError(ConflictError):
    """Raised when a user tries to follow or unfollow themselves."""

    status_code = 400
    error_code = "SELF_REFERENCE"

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"You cannot {operation} yourself")


class AlreadyFollowingError(ConflictError):
    """Raised when following a user that is already followed."""

    error_code = "ALREADY_FOLLOWING"

    def __init__(self) -> None:
        super().__init__("You are already following this user")


class NotFollowingError(ConflictError):
    """Raised when unfollowing a user that is not followed."""

    error_code = "NOT_FOLLOWING"

    def __init__(self) -> None:
        super().__init__("You are not following this user")


class StoreError(ServiceError):
    """Raised by the graph store when the backing database call fails."""

    error_code = "STORE_ERROR"


class PartialGraphUpdateError(ServiceError):
    """
    Raised when only one side of a follow edge was written.

    The first update (actor.following) succeeded and the second
    (target.followers) did not, so the edge is asymmetric until reconciled.
    No rollback is attempted.
    """

    error_code = "PARTIAL_GRAPH_UPDATE"

    def __init__(self, actor_id: UUID, target_id: UUID, operation: str) -> None:
        self.actor_id = actor_id
        self.target_id = target_id
        self.operation = operation
        super().__init__(
            f"{operation.title()} was only partially applied; "
            "the relationship is one-sided",
        )

    @property
    def details(self) -> dict[str, Any]:
        """Both ids so clients and operators can reconcile the edge."""
        return {
            "actorId": str(self.actor_id),
            "targetId": str(self.target_id),
            "operation": self.operation,
        }
