"""
Exception taxonomy for the resource lifecycle core.

Services and repositories raise these; `resourcehub.api.errors` maps each one
to an HTTP status. Nothing here knows about HTTP.
"""

from typing import Dict, Optional


class ResourceHubError(Exception):
    """Base error for all user-facing ResourceHub exceptions."""


class ValidationFailedError(ResourceHubError):
    """Raised when a payload fails validation.

    `errors` maps each offending field to a human-readable message; its keys
    are exactly the fields that failed.
    """

    def __init__(self, errors: Dict[str, str]):
        super().__init__(f"Validation failed for fields: {sorted(errors)}")
        self.errors = dict(errors)


class UnauthorizedError(ResourceHubError):
    """Raised when the caller's tier lacks a capability. Carries no reason."""

    def __init__(self) -> None:
        super().__init__("Unauthorized")


class ResourceNotFoundError(ResourceHubError):
    """Raised when no resource matches the requested id."""

    def __init__(self, resource_id: str):
        super().__init__(f"Resource '{resource_id}' not found")
        self.resource_id = resource_id


class ResourceConflictError(ResourceHubError):
    """Raised when a resource with the same url already exists."""

    def __init__(self, url: str):
        super().__init__(f"A resource with url '{url}' already exists")
        self.url = url


class InvalidTransitionError(ResourceHubError):
    """Raised when a lifecycle transition is not allowed from the current state."""

    def __init__(self, resource_id: str, current_state: str, target_state: str):
        super().__init__(
            f"Resource '{resource_id}' cannot move from {current_state} to {target_state}"
        )
        self.resource_id = resource_id
        self.current_state = current_state
        self.target_state = target_state


class InfrastructureError(ResourceHubError):
    """Raised when a storage collaborator fails (timeout, connection loss)."""

    retryable: bool = False


class RepositoryUnavailableError(InfrastructureError):
    """Raised when the database cannot serve a repository operation in time."""

    retryable = True

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        super().__init__(f"Repository operation '{operation}' failed: {cause!r}")
        self.operation = operation
