"""Domain exceptions for inventory-sync.

Defines the exception hierarchy shared by the sync and deletion engines.
Remote store failures are split into transient and permission failures so
callers can tell them apart; the engines treat both the same way (report,
do not mutate state).
"""

from typing import Any


class InventorySyncException(Exception):
    """Base exception for all inventory-sync errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. path, group_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(InventorySyncException):
    """Raised when input validation fails (e.g. invalid role or empty name)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class AuthorizationException(InventorySyncException):
    """Raised when the acting user's group role does not allow the operation."""

    def __init__(
        self,
        resource: str | None = None,
        action: str | None = None,
        message: str = "Permission denied",
    ) -> None:
        if resource and action:
            message = f"Permission denied: {action} on {resource}"
        details: dict[str, Any] = {}
        if resource:
            details["resource"] = resource
        if action:
            details["action"] = action
        super().__init__(message, "PERMISSION_DENIED", details)


class RemoteStoreException(InventorySyncException):
    """Transient failure talking to the remote document store (network, 5xx, 429).

    Safe to retry: operations that raise it leave local state unchanged.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        path: str | None = None,
        error_code: str = "REMOTE_STORE_ERROR",
    ) -> None:
        details: dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if path:
            details["path"] = path
        super().__init__(message, error_code, details)

    @property
    def status_code(self) -> int | None:
        return self.details.get("status_code")


class RemotePermissionException(RemoteStoreException):
    """The remote store rejected the request as unauthenticated or forbidden (401/403)."""

    def __init__(
        self,
        message: str = "Permission denied by remote store",
        status_code: int | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(message, status_code, path, error_code="PERMISSION_DENIED")


class ResourceNotFoundException(InventorySyncException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'group', 'member').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class GroupAlreadyExistsException(InventorySyncException):
    """Raised when creating a group for an owner that already has one."""

    def __init__(self, group_id: str) -> None:
        super().__init__(
            f"Group already exists: {group_id}",
            "GROUP_ALREADY_EXISTS",
            {"group_id": group_id},
        )


class SessionClosedException(InventorySyncException):
    """Raised when a view session is used after end_session()."""

    def __init__(self, collection_path: str) -> None:
        super().__init__(
            f"View session for {collection_path} has ended",
            "SESSION_CLOSED",
            {"collection_path": collection_path},
        )


class DeletionInProgressException(InventorySyncException):
    """Raised when a cascading delete is started for a root that is already being deleted."""

    def __init__(self, root_path: str) -> None:
        super().__init__(
            f"Deletion already in progress for {root_path}",
            "DELETION_IN_PROGRESS",
            {"root_path": root_path},
        )


class InvalidDeletionRootException(InventorySyncException):
    """Raised when a root document lacks a field its deletion plan needs (e.g. ownerUid)."""

    def __init__(self, root_path: str, field: str) -> None:
        super().__init__(
            f"Root document {root_path} is missing required field '{field}'",
            "INVALID_DELETION_ROOT",
            {"root_path": root_path, "field": field},
        )
