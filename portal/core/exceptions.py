"""
Portal-wide exception hierarchy.

Services raise these; blueprints register handlers against them once and
get consistent HTTP status codes everywhere.

Usage:
    from portal.core.exceptions import NotFoundError, TransitionError

    raise NotFoundError(resource="Application", resource_id="3f2a...")
    raise TransitionError("SUBMITTED", "APPROVED", "not reachable from SUBMITTED")
"""


class NotFoundError(Exception):
    """Raised when a requested record does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Application", "StaffUser").
        resource_id: The id that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is malformed or misses a required field.

    Nothing is persisted when this is raised.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown, keyed by field name.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique record.

    The main case is a second certificate for an application that already
    owns one.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class TransitionError(Exception):
    """Raised when a requested status is not reachable from the current one.

    Also covers side-effect failures during a transition (certificate
    minting); in every case the stored status is left unchanged.
    """

    def __init__(self, current: str, requested: str, reason: str | None = None) -> None:
        self.current_status = current
        self.requested_status = requested
        self.reason = reason
        msg = f"Cannot change status from {current} to {requested}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PermissionDenied(Exception):
    """Raised when the installed access policy refuses an action."""

    def __init__(self, actor: str, action: str) -> None:
        self.actor = actor
        self.action = action
        super().__init__(f"{actor} does not have permission for '{action}'")
