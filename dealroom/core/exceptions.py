"""
Platform-wide exception hierarchy.

Services raise these types; the deal room blueprint registers one handler
per type and maps it to an HTTP status and error code. Messages keep the
wording the admin UI already matches on ("not found", "Conflict detected",
"Validation failed", "required").

Usage:
    from dealroom.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Deal room")
    raise ValidationError("Project ID is required")
    raise EditConflictError(conflict_id=conflict.conflict_id)
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Maps to HTTP 404.

    Args:
        resource: Human-readable entity name (e.g. "Deal room", "Version").
        resource_id: The key that was looked up. Logged, not shown to clients.
        message: Optional full message overriding the default
                 "<resource> not found".
    """

    def __init__(
        self,
        resource: str,
        resource_id: str | None = None,
        message: str | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(message or f"{resource} not found")


class ValidationError(Exception):
    """Raised when input fails a business rule in the service layer.

    Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional list of individual field errors.
    """

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        self.details = details or []
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would violate a uniqueness rule.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} already exists for this {field}")


class EditConflictError(Exception):
    """Raised when a publish finds the canonical deal room moved under a draft.

    The conflict record is already persisted when this is raised; clients
    use ``conflict_id`` to fetch and resolve it. Maps to HTTP 409.
    """

    def __init__(self, conflict_id: str) -> None:
        self.conflict_id = conflict_id
        super().__init__(f"Conflict detected: {conflict_id}")
