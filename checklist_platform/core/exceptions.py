"""
Platform-wide exception hierarchy.

The checklist engine itself never raises: it sanitizes malformed input to
safe defaults. These types are raised by the service layer and the
blueprint registry, and blueprints register handlers against them once to
get consistent HTTP status codes everywhere.

Usage:
    from checklist_platform.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="ChecklistBoard", resource_id="board-1")
    raise ValidationError("title is required", details={"title": "missing"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the given scope.

    Used for BOTH genuinely missing records AND cross-company access
    attempts, so a 404 never confirms that another company's board exists.

    Args:
        resource: Human-readable model/entity name (e.g. "Company", "ChecklistTask").
        resource_id: The key that was looked up. Included in logs, not in HTTP response.
        company_id: Optional — the scope that was enforced. For debug logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        company_id: str | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.company_id = company_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if company_id is not None:
            msg += f" (company={company_id})"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Distinct from HTTP 400 (malformed input, caught in blueprint) — this
    exception signals that the data was well-formed but violated a business
    rule (e.g. unknown blueprint version, malformed due date).

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would create a duplicate unique key.

    Maps to HTTP 409. Also raised by the blueprint registry when two
    different task definitions claim the same id under one version.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)
