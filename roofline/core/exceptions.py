"""
Platform-wide exception hierarchy.

Services raise these types; blueprints and scripts translate them into
HTTP responses or exit codes in one place.

Usage:
    from roofline.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=42)
    raise ValidationError("itemName is required", details={"updates[0]": "..."})

A project that has no workflow tracker is NOT an error condition; tracker
lookups return an explicit absent result instead of raising.
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable model/entity name (e.g. "Project").
        resource_id: The key that was looked up.
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
    """Raised when input is well-formed but violates a business rule.

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique record.

    Maps to HTTP 409. Concurrent completions of the same line item end up
    here once the (tracker_id, line_item_id) constraint rejects the loser.

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


class ConfigurationError(Exception):
    """Raised when required runtime configuration is missing (e.g. DATABASE_URL)."""


class SchemaBaselineConflict(Exception):
    """Raised when a schema deploy targets a database that is not empty
    but has no migration history.

    The deploy step catches this, stamps the baseline revision and reports
    success.
    """
