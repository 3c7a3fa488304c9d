"""JSON error envelope shared by every blueprint.

Every failed API call answers with ``{"error": <message>, "code": <ERR_*>}``
and, where useful, a ``details`` object::

    from roofline.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Project not found")
    return api_error(E.VALIDATION_REQUIRED, "updates is required")

Service-layer exceptions from ``roofline.core.exceptions`` are mapped to the
same envelope by ``register_error_handlers`` so views rarely build one by hand.
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes understood by the dashboard client."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"   # missing field
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"     # wrong type / shape
    VALIDATION_RULE = "ERR_VALIDATION_RULE"           # well-formed but refused
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


_STATUS_BY_CODE: dict[str, int] = {
    E.VALIDATION_RULE: 422,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """Build ``(response, status)`` for a failed request.

    ``status`` wins when given; otherwise the code decides, and anything
    unlisted (the validation codes) is a 400.
    """
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or _STATUS_BY_CODE.get(code, 400)


def register_error_handlers(app):
    """Map service-layer exceptions to ``api_error`` responses app-wide."""
    from roofline.core.exceptions import ConflictError, NotFoundError, ValidationError

    @app.errorhandler(NotFoundError)
    def _not_found(exc):
        return api_error(E.NOT_FOUND, str(exc))

    @app.errorhandler(ValidationError)
    def _validation(exc):
        return api_error(E.VALIDATION_RULE, str(exc), details=exc.details)

    @app.errorhandler(ConflictError)
    def _conflict(exc):
        return api_error(E.CONFLICT_DUPLICATE, str(exc))
