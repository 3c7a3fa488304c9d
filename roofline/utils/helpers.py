"""Shared blueprint helpers.

get_or_404:    tuple-return lookup used by every blueprint
parse_int_arg: bounded integer query-string parsing for pagination
"""
import logging

from roofline.models import db
from roofline.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def get_or_404(model, pk, label=None):
    """Fetch a model instance by primary key or return a 404 error tuple.

    - Success: (obj, None)
    - Failure: (None, (response, 404))

    Usage:
        project, err = get_or_404(Project, project_id)
        if err:
            return err
    """
    label = label or model.__name__
    obj = db.session.get(model, pk)
    if not obj:
        return None, api_error(E.NOT_FOUND, f"{label} not found")
    return obj, None


def parse_int_arg(args, name, default, *, minimum=0, maximum=None):
    """Read ``name`` from a request args mapping as a clamped int.

    Non-numeric values fall back to ``default``.
    """
    try:
        value = int(args.get(name, default))
    except (TypeError, ValueError):
        value = default
    value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value
