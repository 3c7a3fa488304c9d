"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in roofline/__init__.py with no default
limits; this module applies granular limits per route category.

Usage:
    from roofline.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Assistant chat:   30/minute
        - Workflow writes:  60/minute
        - Notifications:    200/minute (polled by the SPA)
        - Health check:     exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("bubbles_bp")
    if bp:
        limiter.limit("30/minute")(bp)

    bp = app.blueprints.get("workflow_bp")
    if bp:
        limiter.limit("60/minute")(bp)

    for bp_name in ("notification_bp", "scheduler_bp"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit("200/minute")(bp)

    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured (chat 30/min, workflow 60/min, notifications 200/min)")
