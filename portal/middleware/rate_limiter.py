"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in portal/__init__.py with no default limits;
this module applies granular limits per route category.

Usage:
    from portal.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Assistant endpoints:  10/minute
        - Submission intake:    SUBMISSION_RATE_LIMIT (default 30/minute)
        - Staff mutations:      60/minute
        - Health check:         exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("ai")
    if bp:
        limiter.limit("10/minute")(bp)

    submission_limit = app.config.get("SUBMISSION_RATE_LIMIT", "30/minute")
    bp = app.blueprints.get("submissions")
    if bp:
        limiter.limit(submission_limit)(bp)

    for bp_name in ("applications", "legacy"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit("60/minute")(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — assistant: 10/min, submissions: %s, staff: 60/min",
        submission_limit,
    )
