"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter. The Limiter instance
is created in dealroom/__init__.py with no default limits; the autosave
route carries its own AUTOSAVE_RATE_LIMIT decorator in deal_room_bp.

Usage:
    from dealroom.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

DEAL_ROOM_LIMIT = "300/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Deal room API:  300/minute (editors poll save-status)
        - Autosave:       AUTOSAVE_RATE_LIMIT, on the draft route itself
        - Health check:   exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("deal_room")
    if bp:
        limiter.limit(app.config.get("DEAL_ROOM_RATE_LIMIT", DEAL_ROOM_LIMIT))(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured: deal room %s, autosave %s",
        app.config.get("DEAL_ROOM_RATE_LIMIT", DEAL_ROOM_LIMIT),
        app.config.get("AUTOSAVE_RATE_LIMIT"),
    )
