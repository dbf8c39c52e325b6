"""JSON error envelope shared by every blueprint.

Body shape: ``{"error": <message>, "code": <ERR_*>, "details": {...}?}``.

    from portal.utils.errors import api_error, E
    return api_error(E.NOT_FOUND, "Application abc not found")
    return api_error(E.INVALID_TRANSITION, "Cannot move", details={"current": "CLOSED"})
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes understood by the portal frontends."""

    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    INVALID_TRANSITION = "ERR_INVALID_TRANSITION"
    FORBIDDEN = "ERR_FORBIDDEN"
    INTERNAL = "ERR_INTERNAL"


_HTTP_STATUS: dict[str, int] = {
    E.VALIDATION_INVALID: 400,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.INVALID_TRANSITION: 409,
    E.INTERNAL: 500,
}


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """Build ``(response, status)`` for *code*.

    *status* overrides the code's usual HTTP status; unknown codes fall back
    to 400.  *details* is omitted from the body when empty.
    """
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or _HTTP_STATUS.get(code, 400)
