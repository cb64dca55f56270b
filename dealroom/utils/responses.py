"""Standard API response envelope.

Every deal room endpoint answers with
``{"success": bool, "data"?: ..., "message"?: str, "error"?: {...}}``.

Usage
-----
    from dealroom.utils.responses import api_success, api_error, E

    return api_success(deal_room.to_dict())
    return api_success(message="Draft published successfully")
    return api_error(E.NOT_FOUND, "Deal room not found")
    return api_error(E.CONFLICT, str(exc), conflict_id=exc.conflict_id)
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error codes carried in ``error.code``."""

    VALIDATION = "VALIDATION_ERROR"          # 400
    NOT_FOUND = "NOT_FOUND"                  # 404
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"  # 405
    CONFLICT = "CONFLICT_ERROR"              # 409
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"  # 413
    UNSUPPORTED_MEDIA_TYPE = "UNSUPPORTED_MEDIA_TYPE"  # 415
    RATE_LIMITED = "RATE_LIMITED"            # 429
    INTERNAL = "INTERNAL_ERROR"              # 500


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION: 400,
    E.NOT_FOUND: 404,
    E.METHOD_NOT_ALLOWED: 405,
    E.CONFLICT: 409,
    E.PAYLOAD_TOO_LARGE: 413,
    E.UNSUPPORTED_MEDIA_TYPE: 415,
    E.RATE_LIMITED: 429,
    E.INTERNAL: 500,
}


def api_success(data=None, message: str | None = None, *, status: int = 200):
    """Return ``(jsonify(body), status)`` for a successful call.

    ``data`` is omitted when None; use :func:`api_data_or_null` for lookups
    where a null result is itself the answer.
    """
    body: dict = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return jsonify(body), status


def api_data_or_null(data, message: str | None = None):
    """Success envelope that always carries ``data``, even when it is null."""
    body: dict = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), 200


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    conflict_id: str | None = None,
    details: list | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation; clients may match on its wording.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    conflict_id : str, optional
        Present on edit conflicts so the UI can open the resolver.
    details : list, optional
        Individual field errors behind a validation failure.
    """
    http_status = status or _DEFAULT_STATUS.get(code, 400)

    error: dict = {"code": code, "message": message}
    if conflict_id:
        error["conflictId"] = conflict_id
    if details:
        error["details"] = details

    return jsonify({"success": False, "error": error}), http_status
