"""
Response Module

Every JSON endpoint answers with a flat object carrying a ``success`` flag:

    Success:
        {"success": true, ...fields}

    Failure:
        {"success": false, "message": "Human-readable message"}
        {"success": false, "reason": "machine-readable-reason", ...fields}

Failures pick either an HTTP status code or a ``reason`` string (or both);
the superuser status chain, for instance, answers 200 with a reason.
"""

from typing import Any, Optional

from fastapi.responses import JSONResponse


class Reasons:
    """Machine-readable failure reasons used by the superuser endpoints."""

    NO_USERS = "no-users"
    NOT_LOGGED_IN = "not-logged-in"
    NO_SUCH_USER = "no-such-user"
    NOT_SUPERUSER = "not-superuser"
    NO_ACTIVE_NETWORK = "no-active-network"
    NO_SHOPS = "no-shops"
    INCORRECT_PASS = "incorrect-pass"


def success_response(**fields: Any) -> dict:
    return {"success": True, **fields}


def failure_response(
    status_code: int = 200,
    message: Optional[str] = None,
    reason: Optional[str] = None,
    **fields: Any,
) -> JSONResponse:
    """Build a ``success: false`` JSON response with the given status code."""
    content: dict[str, Any] = {"success": False}
    if message is not None:
        content["message"] = message
    if reason is not None:
        content["reason"] = reason
    content.update(fields)
    return JSONResponse(status_code=status_code, content=content)
