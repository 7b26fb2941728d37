"""
Response envelopes shared by every route.

Successes look like ``{"success": true, "data": ...}``; failures look like
``{"success": false, "error": {"message": ..., "code": ...}}`` so a client
can branch on ``success`` and then on ``error.code``.

Example:
    from common.utils import success_response

    @router.get("/circles/{circle_id}")
    async def get_circle(circle_id: str):
        circle = await circle_service.get_circle(circle_id)
        return success_response(circle)
"""

from typing import Any, Optional, Dict, List


def success_response(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """Envelope for a successful call. ``data`` and ``message`` are omitted when empty."""
    envelope: Dict[str, Any] = {"success": True}
    if data is not None:
        envelope["data"] = data
    if message:
        envelope["message"] = message
    return envelope


def error_response(
    message: str,
    code: Optional[str] = None,
    details: Optional[Any] = None,
    errors: Optional[List[Any]] = None,
) -> Dict[str, Any]:
    """
    Envelope for a failed call.

    Args:
        message: Short user-facing text ("This circle is full")
        code: Stable machine code ("CIRCLE_FULL")
        details: Extra context, e.g. ``{"retryAfter": 1}``
        errors: Field-level problems from request validation
    """
    error: Dict[str, Any] = {"message": message}
    if code:
        error["code"] = code
    if details is not None:
        error["details"] = details
    if errors:
        error["errors"] = errors
    return {"success": False, "error": error}


def list_response(items: List[Any], message: Optional[str] = None) -> Dict[str, Any]:
    """Envelope for a plain list, with its length under ``count``."""
    envelope = success_response(items, message)
    envelope["count"] = len(items)
    return envelope
