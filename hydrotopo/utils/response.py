"""Response envelopes returned by editor commands.

Every command answers with ``{"ok": True, "data": ...}`` (plus optional
``warnings``) or ``{"ok": False, "error": {"message", "code", "details"}}``.
"""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError


def is_success(result: Dict[str, Any]) -> bool:
    return bool(result.get("ok"))


def success_response(data: Any, warnings: Optional[List[str]] = None) -> Dict[str, Any]:
    """Wrap a command result.

    Args:
        data: Command result (JSON-compatible)
        warnings: Non-fatal notes, e.g. an update addressed to a missing id
    """
    response: Dict[str, Any] = {"ok": True, "data": data}
    if warnings:
        response["warnings"] = warnings
    return response


def error_response(
    message: str,
    code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Wrap a refused or failed command.

    Args:
        message: Human-readable reason
        code: Machine-readable code (LOCKED, SELF_LOOP, EMPTY_NETWORK, ...)
        details: Extra context for the caller
    """
    error: Dict[str, Any] = {"message": message}
    if code:
        error["code"] = code
    if details:
        error["details"] = details
    return {"ok": False, "error": error}


def validation_error_response(command: str, exc: ValidationError) -> Dict[str, Any]:
    """Report ill-typed element data with pydantic's per-field errors."""
    return error_response(
        f"Invalid data for {command}",
        "VALIDATION_ERROR",
        details={"errors": exc.errors(include_url=False)},
    )
