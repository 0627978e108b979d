"""Error details for failed cart API calls.

The cart API answers failures in one of four shapes:

- request validation (422): {"detail": [{"loc": [...], "msg": "..."}]}
- missing identity or line (401/404): {"detail": "msg"}
- domain validation (400): {"error": {"field": ["msg"]}}
- envelope failure: {"success": false, "message": "msg"}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response

MAX_DETAIL = 300


def _validation_errors(errors: list) -> str:
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg', err)}" if loc else str(err.get("msg", err)))
    return " | ".join(parts)


def _field_errors(errors: dict) -> str:
    return " | ".join(f"{field}: {', '.join(map(str, msgs)) if isinstance(msgs, list) else msgs}" for field, msgs in errors.items())


def extract_error_detail(response: Response) -> str:
    """Compact, human-readable reason for a failed request."""
    try:
        body = response.json()
    except ValueError:
        return (getattr(response, "text", "") or "(empty response body)")[:MAX_DETAIL]

    if not isinstance(body, dict):
        return str(body)[:MAX_DETAIL]

    detail = body.get("detail")
    if isinstance(detail, list):
        return _validation_errors(detail)
    if detail is not None:
        return str(detail)

    error = body.get("error")
    if isinstance(error, dict):
        return _field_errors(error)
    if error is not None:
        return str(error)

    return str(body.get("message") or body)[:MAX_DETAIL]
