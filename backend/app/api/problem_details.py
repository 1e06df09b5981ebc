"""RFC 7807 problem responses shared by every exception handler."""

import uuid
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

PROBLEM_MEDIA_TYPE = "application/problem+json"
_PROBLEM_BASE = "https://example.com/problems/"

PROBLEM_TYPE_VALIDATION = _PROBLEM_BASE + "validation-error"
PROBLEM_TYPE_DOMAIN = _PROBLEM_BASE + "domain-error"
PROBLEM_TYPE_SERVER = _PROBLEM_BASE + "server-error"
PROBLEM_TYPE_FLAG_STORE = _PROBLEM_BASE + "feature-flag-store-unavailable"
PROBLEM_TYPE_NOT_IMPLEMENTED = _PROBLEM_BASE + "integration-not-implemented"
PROBLEM_TYPE_UPSTREAM = _PROBLEM_BASE + "integration-upstream-error"


def _request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID")
    request.state.request_id = request_id or str(uuid.uuid4())
    return request.state.request_id


def problem_details(
    request: Request,
    *,
    status: int,
    title: str,
    detail: str,
    type_: str,
    errors: list[dict[str, Any]] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    request_id = _request_id(request)
    response = JSONResponse(
        status_code=status,
        content={
            "type": type_,
            "title": title,
            "status": status,
            "detail": detail,
            "request_id": request_id,
            "errors": errors or [],
        },
        headers=headers,
        media_type=PROBLEM_MEDIA_TYPE,
    )
    response.headers.setdefault("X-Request-ID", request_id)
    return response
