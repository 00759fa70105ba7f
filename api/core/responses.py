"""
Response helpers shared by routers and handler modules.

Errors are raised as `HTTPException` (or `ApiError` for versioned API
payloads) and rendered by `render_http_exception`: JSON under `/api/`,
an HTML status page elsewhere.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from starlette import status

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

STATUS_MESSAGES = {
    301: "Moved Permanently",
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}

_JSONP_CALLBACK = re.compile(r"^[\w$.\[\]]+$")


class ApiError(HTTPException):
    """HTTPException whose JSON body carries the endpoint's `apiVersion`."""

    def __init__(self, status_code: int, *, api_version: int, detail: str | None = None) -> None:
        super().__init__(status_code=status_code, detail=detail or STATUS_MESSAGES.get(status_code))
        self.api_version = api_version


def wants_json(request: Request) -> bool:
    path = request.url.path
    return path == "/api" or path.startswith("/api/")


def status_page(
    request: Request,
    status_code: int,
    *,
    detail: str | None = None,
    headers: dict[str, str] | None = None,
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "status.html",
        {
            "status_code": status_code,
            "title": STATUS_MESSAGES.get(status_code, "Error"),
            "detail": detail,
            "method": request.method.upper(),
            "pathname": request.url.path,
        },
        status_code=status_code,
        headers=headers,
    )


def render_http_exception(request: Request, exc: HTTPException) -> Response:
    detail = exc.detail if isinstance(exc.detail, str) else STATUS_MESSAGES.get(exc.status_code)
    headers = dict(exc.headers or {})
    if wants_json(request):
        body: dict[str, Any] = {}
        api_version = getattr(exc, "api_version", None)
        if api_version is not None:
            body["apiVersion"] = api_version
        body["status"] = exc.status_code
        if detail:
            body["error"] = detail
        return JSONResponse(body, status_code=exc.status_code, headers=headers)
    return status_page(request, exc.status_code, detail=detail, headers=headers)


def method_not_allowed(*allowed: str, api_version: int | None = None) -> HTTPException:
    headers = {"Allow": ", ".join(allowed)}
    if api_version is not None:
        exc = ApiError(status.HTTP_405_METHOD_NOT_ALLOWED, api_version=api_version)
        exc.headers = headers
        return exc
    return HTTPException(status_code=status.HTTP_405_METHOD_NOT_ALLOWED, headers=headers)


def moved_permanently(location: str) -> RedirectResponse:
    return RedirectResponse(location, status_code=status.HTTP_301_MOVED_PERMANENTLY)


def jsonp_response(
    request: Request,
    content: Any,
    *,
    status_code: int = 200,
    headers: dict[str, str] | None = None,
) -> Response:
    """
    JSON response, wrapped in a JSONP callback when `?callback=` is valid.
    """
    callback = request.query_params.get("callback", "")
    if not callback or not _JSONP_CALLBACK.match(callback):
        return JSONResponse(content, status_code=status_code, headers=headers)

    body = json.dumps(content, ensure_ascii=False)
    # U+2028/2029 are valid JSON but terminate JavaScript string literals.
    body = body.replace("\u2028", "\\u2028").replace("\u2029", "\\u2029")
    return Response(
        f"/**/ typeof {callback} === 'function' && {callback}({body});",
        status_code=status_code,
        headers={**(headers or {}), "X-Content-Type-Options": "nosniff"},
        media_type="text/javascript; charset=utf-8",
    )
