"""
Opt-in CORS for the API namespace.

A cross-origin caller passes its own origin as `?origin=`; it must equal the
browser-supplied `Origin` header. Requests without the parameter get no CORS
headers at all.

The check runs as middleware so every reply under `/api` and `/a` carries
the headers, error pages and timeout replies included.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import HTTPException, Request
from fastapi.responses import Response

from . import responses

CORS_PREFIXES = ("/api", "/a")


def applies_to(path: str) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in CORS_PREFIXES)


def origin_headers(request: Request) -> dict[str, str]:
    param_origin = request.query_params.get("origin")
    if not param_origin:
        return {}

    if request.headers.get("origin") != param_origin:
        raise HTTPException(
            status_code=403,
            detail="'origin' parameter does not match Origin header",
        )

    return {
        "Access-Control-Allow-Origin": param_origin,
        "Access-Control-Allow-Methods": "GET, POST",
        "Access-Control-Allow-Headers": "X-Requested-With,content-type",
    }


async def cors_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    if not applies_to(request.url.path):
        return await call_next(request)

    # Raised here, outside the app's exception handlers.
    try:
        headers = origin_headers(request)
    except HTTPException as exc:
        return responses.render_http_exception(request, exc)

    response = await call_next(request)
    response.headers.update(headers)
    return response
