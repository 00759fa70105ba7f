"""
FastAPI router for the pluggable handler namespaces.

- /api/{name}[/{subpath}]   -> handlers.api.<name>       (plus *.json files)
- /shortcut/{name}          -> handlers.shortcut.<name>
- /reviewer/{name}          -> handlers.reviewer.<name>

`/a`, `/s` and `/r` are legacy short prefixes that redirect permanently.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import Response

from core import responses
from core.routing import JSON_NAME_PATTERN, HandlerRegistry

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

api_handlers = HandlerRegistry("handlers.api", name_pattern=JSON_NAME_PATTERN, allow_json=True)
shortcut_handlers = HandlerRegistry("handlers.shortcut")
reviewer_handlers = HandlerRegistry("handlers.reviewer")

router = APIRouter()


async def close_all() -> None:
    for registry in (api_handlers, shortcut_handlers, reviewer_handlers):
        await registry.close()


def _rewrite(request: Request, new_prefix: str, rest: str) -> Response:
    location = f"{new_prefix}/{rest}"
    if request.url.query:
        location = f"{location}?{request.url.query}"
    return responses.moved_permanently(location)


@router.api_route("/a", methods=ALL_METHODS, include_in_schema=False)
@router.api_route("/a/{rest:path}", methods=ALL_METHODS, include_in_schema=False)
async def legacy_api(request: Request, rest: str = "") -> Response:
    return _rewrite(request, "/api", rest)


@router.api_route("/s", methods=ALL_METHODS, include_in_schema=False)
@router.api_route("/s/{rest:path}", methods=ALL_METHODS, include_in_schema=False)
async def legacy_shortcut(request: Request, rest: str = "") -> Response:
    return _rewrite(request, "/shortcut", rest)


@router.api_route("/r", methods=ALL_METHODS, include_in_schema=False)
@router.api_route("/r/{rest:path}", methods=ALL_METHODS, include_in_schema=False)
async def legacy_reviewer(request: Request, rest: str = "") -> Response:
    return _rewrite(request, "/reviewer", rest)


@router.api_route("/api/{name}", methods=ALL_METHODS)
@router.api_route("/api/{name}/{subpath:path}", methods=ALL_METHODS)
async def api_dispatch(request: Request, name: str) -> Response:
    # Handlers read `request.path_params["subpath"]` themselves.
    return await api_handlers.dispatch(request, name)


@router.api_route("/shortcut/{name}", methods=ALL_METHODS)
async def shortcut_dispatch(request: Request, name: str) -> Response:
    return await shortcut_handlers.dispatch(request, name)


@router.get("/reviewer")
@router.get("/reviewer/")
async def reviewer_index(request: Request) -> Response:
    return responses.templates.TemplateResponse(
        request,
        "directory.html",
        {"pathname": "/reviewer/", "names": reviewer_handlers.available()},
    )


@router.api_route("/reviewer/{name}", methods=ALL_METHODS)
async def reviewer_dispatch(request: Request, name: str) -> Response:
    return await reviewer_handlers.dispatch(request, name)
