"""
/api/reviewer-data: AfC reviewer statistics for the last 28 days.

- GET|POST /api/reviewer-data          cached statistics
- GET|POST /api/reviewer-data?purge    drop the cache, redirect back
- POST     /api/reviewer-data/purge    drop the cache, 204
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from core import db, responses
from reviewers import service

logger = logging.getLogger(__name__)

API_VERSION = 1


async def on_request(request: Request) -> Response:
    method = request.method.upper()
    if method not in ("GET", "POST"):
        raise responses.method_not_allowed("GET", "POST", api_version=API_VERSION)
    if not db.is_replica_enabled():
        raise responses.ApiError(422, api_version=API_VERSION, detail=str(db.ReplicaDisabledError()))

    if "purge" in request.query_params:
        await service.purge_reviewer_data()
        return responses.moved_permanently(request.url.path)

    subpath = [part for part in request.path_params.get("subpath", "").split("/") if part]
    if subpath:
        if subpath != ["purge"]:
            raise responses.ApiError(400, api_version=API_VERSION)
        if method != "POST":
            raise responses.method_not_allowed("POST", api_version=API_VERSION)
        await service.purge_reviewer_data()
        return Response(status_code=204, headers={"Cache-Control": "no-store"})

    try:
        data = await service.reviewer_data()
    except db.ReplicaError as exc:
        logger.error("[api/reviewer-data] Unknown error when query data: %s", exc)
        raise responses.ApiError(502, api_version=API_VERSION) from exc

    if data is None:
        raise responses.ApiError(502, api_version=API_VERSION)

    return JSONResponse(
        {
            "apiVersion": API_VERSION,
            "dataTimestamp": data["dataTimestamp"],
            "reviewerData": data["reviewerData"],
        },
        headers={"Cache-Control": "max-age=0, must-revalidate"},
    )
