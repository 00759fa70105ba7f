"""
GET /api/list-sysop-patroller: users holding the sysop or patroller right.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from core import db, responses
from reviewers import service

logger = logging.getLogger(__name__)


async def on_request(request: Request) -> Response:
    if request.method.upper() != "GET":
        raise responses.method_not_allowed("GET")
    if not db.is_replica_enabled():
        return JSONResponse({"status": 422}, status_code=422)

    try:
        names = await service.sysop_patroller_names()
    except db.ReplicaError as exc:
        logger.error("[listSysopPatroller] Fail to query: %s", exc)
        return JSONResponse({"status": 500}, status_code=500)

    return JSONResponse({"status": 200, "data": names})
