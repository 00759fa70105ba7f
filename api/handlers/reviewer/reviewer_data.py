"""
/reviewer/reviewer-data: the reviewer statistics as an HTML table.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.responses import Response

from core import db, responses
from reviewers import service

logger = logging.getLogger(__name__)


async def on_request(request: Request) -> Response:
    if request.method.upper() != "GET":
        raise responses.method_not_allowed("GET")
    if not db.is_replica_enabled():
        raise HTTPException(status_code=422, detail=str(db.ReplicaDisabledError()))

    try:
        data = await service.reviewer_data()
    except db.ReplicaError as exc:
        logger.error("[reviewer/reviewer-data] Unknown error when query data: %s", exc)
        raise HTTPException(status_code=502) from exc

    if data is None:
        raise HTTPException(status_code=502)

    return responses.templates.TemplateResponse(
        request,
        "reviewer_data.html",
        {
            "data_timestamp": data["dataTimestamp"],
            "reviewer_data": data["reviewerData"],
        },
        headers={"Cache-Control": "max-age=86400, must-revalidate"},
    )
