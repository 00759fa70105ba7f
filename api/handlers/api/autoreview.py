"""
GET /api/autoreview?revid=|pageid=|title=

Runs the draft heuristics on one page revision. Responses use the
`{"statue": ..., ...}` envelope and honour `?callback=` (JSONP).
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import Response

from autoreview import schemas, service
from core import mediawiki, responses
from core.timeout import get_deadline

logger = logging.getLogger(__name__)

CACHE_CONTROL = "max-age=172800, must-revalidate"


async def init() -> None:
    await service.init_client()


async def deinit() -> None:
    await service.close_client()


def _output(request: Request, status_code: int, body: schemas.AutoReviewResponse) -> Response:
    headers = {"Cache-Control": CACHE_CONTROL} if status_code < 400 else None
    return responses.jsonp_response(
        request,
        body.model_dump(exclude_none=True),
        status_code=status_code,
        headers=headers,
    )


async def on_request(request: Request) -> Response:
    if request.method.upper() != "GET":
        raise responses.method_not_allowed("GET")

    deadline = get_deadline(request)
    if deadline is not None:
        deadline.set_timeout_response(
            _output(request, 503, schemas.AutoReviewResponse(statue=503, error="Timeout."))
        )

    try:
        revision_query = service.build_query(request.query_params)
    except service.RequestParamError as exc:
        return _output(request, 400, schemas.AutoReviewResponse(statue=400, error=str(exc)))

    try:
        result = await service.review_page(revision_query)
    except (service.PageNotFoundError, mediawiki.MediaWikiError) as exc:
        logger.error("[autoreview] %s: %s", revision_query.info, exc)
        return _output(request, 500, schemas.AutoReviewResponse(statue=500, error=str(exc)))
    except Exception:
        logger.exception("[autoreview] %s: unexpected failure", revision_query.info)
        return _output(request, 500, schemas.AutoReviewResponse(statue=500, error="Request fail."))

    return _output(request, 200, schemas.AutoReviewResponse(statue=200, result=result))
