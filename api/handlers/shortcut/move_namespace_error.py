"""
/shortcut/move-namespace-error?title=X

Opens Special:MovePage prefilled to move a draft that was created in the
main namespace by mistake back into Draft:.
"""

from __future__ import annotations

from urllib.parse import urlencode

from fastapi import HTTPException, Request
from fastapi.responses import Response

from core import responses

MOVE_PAGE_URL = "https://zh.wikipedia.org/wiki/Special:MovePage"
MOVE_REASON = "由[[Wikipedia:建立條目|建立條目精靈]]建立但錯誤放置在主名字空間且未符合條目收錄要求的草稿"


def move_page_url(title: str) -> str:
    query = urlencode(
        {
            "wpOldTitle": title,
            "wpNewTitle": f"Draft:{title}",
            "wpReason": MOVE_REASON,
        }
    )
    return f"{MOVE_PAGE_URL}?{query}"


def on_request(request: Request) -> Response:
    title = request.query_params.get("title")
    if not title:
        raise HTTPException(status_code=400, detail="Parameter \"title\" is required.")
    return responses.moved_permanently(move_page_url(title))
