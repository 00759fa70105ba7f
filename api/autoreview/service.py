"""
Autoreview service (orchestration).

This is where we:
- turn request parameters into a single-revision MediaWiki query
- fetch the wikitext and the rendered HTML of the page
- run the heuristics in `checks.py`
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping

from core import mediawiki

from . import checks, schemas

logger = logging.getLogger(__name__)

_MULTI_VALUE = re.compile(r"[|,]")

_client: mediawiki.MediaWikiClient | None = None


class RequestParamError(ValueError):
    pass


class PageNotFoundError(LookupError):
    pass


async def init_client() -> mediawiki.MediaWikiClient:
    global _client
    if _client is None:
        client = mediawiki.MediaWikiClient()
        try:
            await client.load_site_info()
        except Exception:
            await client.aclose()
            raise
        _client = client
        logger.info("[autoreview] MediaWiki client ready (%s)", client.api_url)
    return _client


async def close_client() -> None:
    global _client
    if _client is None:
        return None
    await _client.aclose()
    _client = None


def client() -> mediawiki.MediaWikiClient:
    if _client is None:
        raise RuntimeError("MediaWiki client is not initialized. Call init_client() first.")
    return _client


@dataclass(frozen=True)
class RevisionQuery:
    params: dict[str, Any]
    info: str


def _single_id(raw: str, *, many: str, invalid: str) -> int:
    if _MULTI_VALUE.search(raw):
        raise RequestParamError(many)
    value = raw.strip()
    if "-" in value or not value.isdigit():
        raise RequestParamError(invalid)
    return int(value)


def build_query(params: Mapping[str, str]) -> RevisionQuery:
    """
    Build the revisions query from exactly one of `revid`, `pageid` or `title`.

    Checked in that order; the first non-empty one wins.
    """
    query: dict[str, Any] = {
        "action": "query",
        "prop": "revisions",
        "indexpageids": "1",
        "rvprop": "ids|content",
        "rvslots": "main",
    }

    revid = params.get("revid") or ""
    pageid = params.get("pageid") or ""
    title = params.get("title") or ""

    if revid:
        query["revids"] = _single_id(
            revid,
            many="Only allow one revision in a request.",
            invalid=f'Revid "{revid}" is invalid.',
        )
        return RevisionQuery(query, f"Revid {query['revids']}")

    if pageid:
        query["pageids"] = _single_id(
            pageid,
            many="Only allow one page in a request.",
            invalid=f'Pageid "{pageid}" invalid.',
        )
        return RevisionQuery(query, f"Pageid {query['pageids']}")

    if title:
        try:
            query["titles"] = client().normalize_title(title)
        except mediawiki.InvalidTitleError as exc:
            raise RequestParamError(f'Title "{title}" invalid.') from exc
        return RevisionQuery(query, f'Title "{query["titles"]}"')

    raise RequestParamError('At least one of the parameters "oldid", "pageid" and "title" is required.')


def _first_page(api_query: dict[str, Any]) -> dict[str, Any] | None:
    pages = api_query.get("pages")
    if isinstance(pages, list):
        return pages[0] if pages else None
    if isinstance(pages, dict):
        pageids = api_query.get("pageids") or []
        return pages.get(str(pageids[0])) if pageids else None
    return None


async def review_page(revision_query: RevisionQuery) -> schemas.AutoReviewResult:
    wiki = client()
    data = await wiki.request(revision_query.params)
    api_query = data.get("query")
    if not api_query:
        raise mediawiki.MediaWikiError("Fail to get page info.")

    page = _first_page(api_query)
    revisions = (page or {}).get("revisions") or []
    if not page or page.get("missing") or not revisions:
        raise PageNotFoundError(f"{revision_query.info} isn't exist.")

    rev = revisions[0]
    wikitext = str(((rev.get("slots") or {}).get("main") or {}).get("content") or "")
    html = await wiki.parse_title(str(page["title"]))

    pageid = page.get("pageid")
    return schemas.AutoReviewResult(
        title=str(page["title"]),
        pageid=int(pageid) if pageid is not None else None,
        oldid=rev.get("revid"),
        issues=checks.review(wikitext, html),
    )
