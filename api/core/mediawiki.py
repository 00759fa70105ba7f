"""
MediaWiki Action API client helpers.

Used modules:
- action=query&meta=siteinfo   -> namespaces + aliases (title normalization)
- action=query&prop=revisions  -> page wikitext
- action=parse                 -> rendered HTML
"""

from __future__ import annotations

import re
from typing import Any

import httpx

from . import config

DEFAULT_USER_AGENT = "zhwp-afc-bot/1.0 (https://zhwp-afc-bot.toolforge.org/)"

_ILLEGAL_TITLE_CHARS = re.compile(r"[<>\[\]{}|]")
_WHITESPACE = re.compile(r"[\s_]+")


# Wiki failures are explicit and separable from other runtime errors.
class MediaWikiError(RuntimeError):
    pass


class InvalidTitleError(ValueError):
    pass


def _ns_key(name: str) -> str:
    return _WHITESPACE.sub(" ", name).strip().lower()


def normalize_title(title: str, namespaces: dict[str, str] | None = None) -> str:
    """
    Canonical form of a page title.

    `namespaces` maps lower-cased namespace names and aliases to the local
    canonical prefix ("" for the main namespace is never listed).
    """
    text = _WHITESPACE.sub(" ", title or "").strip()
    text = text.split("#", 1)[0].strip()
    if not text or _ILLEGAL_TITLE_CHARS.search(text):
        raise InvalidTitleError(title)

    prefix = ""
    if ":" in text and namespaces:
        head, rest = text.split(":", 1)
        canonical = namespaces.get(_ns_key(head))
        if canonical is not None:
            prefix = f"{canonical}:"
            text = rest.strip()
            if not text:
                raise InvalidTitleError(title)

    return prefix + text[0].upper() + text[1:]


class MediaWikiClient:
    def __init__(
        self,
        api_url: str | None = None,
        *,
        timeout_s: float = 30.0,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = (api_url or config.wiki_api_url()).strip()
        if not self.api_url:
            raise MediaWikiError("WIKI_API_URL is empty.")
        self.namespaces: dict[str, str] = {}
        self._client = httpx.AsyncClient(
            timeout=timeout_s,
            headers={"User-Agent": user_agent or config.env_str("WIKI_USER_AGENT", DEFAULT_USER_AGENT)},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(self, params: dict[str, Any]) -> dict[str, Any]:
        query = {"format": "json", "formatversion": "2", **params}
        try:
            resp = await self._client.get(self.api_url, params=query)
        except httpx.HTTPError as exc:
            raise MediaWikiError(f"MediaWiki request failed: {exc}") from exc

        if resp.status_code != 200:
            raise MediaWikiError(f"MediaWiki request failed: {resp.status_code} {resp.text[:300]}")

        data: dict[str, Any] = resp.json()
        error = data.get("error")
        if isinstance(error, dict):
            raise MediaWikiError(f"{error.get('code', 'error')}: {error.get('info', '')}".strip())
        return data

    async def load_site_info(self) -> None:
        data = await self.request(
            {
                "action": "query",
                "meta": "siteinfo",
                "siprop": "namespaces|namespacealiases",
            }
        )
        query = data.get("query") or {}
        namespaces: dict[str, str] = {}
        by_id: dict[int, str] = {}
        for ns in (query.get("namespaces") or {}).values():
            ns_id = int(ns.get("id", 0))
            name = str(ns.get("name") or "")
            if not name:
                continue
            by_id[ns_id] = name
            namespaces[_ns_key(name)] = name
            canonical = str(ns.get("canonical") or "")
            if canonical:
                namespaces[_ns_key(canonical)] = name
        for alias in query.get("namespacealiases") or []:
            target = by_id.get(int(alias.get("id", 0)))
            if target and alias.get("alias"):
                namespaces[_ns_key(str(alias["alias"]))] = target
        self.namespaces = namespaces

    def normalize_title(self, title: str) -> str:
        return normalize_title(title, self.namespaces)

    async def parse_title(self, title: str) -> str:
        data = await self.request({"action": "parse", "page": title, "prop": "text"})
        parsed = data.get("parse") or {}
        text = parsed.get("text")
        if not isinstance(text, str):
            raise MediaWikiError(f"Parse of {title!r} returned no HTML.")
        return text
