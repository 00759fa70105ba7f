"""
Draft quality heuristics.

`review()` looks at a draft's wikitext together with its rendered HTML and
returns issue codes understood by the AfC helper scripts.
"""

from __future__ import annotations

import copy
import math
import re
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, Tag

WIKI_ORIGIN = "https://zh.wikipedia.org/"
WIKI_HOST = "zh.wikipedia.org"

# Removed before measuring the readable size of a draft.
UNCOUNTED_TAGS = ["table", "tbody", "td", "tr", "th", "style", "h1", "h2", "h3", "h4", "h5", "h6"]
UNCOUNTED_IDS = ["stub", "toc"]
UNCOUNTED_CLASSES = [
    "noteTA",
    "infobox",
    "wikitable",
    "navbox",
    "mw-highlight",
    "thumb",
    "reflist",
    "references",
    "reference",
    "noprint",
    "hatnote",
    "navigation-not-searchable",
    "toc",
    "mw-editsection",
    "afc-comment",
]

# Links inside maintenance boxes are not sources.
MESSAGE_BOX_CLASSES = frozenset({"ambox", "ombox", "fmbox", "dmbox", "stub", "afc-comment"})

DISALLOWED_SOURCES = re.compile(
    r"baike\.baidu\.com|百度|quora\.com|toutiao\.com|pincong\.rocks|zhihu\.com|知乎"
)
UNRELIABLE_SOURCES = re.compile(
    r"百家[号號]|baijiahao\.baidu\.com|bigexam\.hk|boxun\.com|bowenpress\.com|hkgpao.com|"
    r"peopo\.org|qyer\.com|speakout\.hk|songshuhui\.net|youtube\.com|youtu\.be|acfun\.cn|"
    r"bilibili\.com"
)

REF_SPAN = re.compile(r"<ref.*?</ref>")
CATEGORY_LINK = re.compile(r"\[\[(?:[Cc]at|[Cc]ategory|分[类類]):", re.IGNORECASE)
WIKI_MARKUP = re.compile(r"\[\[|\{\{|\{\||==|<ref|''|<code|<pre|<source|\[http|\|-|\|}|^[*#]")
EMPHASIS = re.compile(r"(?:''|<(?:em|i|b)>|【)(?:.*?)(?:''|</(?:em|i|b)>|】)")
HEADING = re.compile(r"==(?:.*?)==")
INDENTED_LINE = re.compile(r"^\s+(?!$)")

SUBSTUB_MAX = 50
STUB_MAX = 220
LENGTHY_MIN = 15000
CHARS_PER_REFERENCE = 300
MAX_EXPECTED_REFERENCES = 20


def _uncounted_selector() -> str:
    parts = list(UNCOUNTED_TAGS)
    parts.extend(f"#{i}" for i in UNCOUNTED_IDS)
    parts.extend(f".{c}" for c in UNCOUNTED_CLASSES)
    return ", ".join(parts)


def countable_text(soup: BeautifulSoup) -> str:
    counted = copy.copy(soup)
    for element in counted.select(_uncounted_selector()):
        element.decompose()
    return counted.get_text().replace("\n", "")


def content_length(text: str) -> float:
    # Any letter at all knocks half a character off; see DESIGN.md.
    return len(text) - (0.5 if any(ch.isalpha() for ch in text) else 0)


def external_links(soup: BeautifulSoup) -> list[str]:
    links: list[str] = []
    for a in soup.find_all("a"):
        if _in_message_box(a):
            continue
        try:
            url = urljoin(WIKI_ORIGIN, str(a.get("href") or ""))
            host = urlsplit(url).hostname
        except ValueError:
            continue
        # mailto: and other host-less links count as external.
        if host != WIKI_HOST:
            links.append(url)
    return links


def _in_message_box(tag: Tag) -> bool:
    for parent in tag.parents:
        classes = parent.get("class") or []
        if MESSAGE_BOX_CLASSES.intersection(classes):
            return True
    return False


def reference_lists(soup: BeautifulSoup) -> list[Tag]:
    """
    Every `<ol class="references">`, with the `^` backlinks removed.

    Reference checks count these lists, not the footnotes inside them.
    """
    ref_lists = soup.select("ol.references")
    for ref_list in ref_lists:
        for backlink in ref_list.select(".mw-cite-backlink"):
            backlink.decompose()
    return ref_lists


def _has_bad_indents(wikitext: str, soup: BeautifulSoup) -> bool:
    if not any(INDENTED_LINE.match(line) for line in wikitext.split("\n")):
        return False
    for pre in soup.find_all("pre"):
        parent = pre.parent
        if parent is not None and "mw-highlight" in (parent.get("class") or []):
            return True
    return False


def review(wikitext: str, html: str) -> list[str]:
    soup = BeautifulSoup(html, "html.parser")
    issues: list[str] = []

    length = content_length(countable_text(soup))

    ref_lists = reference_lists(soup)
    cited = [ol for ol in ref_lists if ol.select_one("a, cite.citation") is not None]
    disallowed = [ol for ol in ref_lists if DISALLOWED_SOURCES.search(ol.decode_contents())]
    unreliable = [ol for ol in ref_lists if UNRELIABLE_SOURCES.search(ol.decode_contents())]

    if not external_links(soup):
        issues.append("no-extlink")

    if length == 0:
        issues.append("size-zero")
    elif length <= SUBSTUB_MAX:
        issues.append("substub")
    elif length <= STUB_MAX:
        issues.append("stub")
    elif length >= LENGTHY_MIN:
        issues.append("lengthy")

    if not WIKI_MARKUP.search(wikitext):
        issues.append("wikify")

    if not cited and not ref_lists:
        issues.append("unreferenced")
    else:
        expected = min(math.ceil(length / CHARS_PER_REFERENCE) + 0.1, MAX_EXPECTED_REFERENCES)
        if len(cited) < expected:
            issues.append("ref-improve")
        if disallowed:
            issues.append("ref-disallowed")
        if unreliable:
            issues.append("ref-unreliable")
        if len(unreliable) + len(disallowed) >= len(cited) * 0.5:
            issues.append("need-rs")

    if not CATEGORY_LINK.search(wikitext):
        issues.append("uncategorized")

    emphasis = EMPHASIS.findall(REF_SPAN.sub("", wikitext))
    if len(emphasis) > len(HEADING.findall(wikitext)):
        issues.append("over-emphasize")

    if _has_bad_indents(wikitext, soup):
        issues.append("bad-indents")

    return issues
