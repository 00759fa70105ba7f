from __future__ import annotations

from bs4 import BeautifulSoup

from autoreview import checks

WELL_FORMED_WIKITEXT = (
    "'''示例'''是一个用于测试的条目。\n"
    "== 历史 ==\n"
    "内容<ref>[https://news.example.com/1 报道]</ref>\n"
    "[[Category:测试]]"
)


def references(*hrefs: str) -> str:
    items = "".join(
        f'<li id="cite_note-{i}"><span class="mw-cite-backlink"><a href="#cite_ref-{i}">^</a></span>'
        f'<span class="reference-text"><a class="external text" href="{href}">来源</a></span></li>'
        for i, href in enumerate(hrefs)
    )
    return f'<div class="reflist"><ol class="references">{items}</ol></div>'


def body(chars: int) -> str:
    return f"<p>{'字' * chars}</p>"


def test_empty_draft():
    assert checks.review("", "") == [
        "no-extlink",
        "size-zero",
        "wikify",
        "unreferenced",
        "uncategorized",
    ]


def test_well_formed_draft_has_no_issues():
    html = (
        body(250)
        + "<h2>历史</h2>"
        + references("https://news.example.com/1", "https://news.example.com/2")
        + references("https://news.example.com/3")
    )

    assert checks.review(WELL_FORMED_WIKITEXT, html) == []


def test_too_few_references_for_the_length():
    html = body(1000) + references("https://news.example.com/1")

    issues = checks.review(WELL_FORMED_WIKITEXT, html)

    assert "ref-improve" in issues
    assert "need-rs" not in issues


def test_empty_reference_list_is_not_unreferenced():
    html = body(100) + '<ol class="references"></ol><a href="https://example.org/">x</a>'

    issues = checks.review(WELL_FORMED_WIKITEXT, html)

    assert "unreferenced" not in issues
    assert "ref-improve" in issues
    assert "need-rs" in issues


def test_disallowed_and_unreliable_sources():
    wikitext = "内容<ref>x</ref>\n[[Category:测试]]"
    html = body(100) + references(
        "https://baike.baidu.com/item/foo",
        "https://www.youtube.com/watch?v=abc",
    )

    assert checks.review(wikitext, html) == [
        "stub",
        "ref-improve",
        "ref-disallowed",
        "ref-unreliable",
        "need-rs",
    ]


def test_size_classes():
    wikitext = WELL_FORMED_WIKITEXT
    links = references("https://news.example.com/1")

    assert "substub" in checks.review(wikitext, body(30) + links)
    assert "stub" in checks.review(wikitext, body(200) + links)
    assert "lengthy" in checks.review(wikitext, body(15001) + links)

    middle = checks.review(wikitext, body(500) + links)
    assert not {"size-zero", "substub", "stub", "lengthy"} & set(middle)


def test_uncounted_parts_are_removed_before_measuring():
    soup = BeautifulSoup(
        '<table><tr><td>表格</td></tr></table><div class="infobox">资讯</div>'
        '<div id="toc">目录</div><h2>标题</h2><p>正\n文</p>',
        "html.parser",
    )

    assert checks.countable_text(soup) == "正文"
    # The original soup is left intact.
    assert soup.find("table") is not None


def test_content_length_discounts_letters_once():
    assert checks.content_length("") == 0
    assert checks.content_length("123") == 3
    assert checks.content_length("abc") == 2.5
    assert checks.content_length("字字") == 1.5


def test_hostless_links_are_external():
    soup = BeautifulSoup(
        '<a href="mailto:editor@example.org">信</a><a href="#cite_note-1">1</a>',
        "html.parser",
    )

    assert checks.external_links(soup) == ["mailto:editor@example.org"]


def test_external_links_skip_wiki_and_message_boxes():
    soup = BeautifulSoup(
        '<a href="/wiki/Foo">内部</a>'
        '<a href="https://zh.wikipedia.org/wiki/Bar">同站</a>'
        '<div class="ambox"><a href="https://example.org/box">模板</a></div>'
        '<a href="https://example.com/source">外部</a>'
        "<a>无链接</a>",
        "html.parser",
    )

    assert checks.external_links(soup) == ["https://example.com/source"]


def test_links_only_in_message_boxes_count_as_missing():
    html = body(100) + '<div class="ombox"><a href="https://example.org/">x</a></div>'

    assert "no-extlink" in checks.review(WELL_FORMED_WIKITEXT, html)


def test_reference_lists_drop_backlinks():
    soup = BeautifulSoup(references("https://a.example/", "https://b.example/"), "html.parser")

    ref_lists = checks.reference_lists(soup)

    assert len(ref_lists) == 1
    assert ref_lists[0].select_one(".mw-cite-backlink") is None
    assert len(ref_lists[0].find_all("li")) == 2


def test_references_are_counted_per_list():
    citations = "".join(f'<li><cite class="citation">来源{i}</cite></li>' for i in range(3))
    one_list = f'<ol class="references">{citations}</ol>'
    extlink = '<a href="https://example.org/">x</a>'

    # Three footnotes in a single list still count as one reference.
    assert "ref-improve" in checks.review(WELL_FORMED_WIKITEXT, body(500) + extlink + one_list)
    assert "ref-improve" not in checks.review(
        WELL_FORMED_WIKITEXT, body(500) + extlink + one_list * 3
    )


def test_plain_text_needs_wikify():
    assert "wikify" in checks.review("只是一段文字。", body(10))
    assert "wikify" not in checks.review("* 列表项", body(10))


def test_category_aliases():
    for link in ("[[Category:甲]]", "[[category:乙]]", "[[Cat:丙]]", "[[分类:丁]]", "[[分類:戊]]"):
        assert "uncategorized" not in checks.review(link, "")


def test_over_emphasize():
    assert "over-emphasize" in checks.review("'''甲'''与'''乙'''", "")
    assert "over-emphasize" not in checks.review("== 一 ==\n'''甲'''", "")
    assert "over-emphasize" not in checks.review("正文<ref>'''甲'''</ref>", "")
    assert "over-emphasize" in checks.review("【甲】与<b>乙</b>", "")


def test_bad_indents_need_an_indented_line_and_a_highlighted_pre():
    wikitext = "正文\n 缩进的行\n"
    highlighted = '<div class="mw-highlight"><pre>code</pre></div>'

    assert "bad-indents" in checks.review(wikitext, highlighted)
    assert "bad-indents" not in checks.review(wikitext, "<pre>缩进的行</pre>")
    assert "bad-indents" not in checks.review(wikitext, "<p>缩进的行</p>")
    assert "bad-indents" not in checks.review("正文\n \n", highlighted)
