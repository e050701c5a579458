"""Round-trip tests: block-document -> Markdown -> block-document.

The plain subset (paragraphs, headers, lists, code, quotes, delimiters,
tables, checklists, media blocks) survives a serialize/deserialize cycle
unchanged.
"""

from __future__ import annotations

import pytest

from blockmark import BlockmarkConfig, deserialize, serialize


def _doc(*blocks):
    return {"time": 1, "version": "2.29.0", "blocks": list(blocks)}


def _roundtrip(blocks, config=None):
    return deserialize(serialize(_doc(*blocks), config), config)["blocks"]


ROUNDTRIP_CASES = {
    "paragraph": [{"type": "paragraph", "data": {"text": "Hello world"}}],
    "inline_markup": [{"type": "paragraph", "data": {
        "text": 'Some <b>bold</b>, <i>italic</i>, <code>code</code> and '
                '<a href="https://example.com">a link</a>',
    }}],
    "headers": [
        {"type": "header", "data": {"text": "Title", "level": 1}},
        {"type": "header", "data": {"text": "Sub", "level": 3}},
    ],
    "unordered_list": [{"type": "list", "data": {"style": "unordered", "items": [
        {"content": "a", "meta": {}, "items": [
            {"content": "a.1", "meta": {}, "items": []},
        ]},
        {"content": "b", "meta": {}, "items": []},
    ]}}],
    "ordered_list": [{"type": "list", "data": {"style": "ordered", "items": [
        {"content": "first", "meta": {}, "items": []},
        {"content": "second", "meta": {}, "items": []},
    ]}}],
    "nested_ordered_list": [{"type": "list", "data": {"style": "ordered", "items": [
        {"content": "one", "meta": {}, "items": [
            {"content": "nested", "meta": {}, "items": [
                {"content": "deeper", "meta": {}, "items": []},
            ]},
        ]},
        {"content": "two", "meta": {}, "items": []},
    ]}}],
    "bullets_under_ordered": [{"type": "list", "data": {"style": "ordered", "items": [
        {"content": "A", "meta": {}, "style": "unordered", "items": [
            {"content": "B", "meta": {}, "items": []},
        ]},
        {"content": "C", "meta": {}, "items": []},
    ]}}],
    "nested_checklist_list": [{"type": "list", "data": {"style": "checklist", "items": [
        {"content": "parent", "meta": {"checked": True}, "items": [
            {"content": "child", "meta": {"checked": False}, "items": []},
        ]},
    ]}}],
    "code": [{"type": "code", "data": {"code": "def f():\n    return 1", "language": "python"}}],
    "quote": [{"type": "quote", "data": {"text": "Stay hungry", "caption": "Jobs"}}],
    "delimiter": [
        {"type": "paragraph", "data": {"text": "above"}},
        {"type": "delimiter", "data": {}},
        {"type": "paragraph", "data": {"text": "below"}},
    ],
    "table": [{"type": "table", "data": {"content": [["A", "B"], ["1", "<b>2</b>"]]}}],
    "checklist": [{"type": "checklist", "data": {"items": [
        {"text": "Done", "checked": True},
        {"text": "Todo", "checked": False},
    ]}}],
    "image": [{"type": "image", "data": {"url": "https://img.example/cat.png",
                                         "caption": "My cat", "alt": "cat"}}],
    "embed": [{"type": "embed", "data": {"source": "https://video.example/1",
                                         "caption": "A talk"}}],
    "raw": [{"type": "raw", "data": {"html": "<div class=\"box\">hi</div>"}}],
    "warning": [{"type": "warning", "data": {"title": "Careful", "message": "Hot stove"}}],
}


@pytest.mark.parametrize("blocks", list(ROUNDTRIP_CASES.values()), ids=list(ROUNDTRIP_CASES))
def test_roundtrip(blocks):
    assert _roundtrip(blocks) == blocks


def test_roundtrip_with_line_parser():
    blocks = [
        {"type": "header", "data": {"text": "Title", "level": 2}},
        {"type": "paragraph", "data": {"text": "plain text"}},
        {"type": "list", "data": {"style": "ordered", "items": [
            {"content": "one", "meta": {}, "items": [
                {"content": "nested", "meta": {}, "items": []},
            ]},
        ]}},
        {"type": "code", "data": {"code": "x = 1", "language": "py"}},
        {"type": "delimiter", "data": {}},
    ]
    assert _roundtrip(blocks, BlockmarkConfig(parser="line")) == blocks


def test_markdown_stable_after_one_cycle():
    md = (
        "# Title\n\nIntro with **bold**.\n\n- a\n  - b\n\n"
        "> Quote\n>\n> — Someone\n\n```js\nlet x = 1;\n```\n"
    )
    once = serialize(deserialize(md))
    twice = serialize(deserialize(once))
    assert once == twice


def test_unknown_marker_does_not_accumulate():
    document = _doc({"type": "mystery", "data": {"text": "hello"}})
    md = serialize(document)
    for _ in range(3):
        md = serialize(deserialize(md))
    assert md.count("<!--") == 0
    assert md == "hello\n"


def test_empty_document():
    assert serialize({"blocks": []}) == ""
    assert deserialize("")["blocks"] == []


def test_uneven_table_rows_padded():
    blocks = [{"type": "table", "data": {"content": [["A"], ["1", "2"]]}}]
    assert _roundtrip(blocks) == [
        {"type": "table", "data": {"content": [["A", ""], ["1", "2"]]}},
    ]


@pytest.mark.parametrize("parser", ["mistune", "line"])
def test_custom_attribution_dash(parser):
    config = BlockmarkConfig(parser=parser, quote_attribution_dash="~")
    blocks = [{"type": "quote", "data": {"text": "Stay hungry", "caption": "Jobs"}}]
    assert _roundtrip(blocks, config) == blocks
