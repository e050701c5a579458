"""Inline markup to Markdown conversion.

Block text fields carry the editor's inline markup: a small HTML subset
(``<b>``, ``<i>``, ``<code>``, ``<a href>``, ``<br>``, with ``<strong>`` and
``<em>`` accepted as synonyms) whose literal text is entity-escaped.  This
module turns that markup into Markdown inline syntax.

The input is tokenized into tags and text runs.  Tags map to Markdown
delimiters; text runs are entity-decoded and, when requested, escaped with
:func:`markdown_escape`.  Because escaping only ever touches text runs, the
delimiters produced from tags are never double-escaped, and text inside
``<code>`` is left verbatim.
"""

from __future__ import annotations

import html
import re

# Characters that are escaped anywhere in an inline text run.
ESCAPE_CHARS = r'\`*_{}[]()#!'

_ESCAPE_RE = re.compile(r'([\\`*_{}\[\]()#!])')

# List markers are only significant at the start of a line.
_LEADING_BULLET_RE = re.compile(r'^(\s*)([-+])', re.MULTILINE)
_LEADING_ORDINAL_RE = re.compile(r'^(\s*\d+)([.)])', re.MULTILINE)

_TAG_RE = re.compile(r'<(/?)([a-zA-Z][a-zA-Z0-9]*)\b([^>]*)>')
_HREF_RE = re.compile(r'''href\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+))''', re.IGNORECASE)

_BOLD_TAGS = frozenset({"b", "strong"})
_ITALIC_TAGS = frozenset({"i", "em"})


def markdown_escape(text: str, context: str = "inline") -> str:
    """Escape Markdown-significant characters.

    Parameters
    ----------
    text:
        The raw text to escape.
    context:
        One of ``"inline"``, ``"code"``, or ``"url"``.

        * ``"inline"`` -- escape ``\\ ` * _ { } [ ] ( ) # !`` everywhere, and
          ``-``/``+``/``N.`` list markers at the start of a line.
        * ``"code"`` -- no escaping (content is inside a code span/block).
        * ``"url"`` -- only percent-encode parentheses so links parse.
    """
    if context == "code":
        return text
    if context == "url":
        return text.replace("(", "%28").replace(")", "%29")
    text = _ESCAPE_RE.sub(r'\\\1', text)
    text = _LEADING_BULLET_RE.sub(r'\1\\\2', text)
    return _LEADING_ORDINAL_RE.sub(r'\1\\\2', text)


def markup_to_markdown(text: object, *, escape: bool = False) -> str:
    """Convert an inline-markup string to Markdown inline syntax.

    Non-string input yields ``""``.  Unknown tags are dropped while their
    text content is kept.  ``<br>`` becomes a newline.
    """
    if not isinstance(text, str) or not text:
        return ""

    parts: list[str] = []
    link_stack: list[str | None] = []
    code_depth = 0
    pos = 0

    for match in _TAG_RE.finditer(text):
        parts.append(_convert_text(text[pos:match.start()], escape and code_depth == 0))
        pos = match.end()

        closing = match.group(1) == "/"
        name = match.group(2).lower()

        if name in _BOLD_TAGS:
            parts.append("**")
        elif name in _ITALIC_TAGS:
            parts.append("*")
        elif name == "code":
            parts.append("`")
            code_depth = max(0, code_depth - 1) if closing else code_depth + 1
        elif name == "br":
            parts.append("\n")
        elif name == "a":
            if closing:
                href = link_stack.pop() if link_stack else None
                if href is not None:
                    parts.append(f"]({markdown_escape(href, 'url')})")
            else:
                href = _extract_href(match.group(3))
                link_stack.append(href)
                if href is not None:
                    parts.append("[")
        # Any other tag is dropped; its text content survives.

    parts.append(_convert_text(text[pos:], escape and code_depth == 0))

    # An anchor left open by malformed markup still needs its target.
    while link_stack:
        href = link_stack.pop()
        if href is not None:
            parts.append(f"]({markdown_escape(href, 'url')})")

    return "".join(parts)


def markup_to_text(text: object) -> str:
    """Strip all inline markup, returning entity-decoded plain text."""
    if not isinstance(text, str):
        return ""
    stripped = re.sub(r'<br\s*/?>', "\n", text, flags=re.IGNORECASE)
    return html.unescape(_TAG_RE.sub("", stripped))


def _convert_text(segment: str, escape: bool) -> str:
    if not segment:
        return ""
    segment = html.unescape(segment)
    return markdown_escape(segment) if escape else segment


def _extract_href(attrs: str) -> str | None:
    match = _HREF_RE.search(attrs)
    if match is None:
        return None
    raw = next(group for group in match.groups() if group is not None)
    return html.unescape(raw)
