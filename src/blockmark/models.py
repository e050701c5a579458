"""Public data models for blockmark.

Block-documents themselves are plain ``dict`` values (they are the editor's
JSON save format); this module holds the typed pieces around them: the
recursive :class:`ListItem`, conversion warnings, and the result object of
the Markdown-to-blocks direction.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from blockmark.config import DEFAULT_DOCUMENT_VERSION

# ---------------------------------------------------------------------------
# Conversion warnings
# ---------------------------------------------------------------------------

@dataclass
class ConversionWarning:
    """A non-fatal issue encountered during conversion.

    Attributes
    ----------
    code:
        A machine-readable warning code (e.g. ``"PARSE_FALLBACK"``).
    message:
        A human-readable description of the issue.
    context:
        Arbitrary structured data for diagnostics.
    """

    code: str
    message: str
    context: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# List items
# ---------------------------------------------------------------------------

@dataclass
class ListItem:
    """One entry of a list block, owning its nested entries by value.

    Attributes
    ----------
    content:
        Inline-markup text of the item.
    items:
        Nested items, rendered one level deeper.
    meta:
        Editor metadata; ``meta["checked"]`` holds the checkbox state of
        checklist-style items.
    style:
        Style of the nested items when it differs from the enclosing list
        (``"ordered"``, ``"unordered"`` or ``"checklist"``).
    """

    content: str = ""
    items: list[ListItem] = field(default_factory=list)
    meta: dict = field(default_factory=dict)
    style: str | None = None

    @property
    def checked(self) -> bool:
        return bool(self.meta.get("checked", False))

    def to_dict(self) -> dict[str, Any]:
        """Return the editor save-format shape of this item and its subtree."""
        out: dict[str, Any] = {
            "content": self.content,
            "meta": dict(self.meta),
            "items": [],
        }
        if self.style:
            out["style"] = self.style
        # Explicit stack so deeply nested lists never hit the recursion limit.
        stack: list[tuple[ListItem, dict[str, Any]]] = [(self, out)]
        while stack:
            item, target = stack.pop()
            for child in item.items:
                child_out: dict[str, Any] = {
                    "content": child.content,
                    "meta": dict(child.meta),
                    "items": [],
                }
                if child.style:
                    child_out["style"] = child.style
                target["items"].append(child_out)
                stack.append((child, child_out))
        return out

    @classmethod
    def from_value(cls, value: Any) -> ListItem:
        """Build a :class:`ListItem` from a saved item.

        Accepts the nested ``{"content", "items", "meta"}`` shape as well as
        legacy bare strings.  Anything else becomes an empty item.
        """
        root = cls()
        stack: list[tuple[Any, ListItem]] = [(value, root)]
        while stack:
            raw, item = stack.pop()
            if isinstance(raw, str):
                item.content = raw
                continue
            if not isinstance(raw, dict):
                continue
            content = raw.get("content", raw.get("text", ""))
            item.content = content if isinstance(content, str) else ""
            meta = raw.get("meta")
            item.meta = dict(meta) if isinstance(meta, dict) else {}
            if "checked" in raw and "checked" not in item.meta:
                item.meta["checked"] = bool(raw["checked"])
            style = raw.get("style")
            item.style = style if isinstance(style, str) and style else None
            children = raw.get("items")
            if isinstance(children, list):
                for child in children:
                    child_item = cls()
                    item.items.append(child_item)
                    stack.append((child, child_item))
        return root


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

def new_document(
    blocks: list[dict] | None = None,
    version: str = DEFAULT_DOCUMENT_VERSION,
) -> dict[str, Any]:
    """Return a fresh block-document dict stamped with the current time."""
    return {
        "time": int(time.time() * 1000),
        "version": version,
        "blocks": list(blocks or []),
    }


@dataclass
class ConversionResult:
    """Output of the Markdown-to-blocks conversion.

    Attributes
    ----------
    document:
        The block-document dict (``time``, ``version``, ``blocks``).
    warnings:
        Non-fatal issues discovered during conversion.
    """

    document: dict = field(default_factory=new_document)
    warnings: list[ConversionWarning] = field(default_factory=list)

    @property
    def blocks(self) -> list[dict]:
        return self.document.get("blocks", [])
