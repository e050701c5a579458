"""List reconstruction: nested list AST nodes to :class:`ListItem` trees.

A normalized list node looks like::

    {
        "type": "list",
        "attrs": {"ordered": false},
        "children": [
            {"type": "list_item", "children": [
                {"type": "paragraph", "children": [inline nodes...]},
                {"type": "list", "attrs": {...}, "children": [...]},
            ]},
            {"type": "task_list_item", "attrs": {"checked": true},
             "children": [...]},
        ]
    }

Reconstruction walks this tree with an explicit work stack instead of
recursion, so list depth is bounded only by what the parser accepts.
"""

from __future__ import annotations

import html

from blockmark.converter.inline_renderer import RenderInline, render_inline
from blockmark.models import ListItem

_ITEM_TYPES: frozenset[str] = frozenset({"list_item", "task_list_item"})

# Child node kinds whose inline children form the item's text.
_TEXT_TYPES: frozenset[str] = frozenset({"paragraph", "heading"})


def list_style(node: dict) -> str:
    """Return the block style for a list node.

    A list whose items are all task items is a ``"checklist"``; otherwise the
    ``ordered`` attribute decides between ``"ordered"`` and ``"unordered"``.
    """
    items = [
        child for child in node.get("children") or []
        if isinstance(child, dict) and child.get("type") in _ITEM_TYPES
    ]
    if items and all(child["type"] == "task_list_item" for child in items):
        return "checklist"
    return "ordered" if (node.get("attrs") or {}).get("ordered") else "unordered"


def reconstruct_list(
    nodes: list[dict] | None,
    render: RenderInline = render_inline,
    *,
    style: str = "unordered",
) -> list[ListItem]:
    """Convert list-item AST nodes into :class:`ListItem` values.

    Parameters
    ----------
    nodes:
        The ``children`` of a list node.
    render:
        Inline renderer applied to paragraph children.
    style:
        Style of the enclosing list.  A nested list whose style differs is
        recorded on its parent item's ``style``.

    Items with neither text nor nested items are dropped.
    """
    root: list[ListItem] = []
    stack: list[tuple[list[dict], list[ListItem], str]] = [(nodes or [], root, style)]

    while stack:
        item_nodes, target, enclosing = stack.pop()

        for node in item_nodes:
            if not isinstance(node, dict) or node.get("type") not in _ITEM_TYPES:
                continue

            texts: list[str] = []
            nested: list[dict] = []
            for child in node.get("children") or []:
                if not isinstance(child, dict):
                    continue
                child_type = child.get("type", "")
                if child_type in _TEXT_TYPES:
                    texts.append(render(child.get("children") or []))
                elif child_type == "list":
                    nested.append(child)
                elif child_type == "code":
                    texts.append(f"<code>{html.escape(child.get('raw', ''), quote=False)}</code>")
                elif "children" in child:
                    texts.append(render(child["children"]))

            content = "<br>".join(text.strip() for text in texts if text.strip())
            nested_children = [
                grandchild
                for sub in nested
                for grandchild in sub.get("children") or []
            ]
            if not content and not nested_children:
                continue

            item = ListItem(content=content)
            if node["type"] == "task_list_item":
                item.meta["checked"] = bool((node.get("attrs") or {}).get("checked", False))
            target.append(item)

            if nested_children:
                nested_style = list_style(nested[0])
                if nested_style != enclosing:
                    item.style = nested_style
                # Sibling nested lists merge into one run of items.
                stack.append((nested_children, item.items, nested_style))

    return root
