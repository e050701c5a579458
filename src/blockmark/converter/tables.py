"""Table extraction: table AST node to a row-major grid of cell strings.

The normalized table node mirrors mistune's ``table`` plugin::

    {
        "type": "table",
        "children": [
            {"type": "table_head", "children": [
                {"type": "table_cell", "attrs": {"align": null, "head": true},
                 "children": [inline nodes...]},
                ...
            ]},
            {"type": "table_body", "children": [
                {"type": "table_row", "children": [
                    {"type": "table_cell", "attrs": {...},
                     "children": [inline nodes...]},
                    ...
                ]},
                ...
            ]},
        ]
    }

The head cells become the first row.  Cells whose children are wrapped in
``paragraph`` nodes are also accepted.  Anything structurally unexpected
degrades to an empty string rather than raising.
"""

from __future__ import annotations

from typing import Any

from blockmark.converter.inline_renderer import RenderInline, render_inline


def extract_table(
    token: dict[str, Any],
    render: RenderInline = render_inline,
) -> list[list[str]]:
    """Flatten a table node into ``content`` rows of inline-markup strings."""
    rows: list[list[str]] = []

    for child in token.get("children") or []:
        if not isinstance(child, dict):
            continue
        child_type = child.get("type", "")

        if child_type == "table_head":
            rows.append(_row_cells(child.get("children") or [], render))

        elif child_type == "table_body":
            for row in child.get("children") or []:
                if isinstance(row, dict) and row.get("type") == "table_row":
                    rows.append(_row_cells(row.get("children") or [], render))

        elif child_type == "table_row":
            rows.append(_row_cells(child.get("children") or [], render))

    return [row for row in rows if row]


def _row_cells(cells: list[Any], render: RenderInline) -> list[str]:
    """Render each ``table_cell`` of a row; malformed cells become ``""``."""
    result: list[str] = []
    for cell in cells:
        if not isinstance(cell, dict) or cell.get("type") != "table_cell":
            result.append("")
            continue
        result.append(_cell_text(cell.get("children") or [], render))
    return result


def _cell_text(children: list[Any], render: RenderInline) -> str:
    if any(isinstance(c, dict) and c.get("type") == "paragraph" for c in children):
        parts = [
            render(c.get("children") or [])
            for c in children
            if isinstance(c, dict) and c.get("type") == "paragraph"
        ]
        return "<br>".join(part.strip() for part in parts if part.strip())
    return render(children).strip()
