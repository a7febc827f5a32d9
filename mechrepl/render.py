"""
render — box-drawn text grids for tables.

    ┌───┬────┐
    │1.0│22.5│
    │3.0│4.0 │
    └───┴────┘

Column widths are the widest formatted cell in each column. There is no
header row.
"""

from __future__ import annotations

from typing import Any

from .table import Table, is_bool, is_number


def format_value(value: Any) -> str:
    if is_bool(value):
        return repr(bool(value))
    if is_number(value):
        try:
            return str(float(value))
        except OverflowError:
            return str(value)
    return repr(value)


def column_widths(cells: list[list[str]], columns: int) -> list[int]:
    widths = [0] * columns
    for row in cells:
        for j, text in enumerate(row):
            widths[j] = max(widths[j], len(text))
    return widths


def _border(widths: list[int], left: str, joint: str, right: str) -> str:
    return left + joint.join("─" * w for w in widths) + right


def render_table(table: Table) -> str:
    """Render table as a bordered grid, lines joined with newlines."""
    # a table without columns draws as the bare frame ┌┐ / └┘
    rows = table.rows if table.columns else 0
    cells = [[format_value(table.get(i, j)) for j in range(table.columns)]
             for i in range(rows)]
    widths = column_widths(cells, table.columns)

    lines = [_border(widths, "┌", "┬", "┐")]
    for row in cells:
        padded = (text + " " * max(0, w - len(text)) for text, w in zip(row, widths))
        lines.append("│" + "│".join(padded) + "│")
    lines.append(_border(widths, "└", "┴", "┘"))
    return "\n".join(lines)
