from __future__ import annotations

from dataclasses import dataclass

from .canvas import Canvas
from .markers import CHECKED_BOX, UNCHECKED_BOX, substitute_checkboxes
from .nodes import ListKind, Node, NodeKind
from .styles import Style, StyleRegistry
from .text import IconMode, handle_icons

BULLET = "•"
DASH = "-"
ITEM_GAP_EM = 0.35
MIN_INDENT_EM = 1.2
NESTED_LIST_FACTOR = 0.4
CELL_PADDING = 2.0

_ASCII_CHECKBOXES = {CHECKED_BOX: "[x]", UNCHECKED_BOX: "[ ]"}


def bullet_candidates(list_kind: ListKind, number: int, checkbox: str | None = None) -> list[str]:
    if list_kind is ListKind.DEFINITION:
        return []
    if list_kind is ListKind.ORDERED:
        return [f"{number}."]
    if checkbox is not None:
        return [checkbox, _ASCII_CHECKBOXES.get(checkbox, DASH), DASH]
    return [BULLET, DASH]


def resolve_bullet(canvas: Canvas, candidates: list[str]) -> tuple[str, float]:
    """First label the current font can draw, with its width; the dash is the last resort."""
    for label in candidates:
        width = canvas.string_width(label)
        if width > 0:
            return label, width
    if not candidates:
        return "", 0.0
    return DASH, canvas.string_width(DASH)


def item_indentation(label_width: float, em: float) -> float:
    return max(label_width + ITEM_GAP_EM * em, MIN_INDENT_EM * em)


def list_left_margin(parent_left: float, parent_content: float, indent: float) -> float:
    base = parent_content or parent_left
    return base + indent


def nested_list_spacing(style: Style) -> float:
    return style.line_height * NESTED_LIST_FACTOR


def fold_newlines(text: str) -> str:
    return text.replace("\r\n", " ").replace("\n", " ")


def cell_fragment(literal: str, mode: IconMode) -> str:
    # Cells cannot hold inline images, so embedded icons fall back to labels.
    if mode is IconMode.EMBED:
        mode = IconMode.TEXT
    return handle_icons(substitute_checkboxes(fold_newlines(literal)), mode)


def cell_display_text(cell: Node, mode: IconMode) -> str:
    parts: list[str] = []
    for node, entering in cell.walk():
        if not entering:
            continue
        if node.kind is NodeKind.TEXT:
            parts.append(cell_fragment(node.literal, mode))
        elif node.kind is NodeKind.INLINE_CODE:
            parts.append(cell_fragment(node.literal, mode))
        elif node.kind is NodeKind.LINE_BREAK:
            parts.append(" ")
    return "".join(parts)


@dataclass
class TableLayout:
    widths: list[float]
    cell_index: int = 0
    header_fill: bool = True

    @property
    def total_width(self) -> float:
        return sum(self.widths)

    def start_row(self) -> None:
        self.cell_index = 0

    def next_width(self) -> float:
        if not self.widths:
            return 0.0
        idx = min(self.cell_index, len(self.widths) - 1)
        self.cell_index += 1
        return self.widths[idx]


def _table_rows(table: Node) -> list[Node]:
    return list(table.iter_kind(NodeKind.TABLE_ROW))


def _measure(canvas: Canvas, style: Style, text: str) -> float:
    canvas.set_font(style.font, style.font_style, style.size)
    return canvas.string_width(text)


def table_widths(
    table: Node,
    canvas: Canvas,
    styles: StyleRegistry,
    content_width: float,
    mode: IconMode = IconMode.TEXT,
) -> list[float]:
    rows = _table_rows(table)
    cols = max((len(row.children) for row in rows), default=0)
    if cols == 0:
        return []
    widths = [0.0] * cols
    for row in rows:
        for c_index, cell in enumerate(row.children):
            style = styles.table_header if cell.is_header else styles.table_body
            width = _measure(canvas, style, cell_display_text(cell, mode)) + CELL_PADDING * 2
            widths[c_index] = max(widths[c_index], width)
    total = sum(widths)
    if total <= 0:
        return [content_width / cols] * cols
    if total > content_width:
        scale = content_width / total
        widths = [w * scale for w in widths]
    return widths


def compute_column_widths(
    root: Node,
    canvas: Canvas,
    styles: StyleRegistry,
    content_width: float,
    mode: IconMode = IconMode.TEXT,
) -> dict[Node, list[float]]:
    return {
        table: table_widths(table, canvas, styles, content_width, mode)
        for table in root.iter_kind(NodeKind.TABLE)
    }
