from __future__ import annotations

import re
from dataclasses import dataclass

from .canvas import Canvas
from .nodes import Node, NodeKind
from .styles import StyleRegistry

TOC_TITLE = "Table of Contents"
TOC_LINK_COLOR = (100, 149, 237)
TOC_BULLET = "•"


@dataclass(frozen=True)
class TocEntry:
    level: int
    title: str
    slug: str
    node: Node


def slugify(text: str) -> str:
    s = text.lower().strip()
    s = re.sub(r"[^a-z0-9]+", "-", s)
    s = re.sub(r"-+", "-", s).strip("-")
    return s or "untitled"


def collect_headings(root: Node) -> list[TocEntry]:
    entries: list[TocEntry] = []
    seen: dict[str, int] = {}
    for node in root.iter_kind(NodeKind.HEADING):
        title = node.plain_text().strip()
        base = slugify(title)
        count = seen.get(base, 0)
        seen[base] = count + 1
        slug = base if count == 0 else f"{base}-{count}"
        entries.append(TocEntry(level=node.level, title=title, slug=slug, node=node))
    return entries


def render_toc(canvas: Canvas, entries: list[TocEntry], links: dict[str, int], styles: StyleRegistry) -> None:
    if not entries:
        return
    heading = styles.h1
    canvas.set_font(heading.font, "B", 24)
    canvas.set_text_color(heading.text_color)
    canvas.cell(canvas.page_width - canvas.right_margin - canvas.get_left_margin(), 30, TOC_TITLE, new_line=True)
    canvas.ln(10)

    normal = styles.normal
    canvas.set_font(normal.font, "", 12)
    bullet = TOC_BULLET if canvas.string_width(TOC_BULLET) > 0 else "-"
    canvas.set_text_color(TOC_LINK_COLOR)
    for entry in entries:
        indent = "  " * (max(entry.level, 1) - 1)
        canvas.write(15, f"{indent} {bullet} {entry.title}", links[entry.slug])
        canvas.ln(15)
    canvas.add_page()
