from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from markpdf.config import RenderOptions
from markpdf.converter import prepare_document
from markpdf.layout import compute_column_widths
from markpdf.nodes import Node
from markpdf.renderer import PdfRenderer
from markpdf.styles import StyleRegistry, light_theme
from markpdf.toc import collect_headings


class RecordingCanvas:
    """In-memory canvas that records draw calls; widths are half the font size per character."""

    def __init__(
        self,
        *,
        page_width: float = 595.0,
        page_height: float = 842.0,
        margin: float = 72.0,
        missing: str = "",
    ) -> None:
        self.page_width = page_width
        self.page_height = page_height
        self.right_margin = margin
        self.top_margin = margin
        self.bottom_margin = margin
        self.left_margin = margin
        self.x = margin
        self.y = margin
        self.font: tuple[str, str, float] = ("Helvetica", "", 11.0)
        self.missing = set(missing)
        self.calls: list[tuple] = []
        self._links = 0

    def get_left_margin(self) -> float:
        return self.left_margin

    def set_left_margin(self, margin: float) -> None:
        self.left_margin = margin
        self.calls.append(("left_margin", margin))

    def get_x(self) -> float:
        return self.x

    def get_y(self) -> float:
        return self.y

    def set_x(self, x: float) -> None:
        self.x = x

    def set_y(self, y: float) -> None:
        self.y = y
        self.x = self.left_margin

    def set_font(self, family: str, style: str, size: float) -> None:
        self.font = (family, style, size)

    def set_text_color(self, color) -> None:
        self.calls.append(("text_color", tuple(color)))

    def set_fill_color(self, color) -> None:
        self.calls.append(("fill_color", tuple(color)))

    def set_draw_color(self, color) -> None:
        self.calls.append(("draw_color", tuple(color)))

    def set_line_width(self, width: float) -> None:
        self.calls.append(("line_width", width))

    def string_width(self, text: str) -> float:
        if any(ch in self.missing for ch in text):
            return 0.0
        return len(text) * self.font[2] * 0.5

    def write(self, h: float, text: str, link: str | int = "") -> None:
        self.calls.append(("write", text, link))
        self.x += self.string_width(text)

    def cell(self, w, h, text="", border=0, *, align="L", fill=False, new_line=False) -> None:
        self.calls.append(("cell", w, h, text, border, align, fill))
        self.x += w
        if new_line:
            self.ln(h)

    def multi_cell(self, w, h, text, *, align="L", fill=False) -> None:
        self.calls.append(("multi_cell", w, h, text, fill))
        self.ln(h * (text.count("\n") + 1))

    def line(self, x1, y1, x2, y2) -> None:
        self.calls.append(("line", x1, y1, x2, y2))

    def image(self, path: Path, *, x: float, y: float, w: float, h: float) -> None:
        self.calls.append(("image", Path(path).name, x, y, w, h))

    def add_link(self) -> int:
        self._links += 1
        return self._links

    def set_link(self, link: int) -> None:
        self.calls.append(("set_link", link))

    def ln(self, h: float | None = None) -> None:
        step = self.font[2] if h is None else h
        self.calls.append(("ln", step))
        self.x = self.left_margin
        self.y += step

    def add_page(self) -> None:
        self.calls.append(("add_page",))
        self.y = self.top_margin
        self.x = self.left_margin

    # helpers for assertions

    def named(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    def writes(self) -> list[str]:
        return [call[1] for call in self.named("write")]


@pytest.fixture()
def canvas() -> RecordingCanvas:
    return RecordingCanvas()


@pytest.fixture()
def styles() -> StyleRegistry:
    return light_theme()


RenderFn = Callable[..., tuple[PdfRenderer, RecordingCanvas, Node]]


@pytest.fixture()
def render(styles: StyleRegistry) -> RenderFn:
    """Run the full tree pipeline against a recording canvas."""

    def _render(source: str, *, canvas: RecordingCanvas | None = None, fetcher=None, **opts) -> tuple:
        canvas = canvas or RecordingCanvas()
        options = RenderOptions(**opts)
        root = prepare_document(source)
        content_width = canvas.page_width - canvas.left_margin - canvas.right_margin
        renderer = PdfRenderer(
            canvas,
            styles,
            options,
            column_widths=compute_column_widths(root, canvas, styles, content_width, options.icon_mode),
            heading_slugs={entry.node: entry.slug for entry in collect_headings(root)},
            fetcher=fetcher,
        )
        renderer.render(root)
        return renderer, canvas, root

    return _render
