from __future__ import annotations

import logging
from dataclasses import replace

from .canvas import Canvas
from .config import RenderOptions
from .containers import ContainerStack
from .errors import ElementError
from .highlight import find_lexer, highlight_lines
from .images import ImageFetcher, draw_inline_icon, parse_image_width, place_image
from .layout import (
    TableLayout,
    bullet_candidates,
    cell_fragment,
    fold_newlines,
    item_indentation,
    list_left_margin,
    nested_list_spacing,
    resolve_bullet,
    table_widths,
)
from .logging_utils import TRACE_LOGGER, get_logger
from .markers import LIST_TRANSITION_ATTR, strip_checkbox_marker, substitute_checkboxes
from .nodes import ListKind, Node, NodeKind
from .styles import Style, StyleRegistry
from .text import IconMode, TextSegment, emoji_filename, handle_icons, prepare_segments
from .toc import slugify

log = get_logger(__name__)
trace = logging.getLogger(TRACE_LOGGER)

INDENT_EMS = 3.0
ITEM_SPACING = 1.2
RULE_COLOR = (200, 200, 200)


class PdfRenderer:
    """Walks a document tree and turns enter/leave events into canvas calls."""

    def __init__(
        self,
        canvas: Canvas,
        styles: StyleRegistry,
        options: RenderOptions | None = None,
        *,
        column_widths: dict[Node, list[float]] | None = None,
        heading_slugs: dict[Node, str] | None = None,
        links: dict[str, int] | None = None,
        fetcher: ImageFetcher | None = None,
    ) -> None:
        self.canvas = canvas
        self.styles = styles
        self.options = options or RenderOptions()
        self.column_widths = column_widths if column_widths is not None else {}
        self.heading_slugs = heading_slugs if heading_slugs is not None else {}
        self.links = links if links is not None else {}
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or ImageFetcher(
            base_dir=self.options.base_dir,
            base_url=self.options.base_url,
            timeout_s=self.options.fetch_timeout_s,
        )
        self.errors: list[ElementError] = []
        self.table: TableLayout | None = None
        self._missing_icons: set[str] = set()

        self._apply(styles.normal)
        self.em = canvas.string_width("m") or styles.normal.size * 0.8
        self.indent = self.options.indent or INDENT_EMS * self.em
        self.stack = ContainerStack(canvas, styles.normal)

    @property
    def icon_mode(self) -> IconMode:
        return self.options.icon_mode

    def render(self, root: Node) -> None:
        try:
            for node, entering in root.walk():
                self.dispatch(node, entering)
        finally:
            if self._owns_fetcher:
                self.fetcher.close()

    def dispatch(self, node: Node, entering: bool) -> None:
        if trace.isEnabledFor(logging.DEBUG):
            trace.debug(
                "%s %s depth=%d %r",
                node.kind.value,
                "enter" if entering else "leave",
                self.stack.depth,
                node.literal[:40],
            )
        try:
            self._handle(node, entering)
        except ElementError as e:
            self.errors.append(e)
            log.warning("Skipping %s: %s", node.kind.value, e)

    def _handle(self, node: Node, entering: bool) -> None:
        kind = node.kind
        if kind is NodeKind.TEXT:
            if entering:
                self._text(node)
        elif kind is NodeKind.PARAGRAPH:
            self._paragraph(node, entering)
        elif kind is NodeKind.HEADING:
            self._heading(node, entering)
        elif kind is NodeKind.EMPHASIS:
            self._emphasis(entering, italic=True)
        elif kind is NodeKind.STRONG:
            self._emphasis(entering, bold=True)
        elif kind is NodeKind.LINK:
            self._link(node, entering)
        elif kind is NodeKind.IMAGE:
            if entering:
                self._image(node)
        elif kind is NodeKind.LIST:
            self._list(node, entering)
        elif kind is NodeKind.LIST_ITEM:
            self._item(node, entering)
        elif kind is NodeKind.CODE_BLOCK:
            if entering:
                self._code_block(node)
        elif kind is NodeKind.INLINE_CODE:
            if entering:
                self._inline_code(node)
        elif kind is NodeKind.BLOCK_QUOTE:
            self._block_quote(entering)
        elif kind is NodeKind.HORIZONTAL_RULE:
            if entering:
                self._horizontal_rule()
        elif kind is NodeKind.HTML_BLOCK:
            if entering:
                self._html_block(node)
        elif kind is NodeKind.LINE_BREAK:
            if entering:
                self._line_break()
        elif kind is NodeKind.TABLE:
            self._table(node, entering)
        elif kind is NodeKind.TABLE_HEAD:
            self._table_head(entering)
        elif kind is NodeKind.TABLE_BODY:
            self._table_body(entering)
        elif kind is NodeKind.TABLE_ROW:
            self._table_row(entering)
        elif kind is NodeKind.TABLE_CELL:
            self._table_cell(node, entering)

    # helpers

    def _apply(self, style: Style) -> None:
        self.canvas.set_font(style.font, style.font_style, style.size)
        self.canvas.set_text_color(style.text_color)
        self.canvas.set_fill_color(style.fill_color)

    def cr(self) -> None:
        self.canvas.ln(self.stack.peek().style.line_height)

    def reset_list_counter(self) -> None:
        if self.options.keep_numbering or self.stack.in_list():
            return
        self.stack.ordered_counter = 0

    def _link_for(self, slug: str) -> int:
        if slug not in self.links:
            self.links[slug] = self.canvas.add_link()
        return self.links[slug]

    def _code_mode(self) -> IconMode:
        if self.icon_mode is IconMode.EMBED:
            return IconMode.STRIP
        return self.icon_mode

    def _buffer_in_cell(self, fragment: str, style: Style) -> bool:
        cell = self.stack.cell_frame()
        if cell is None:
            return False
        cell.cell_text.append(fragment)
        cell.cell_style = style
        return True

    # inline

    def _text(self, node: Node) -> None:
        frame = self.stack.peek()
        style = frame.style
        if self._buffer_in_cell(cell_fragment(node.literal, self.icon_mode), style):
            return
        text = substitute_checkboxes(fold_newlines(node.literal))
        self._apply(style)
        link = frame.destination
        for segment in prepare_segments(text, self.icon_mode):
            if segment.is_icon and self.icon_mode is IconMode.EMBED:
                if self._write_icon(segment, style):
                    continue
                content = handle_icons(segment.content, IconMode.TEXT)
            else:
                content = segment.content
            if content:
                self.canvas.write(style.line_height, content, link)

    def _write_icon(self, segment: TextSegment, style: Style) -> bool:
        filename = emoji_filename(segment.runes)
        if filename is None:
            return False
        path = self.options.emoji_dir / filename
        if not path.is_file():
            if filename not in self._missing_icons:
                self._missing_icons.add(filename)
                log.debug("No emoji image %s; using text label", filename)
            return False
        try:
            draw_inline_icon(self.canvas, path, style.size, style.line_height)
        except ElementError as e:
            self.errors.append(e)
            log.warning("Skipping icon: %s", e)
            return False
        if segment.content.endswith(" "):
            self.canvas.write(style.line_height, " ")
        return True

    def _emphasis(self, entering: bool, **flags: bool) -> None:
        if not entering:
            self.stack.pop()
            return
        top = self.stack.peek()
        self.stack.push(replace(top.style, **flags), destination=top.destination)

    def _link(self, node: Node, entering: bool) -> None:
        if not entering:
            self.stack.pop()
            return
        destination = node.destination
        is_anchor = destination.startswith("#")
        if is_anchor and not self.options.anchor_links:
            self.stack.push(self.styles.normal)
            return
        target: str | int = destination
        if is_anchor:
            target = self._link_for(slugify(destination[1:]))
        elif self.options.base_url and not destination.startswith(("http://", "https://", "mailto:")):
            target = self.options.base_url + "/" + destination.replace("./", "", 1).lstrip("/")
        self.stack.push(self.styles.link, destination=target)

    def _inline_code(self, node: Node) -> None:
        style = self.styles.backtick
        if self._buffer_in_cell(cell_fragment(node.literal, self._code_mode()), style):
            return
        text = handle_icons(node.literal, self._code_mode())
        self._apply(style)
        width = self.canvas.string_width(text) + self.em
        if self.canvas.get_x() + width > self.canvas.page_width - self.canvas.right_margin:
            self.cr()
        self.canvas.cell(width, style.size, text, align="C", fill=True)

    def _line_break(self) -> None:
        if self._buffer_in_cell(" ", self.stack.peek().style):
            return
        self.cr()

    def _image(self, node: Node) -> None:
        if self.stack.cell_frame() is not None:
            self._buffer_in_cell(node.attrs.get("alt", ""), self.stack.peek().style)
            return
        self.cr()
        src, width, unit = parse_image_width(node.destination)
        with self.fetcher.open(src) as path:
            place_image(self.canvas, path, width_override=width, width_unit=unit)

    # blocks

    def _paragraph(self, node: Node, entering: bool) -> None:
        if node.parent is not None and node.parent.kind is NodeKind.LIST_ITEM:
            frame = self.stack.peek()
            if entering:
                if not frame.first_paragraph:
                    self.cr()
            elif frame.first_paragraph:
                frame.first_paragraph = False
            else:
                self.cr()
            return
        if entering:
            self.reset_list_counter()
        self.cr()

    def _heading(self, node: Node, entering: bool) -> None:
        if not entering:
            self.cr()
            self.stack.pop()
            return
        self.reset_list_counter()
        self.cr()
        self.stack.push(self.styles.heading(node.level))
        slug = self.heading_slugs.get(node)
        if slug and (self.options.anchor_links or self.options.toc):
            self.canvas.set_link(self._link_for(slug))

    def _code_block(self, node: Node) -> None:
        self.reset_list_counter()
        code = handle_icons(node.literal, self._code_mode())
        lexer = find_lexer(node.info, syntax_dir=self.options.syntax_dir, literal=node.literal)
        self.cr()
        style = self.styles.code
        if lexer is None:
            self._apply(self.styles.backtick)
            self.canvas.multi_cell(0, self.styles.backtick.line_height, code.rstrip("\n"), fill=True)
            return
        self._apply(style)
        for line in highlight_lines(code, lexer):
            for run in line:
                self.canvas.set_text_color(run.color or style.text_color)
                self.canvas.write(style.line_height, run.text)
            self.canvas.ln(style.line_height)
        self.canvas.set_text_color(style.text_color)

    def _block_quote(self, entering: bool) -> None:
        if not entering:
            self.stack.pop()
            self.cr()
            return
        self.reset_list_counter()
        margin = self.canvas.get_left_margin() + self.indent
        self.stack.push(self.styles.blockquote, left_margin=margin, content_left_margin=margin)
        self.canvas.set_left_margin(margin)

    def _horizontal_rule(self) -> None:
        self.reset_list_counter()
        if self.options.hr_new_page:
            self.canvas.add_page()
            return
        self.cr()
        y = self.canvas.get_y()
        self.canvas.set_draw_color(RULE_COLOR)
        self.canvas.set_line_width(1.5)
        self.canvas.line(self.canvas.get_left_margin(), y, self.canvas.page_width - self.canvas.right_margin, y)
        self.cr()

    def _html_block(self, node: Node) -> None:
        self.cr()
        style = self.styles.backtick
        self._apply(style)
        text = handle_icons(node.literal, self._code_mode()).rstrip("\n")
        self.canvas.multi_cell(0, style.size, text, fill=True)
        self.cr()

    # lists

    def _list(self, node: Node, entering: bool) -> None:
        if not entering:
            frame = self.stack.pop()
            if frame.list_kind is ListKind.ORDERED and not self.stack.in_list():
                self.stack.ordered_counter = frame.item_number
            if self.stack.depth < 2:
                self.cr()
            return

        top = self.stack.peek()
        if LIST_TRANSITION_ATTR in node.attrs:
            self.cr()
        if top.list_kind is not ListKind.NONE:
            self.canvas.ln(nested_list_spacing(top.style))

        margin = list_left_margin(top.left_margin, top.content_left_margin, self.indent)
        nested = self.stack.in_list()
        if not nested and node.list_kind is not ListKind.ORDERED:
            self.reset_list_counter()
        carried = self.stack.ordered_counter
        frame = self.stack.push(
            self.styles.normal,
            list_kind=node.list_kind,
            left_margin=margin,
            content_left_margin=margin,
        )
        self.canvas.set_left_margin(margin)
        if node.list_kind is ListKind.ORDERED:
            seed = node.start - 1
            if not nested and not node.explicit_start:
                # top-level lists carry on unless a block reset the counter
                seed = carried
            self.stack.ordered_counter = seed
            frame.item_number = seed

    def _item(self, node: Node, entering: bool) -> None:
        if not entering:
            self.stack.pop()
            return

        parent = self.stack.peek()
        if parent.list_kind is ListKind.ORDERED:
            self.stack.ordered_counter += 1
            number = self.stack.ordered_counter
            parent.item_number = number
        else:
            parent.item_number += 1
            number = parent.item_number

        style = replace(self.styles.normal, spacing=ITEM_SPACING)
        self.canvas.ln(style.size - 2.0)
        frame = self.stack.push(
            style,
            list_kind=parent.list_kind,
            left_margin=parent.left_margin,
            content_left_margin=parent.left_margin,
        )
        frame.item_number = number
        self._apply(style)
        self.canvas.set_x(frame.left_margin)

        definition = node.attrs.get("definition")
        if parent.list_kind is ListKind.DEFINITION:
            content = frame.left_margin
            if definition == "description":
                content += item_indentation(0.0, self.em)
        else:
            checkbox = strip_checkbox_marker(node) if parent.list_kind is ListKind.UNORDERED else None
            candidates = bullet_candidates(parent.list_kind, number, checkbox)
            label, width = resolve_bullet(self.canvas, candidates)
            if candidates and label != candidates[0]:
                trace.debug("bullet fallback %r -> %r", candidates[0], label)
            self.canvas.write(style.line_height, label)
            content = frame.left_margin + item_indentation(width, self.em)
            current_x = self.canvas.get_x()
            if current_x > content:
                content = current_x
        frame.content_left_margin = content
        self.canvas.set_left_margin(content)
        self.canvas.set_x(content)

    # tables

    def _table(self, node: Node, entering: bool) -> None:
        if entering:
            self.cr()
            self.stack.push(self.styles.table_header)
            widths = self.column_widths.get(node)
            if widths is None:
                content_width = self.canvas.page_width - self.canvas.right_margin - self.canvas.get_left_margin()
                widths = table_widths(node, self.canvas, self.styles, content_width, self.icon_mode)
                self.column_widths[node] = widths
            self.table = TableLayout(widths=list(widths), header_fill=False)
            self.canvas.set_draw_color(self.styles.normal.text_color)
            self.canvas.set_line_width(1)
            return
        if self.table is not None:
            self.canvas.cell(self.table.total_width, 0, "", "T")
        self.table = None
        self.stack.pop()
        self.cr()

    def _table_head(self, entering: bool) -> None:
        if entering:
            self.stack.push(self.styles.table_header, is_header=True)
        else:
            self.stack.pop()

    def _table_body(self, entering: bool) -> None:
        if entering:
            self.stack.push(self.styles.table_body)
        else:
            self.stack.pop()
            self.canvas.ln()

    def _table_row(self, entering: bool) -> None:
        if not entering:
            self.stack.pop()
            return
        top = self.stack.peek()
        style = self.styles.table_header if top.is_header else self.styles.table_body
        self.canvas.ln()
        if self.table is not None:
            self.table.start_row()
        self.stack.push(style, is_header=top.is_header)

    def _table_cell(self, node: Node, entering: bool) -> None:
        if entering:
            style = self.styles.table_header if node.is_header else self.styles.table_body
            self.stack.push(style, is_header=node.is_header, is_cell=True)
            self._apply(style)
            return
        frame = self.stack.pop()
        style = frame.cell_style or frame.style
        width = self.table.next_width() if self.table is not None else 0.0
        fill = frame.is_header and self.table is not None and self.table.header_fill
        self._apply(style)
        self.canvas.cell(
            width,
            style.line_height,
            "".join(frame.cell_text),
            "B" if frame.is_header else 0,
            align="L",
            fill=fill,
        )
