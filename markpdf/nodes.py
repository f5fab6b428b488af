from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from markdown_it import MarkdownIt
from markdown_it.token import Token
from markdown_it.tree import SyntaxTreeNode
from mdit_py_plugins.deflist import deflist_plugin


class NodeKind(str, Enum):
    DOCUMENT = "document"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    TEXT = "text"
    EMPHASIS = "emphasis"
    STRONG = "strong"
    LINK = "link"
    IMAGE = "image"
    LIST = "list"
    LIST_ITEM = "list-item"
    CODE_BLOCK = "code-block"
    INLINE_CODE = "inline-code"
    BLOCK_QUOTE = "block-quote"
    HORIZONTAL_RULE = "horizontal-rule"
    TABLE = "table"
    TABLE_HEAD = "table-head"
    TABLE_BODY = "table-body"
    TABLE_ROW = "table-row"
    TABLE_CELL = "table-cell"
    HTML_BLOCK = "html-block"
    LINE_BREAK = "line-break"
    OTHER = "other"


class ListKind(str, Enum):
    NONE = "none"
    UNORDERED = "unordered"
    ORDERED = "ordered"
    DEFINITION = "definition"


@dataclass(eq=False)
class Node:
    kind: NodeKind
    literal: str = ""
    level: int = 0
    destination: str = ""
    title: str = ""
    info: str = ""
    list_kind: ListKind = ListKind.NONE
    start: int = 1
    explicit_start: bool = False
    is_header: bool = False
    attrs: dict[str, str] = field(default_factory=dict)
    parent: Node | None = field(default=None, repr=False)
    children: list[Node] = field(default_factory=list, repr=False)

    def append(self, child: Node) -> Node:
        child.parent = self
        self.children.append(child)
        return child

    def _index(self) -> int:
        if self.parent is None:
            return -1
        return self.parent.children.index(self)

    @property
    def prev_sibling(self) -> Node | None:
        idx = self._index()
        if idx <= 0:
            return None
        return self.parent.children[idx - 1]  # type: ignore[union-attr]

    @property
    def next_sibling(self) -> Node | None:
        idx = self._index()
        if idx < 0 or idx + 1 >= len(self.parent.children):  # type: ignore[union-attr]
            return None
        return self.parent.children[idx + 1]  # type: ignore[union-attr]

    def walk(self) -> Iterator[tuple[Node, bool]]:
        """Yield ``(node, entering)`` for every node in document order, enter and leave."""
        stack: list[tuple[Node, bool]] = [(self, True)]
        while stack:
            node, entering = stack.pop()
            yield node, entering
            if entering:
                stack.append((node, False))
                for child in reversed(node.children):
                    stack.append((child, True))

    def iter_kind(self, kind: NodeKind) -> Iterator[Node]:
        for node, entering in self.walk():
            if entering and node.kind is kind:
                yield node

    def plain_text(self) -> str:
        parts: list[str] = []
        for node, entering in self.walk():
            if not entering:
                continue
            if node.kind in (NodeKind.TEXT, NodeKind.INLINE_CODE):
                parts.append(node.literal)
            elif node.kind is NodeKind.LINE_BREAK:
                parts.append(" ")
        return "".join(parts).replace("\n", " ")


def _attrs_to_dict(attrs: object | None) -> dict[str, str]:
    if not attrs:
        return {}
    if isinstance(attrs, dict):
        return {str(k): "" if v is None else str(v) for k, v in attrs.items()}
    out: dict[str, str] = {}
    try:
        for item in attrs:  # type: ignore[attr-defined]
            if isinstance(item, (list, tuple)) and item:
                key = item[0]
                val = item[1] if len(item) > 1 else ""
                if key is not None:
                    out[str(key)] = "" if val is None else str(val)
    except TypeError:
        return {}
    return out


def _list_start(attrs: dict[str, str]) -> tuple[int, bool]:
    if "start" not in attrs:
        return 1, False
    try:
        return max(1, int(attrs["start"])), True
    except (TypeError, ValueError):
        return 1, False


_SIMPLE_KINDS = {
    "paragraph": NodeKind.PARAGRAPH,
    "blockquote": NodeKind.BLOCK_QUOTE,
    "hr": NodeKind.HORIZONTAL_RULE,
    "em": NodeKind.EMPHASIS,
    "strong": NodeKind.STRONG,
    "list_item": NodeKind.LIST_ITEM,
    "hardbreak": NodeKind.LINE_BREAK,
    "table": NodeKind.TABLE,
    "thead": NodeKind.TABLE_HEAD,
    "tbody": NodeKind.TABLE_BODY,
    "tr": NodeKind.TABLE_ROW,
}


def _make_node(src: SyntaxTreeNode) -> Node:
    t = src.type
    if t in _SIMPLE_KINDS:
        return Node(_SIMPLE_KINDS[t])
    attrs = _attrs_to_dict(src.attrs)
    if t == "heading":
        tag = src.tag or "h1"
        level = int(tag[1]) if len(tag) > 1 and tag[1].isdigit() else 1
        return Node(NodeKind.HEADING, level=level)
    if t in ("text", "html_inline"):
        return Node(NodeKind.TEXT, literal=src.content)
    if t == "softbreak":
        return Node(NodeKind.TEXT, literal="\n")
    if t == "code_inline":
        return Node(NodeKind.INLINE_CODE, literal=src.content)
    if t == "link":
        return Node(NodeKind.LINK, destination=attrs.get("href", ""), title=attrs.get("title", ""))
    if t == "image":
        return Node(
            NodeKind.IMAGE,
            destination=attrs.get("src", ""),
            title=attrs.get("title", ""),
            attrs={"alt": src.content or ""},
        )
    if t == "bullet_list":
        return Node(NodeKind.LIST, list_kind=ListKind.UNORDERED)
    if t == "ordered_list":
        start, explicit = _list_start(attrs)
        return Node(NodeKind.LIST, list_kind=ListKind.ORDERED, start=start, explicit_start=explicit)
    if t == "dl":
        return Node(NodeKind.LIST, list_kind=ListKind.DEFINITION)
    if t == "dt":
        return Node(NodeKind.LIST_ITEM, attrs={"definition": "term"})
    if t == "dd":
        return Node(NodeKind.LIST_ITEM, attrs={"definition": "description"})
    if t in ("fence", "code_block"):
        return Node(NodeKind.CODE_BLOCK, literal=src.content, info=(src.info or "").strip())
    if t == "html_block":
        return Node(NodeKind.HTML_BLOCK, literal=src.content)
    if t in ("th", "td"):
        return Node(NodeKind.TABLE_CELL, is_header=t == "th", attrs=attrs)
    return Node(NodeKind.OTHER, attrs={"type": t})


def _convert(src: SyntaxTreeNode, parent: Node) -> None:
    if src.type == "inline":
        for child in src.children:
            _convert(child, parent)
        return
    node = parent.append(_make_node(src))
    # Alt text lives in attrs; it is not rendered as body text.
    if node.kind is NodeKind.IMAGE:
        return
    for child in src.children:
        _convert(child, node)


def build_tree(tokens: list[Token]) -> Node:
    root = Node(NodeKind.DOCUMENT)
    for child in SyntaxTreeNode(tokens).children:
        _convert(child, root)
    return root


def _build_markdown_parser() -> MarkdownIt:
    md = MarkdownIt("commonmark", {"html": True})
    md.enable(["table", "strikethrough"])
    md.use(deflist_plugin)
    return md


_MD_PARSER: MarkdownIt | None = None


def _get_markdown_parser() -> MarkdownIt:
    global _MD_PARSER
    if _MD_PARSER is None:
        _MD_PARSER = _build_markdown_parser()
    return _MD_PARSER


def parse_markdown(source: str) -> Node:
    return build_tree(_get_markdown_parser().parse(str(source or "")))
