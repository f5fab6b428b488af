from __future__ import annotations

import re

from .nodes import Node, NodeKind

UNCHECKED_BOX = "☐"
CHECKED_BOX = "☑"
LIST_TRANSITION_ATTR = "data-list-transition"

_CHECKED_RE = re.compile(r"\[[xX]\]")
_MARKER_LINE_RE = re.compile(r"^(?:[-*+][ \t]+|\d{1,9}[.)](?:[ \t]+|$))")
_FENCE_RE = re.compile(r"^(`{3,}|~{3,})(.*)$")


def substitute_checkboxes(text: str) -> str:
    if "[" not in text:
        return text
    text = text.replace("[ ]", UNCHECKED_BOX)
    return _CHECKED_RE.sub(CHECKED_BOX, text)


def ensure_list_spacing(source: str) -> str:
    """Separate a list from a preceding hard-broken line so it parses as a new list.

    Only unindented marker lines are touched; nested items keep their layout.
    """
    lines = str(source or "").split("\n")
    out: list[str] = []
    fence: str | None = None
    prev: str | None = None
    for line in lines:
        m = _FENCE_RE.match(line.strip())
        if m and fence is None:
            fence = m.group(1)
        elif m and _closes(fence, m):
            fence = None
        elif (
            fence is None
            and prev is not None
            and prev.strip()
            and prev.endswith("  ")
            and _MARKER_LINE_RE.match(line)
        ):
            out.append("")
        out.append(line)
        prev = line
    return "\n".join(out)


def _closes(fence: str | None, m: re.Match[str]) -> bool:
    # a closing fence uses the opening character, at least as many times, and no info string
    marker = m.group(1)
    if fence is None or marker[0] != fence[0]:
        return False
    return len(marker) >= len(fence) and not m.group(2).strip()


def strip_checkbox_marker(item: Node) -> str | None:
    """Remove a leading ``[ ]``/``[x]`` from the item's first text and return its glyph."""
    for node, entering in item.walk():
        if not entering:
            continue
        if node.kind is NodeKind.LIST:
            return None
        if node.kind is not NodeKind.TEXT:
            continue
        literal = node.literal
        trimmed = literal.lstrip(" \t")
        if not trimmed:
            continue
        marker = trimmed[:3]
        if marker == "[ ]":
            symbol = UNCHECKED_BOX
        elif marker in ("[x]", "[X]"):
            symbol = CHECKED_BOX
        else:
            return None
        leading = literal[: len(literal) - len(trimmed)]
        node.literal = leading + trimmed[3:].lstrip(" \t")
        return symbol
    return None


def mark_list_transitions(root: Node) -> None:
    for node in root.iter_kind(NodeKind.LIST):
        prev = node.prev_sibling
        if prev is not None and prev.kind is NodeKind.LIST and prev.list_kind is not node.list_kind:
            node.attrs[LIST_TRANSITION_ATTR] = "true"
