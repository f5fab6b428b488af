from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Iterator

import regex


class IconMode(str, Enum):
    EMBED = "embed"
    TEXT = "text"
    STRIP = "strip"
    KEEP = "keep"


ICON_BADGES = MappingProxyType(
    {
        # Status
        "✅": "[correct]",
        "❌": "[incorrect]",
        "⚠": "[warning]",
        "ℹ": "[info]",
        "\U0001f6d1": "[stop]",
        "✔": "[check]",
        # Actions
        "\U0001f680": "[launch]",
        "⏱": "[timer]",
        "\U0001f4ca": "[analytics]",
        "\U0001f4c8": "[increase]",
        "\U0001f4c9": "[decrease]",
        "\U0001f50d": "[search]",
        "\U0001f527": "[fix]",
        "\U0001f6e0": "[tools]",
        "\U0001f504": "[refresh]",
        # Objects
        "\U0001f4b0": "[money]",
        "\U0001f4a1": "[idea]",
        "\U0001f3af": "[target]",
        "\U0001f381": "[bonus]",
        "\U0001f3c6": "[achievement]",
        "\U0001f4e7": "[email]",
        "\U0001f4de": "[phone]",
        "\U0001f4c5": "[calendar]",
        "\U0001f4dd": "[note]",
        "\U0001f4cc": "[pin]",
        "\U0001f517": "[link]",
        # Arrows
        "➡": "[next]",
        "⬅": "[previous]",
        "⬆": "[up]",
        "⬇": "[down]",
        "↗": "[up-right]",
        "↘": "[down-right]",
        # Emotions
        "\U0001f389": "[celebration]",
        "\U0001f44d": "[like]",
        "\U0001f44e": "[dislike]",
        "\U0001f600": "[happy]",
        "\U0001f622": "[sad]",
        "\U0001f4aa": "[strong]",
        "\U0001f44c": "[ok]",
    }
)
UNKNOWN_ICON_LABEL = "[icon]"

# Arrows, time symbols, misc symbols, dingbats, misc symbols and arrows.
_ICON_RANGES = (
    (0x2190, 0x21FF),
    (0x23E9, 0x23FF),
    (0x2600, 0x26FF),
    (0x2700, 0x27BF),
    (0x2B00, 0x2BFF),
)
_PICTOGRAPH_START = 0x1F000
_BMP_MAX = 0xFFFF
_KEYCAP = "\u20e3"
# Checkbox glyphs produced by marker substitution render as text.
_TEXT_GLYPHS = frozenset("☐☑")

_GRAPHEME_RE = regex.compile(r"\X")


@dataclass(frozen=True)
class TextSegment:
    is_icon: bool
    content: str
    runes: tuple[int, ...]


def _runes(text: str) -> tuple[int, ...]:
    return tuple(ord(ch) for ch in text)


def is_variation_selector(ch: str) -> bool:
    return len(ch) == 1 and 0xFE00 <= ord(ch) <= 0xFE0F


def is_icon_rune(ch: str) -> bool:
    if ch in ICON_BADGES:
        return True
    cp = ord(ch)
    for lo, hi in _ICON_RANGES:
        if lo <= cp <= hi:
            return True
    return cp >= _PICTOGRAPH_START


def is_icon_cluster(cluster: str) -> bool:
    if not cluster or cluster in _TEXT_GLYPHS:
        return False
    if _KEYCAP in cluster:
        return True
    # Flags, skin tones and ZWJ sequences are judged by their leading code point.
    return is_icon_rune(cluster[0])


def iter_segments(text: str) -> Iterator[TextSegment]:
    buf: list[str] = []
    for match in _GRAPHEME_RE.finditer(text or ""):
        cluster = match.group()
        if not is_icon_cluster(cluster):
            buf.append(cluster)
            continue
        if buf:
            plain = "".join(buf)
            buf = []
            yield TextSegment(False, plain, _runes(plain))
        yield TextSegment(True, cluster, _runes(cluster))
    if buf:
        plain = "".join(buf)
        yield TextSegment(False, plain, _runes(plain))


def apply_icon_mode(segment: TextSegment, mode: IconMode) -> TextSegment:
    if not segment.is_icon:
        return segment
    if mode is IconMode.STRIP:
        return replace(segment, content=" ")

    cluster = segment.content
    lead = cluster[0]
    badge = ICON_BADGES.get(lead)
    tail = ""
    if badge is not None and len(cluster) > 1 and is_variation_selector(cluster[1]):
        cluster = lead + cluster[2:]
        tail = " "

    if mode is IconMode.TEXT:
        return replace(segment, content=(badge or UNKNOWN_ICON_LABEL) + tail)
    if mode is IconMode.KEEP:
        # fonts have no glyph for variation selectors
        content = "".join(" " if is_variation_selector(ch) else ch for ch in segment.content)
        return replace(segment, content=content)
    return replace(segment, content=cluster + tail)


def sanitize_text(text: str, mode: IconMode) -> str:
    if mode is IconMode.EMBED:
        return text
    if all(ord(ch) <= _BMP_MAX for ch in text):
        return text
    return "".join(" " if ord(ch) > _BMP_MAX else ch for ch in text)


def prepare_segments(text: str, mode: IconMode) -> Iterator[TextSegment]:
    for segment in iter_segments(text):
        segment = apply_icon_mode(segment, mode)
        if mode is not IconMode.EMBED:
            segment = replace(segment, content=sanitize_text(segment.content, mode))
        yield segment


def handle_icons(text: str, mode: IconMode) -> str:
    return "".join(seg.content for seg in prepare_segments(text, mode))


def emoji_filename(runes: Iterable[int]) -> str | None:
    parts = [f"{cp:x}" for cp in runes if not 0xFE00 <= cp <= 0xFE0F]
    if not parts:
        return None
    return "-".join(parts) + ".png"
