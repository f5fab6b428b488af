from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .errors import ConfigError
from .schemas import ThemeFile

Color = tuple[int, int, int]

WHITE: Color = (255, 255, 255)
BLACK: Color = (0, 0, 0)


@dataclass(frozen=True)
class Style:
    font: str = "Helvetica"
    size: float = 11.0
    spacing: float = 2.0
    bold: bool = False
    italic: bool = False
    underline: bool = False
    text_color: Color = BLACK
    fill_color: Color = WHITE

    @property
    def font_style(self) -> str:
        out = ""
        if self.bold:
            out += "B"
        if self.italic:
            out += "I"
        if self.underline:
            out += "U"
        return out

    @property
    def line_height(self) -> float:
        return self.size + self.spacing


@dataclass(frozen=True)
class StyleRegistry:
    normal: Style
    h1: Style
    h2: Style
    h3: Style
    h4: Style
    h5: Style
    h6: Style
    code: Style
    backtick: Style
    link: Style
    blockquote: Style
    table_header: Style
    table_body: Style
    background: Color | None = None

    def heading(self, level: int) -> Style:
        level = min(max(int(level or 1), 1), 6)
        return getattr(self, f"h{level}")

    def with_font(self, family: str) -> StyleRegistry:
        """Swap the family of every proportional style; code styles stay monospace."""
        changes: dict[str, Style] = {}
        for name in STYLE_NAMES:
            if name in ("code", "backtick"):
                continue
            changes[name] = replace(getattr(self, name), font=family)
        return replace(self, **changes)


STYLE_NAMES = tuple(f.name for f in fields(StyleRegistry) if f.name != "background")


def light_theme() -> StyleRegistry:
    normal = Style(font="Helvetica", size=11, spacing=2)
    heading = replace(normal, bold=True, spacing=5)
    return StyleRegistry(
        normal=normal,
        h1=replace(heading, size=24),
        h2=replace(heading, size=22),
        h3=replace(heading, size=20),
        h4=replace(heading, size=18),
        h5=replace(heading, size=16),
        h6=replace(heading, size=14),
        code=Style(font="Courier", size=10, spacing=2, text_color=(37, 27, 14), fill_color=(200, 200, 200)),
        backtick=Style(font="Courier", size=10, spacing=2, text_color=(37, 27, 14), fill_color=(200, 200, 200)),
        link=replace(normal, underline=True, text_color=(0, 0, 255)),
        blockquote=replace(normal, italic=True, text_color=(90, 90, 90)),
        table_header=replace(normal, bold=True, fill_color=(180, 180, 180)),
        table_body=replace(normal, fill_color=(240, 240, 240)),
    )


def dark_theme() -> StyleRegistry:
    text: Color = (220, 220, 220)
    normal = Style(font="Helvetica", size=11, spacing=2, text_color=text, fill_color=(24, 24, 24))
    heading = replace(normal, bold=True, spacing=5, text_color=(240, 240, 240))
    return StyleRegistry(
        normal=normal,
        h1=replace(heading, size=24),
        h2=replace(heading, size=22),
        h3=replace(heading, size=20),
        h4=replace(heading, size=18),
        h5=replace(heading, size=16),
        h6=replace(heading, size=14),
        code=Style(font="Courier", size=10, spacing=2, text_color=(230, 230, 230), fill_color=(60, 60, 60)),
        backtick=Style(font="Courier", size=10, spacing=2, text_color=(230, 230, 230), fill_color=(60, 60, 60)),
        link=replace(normal, underline=True, text_color=(100, 149, 237)),
        blockquote=replace(normal, italic=True, text_color=(160, 160, 160)),
        table_header=replace(normal, bold=True, fill_color=(70, 70, 70)),
        table_body=replace(normal, fill_color=(40, 40, 40)),
        background=(24, 24, 24),
    )


def _read_json(path: Path) -> dict[str, Any]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to read theme file {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Theme file {path} must contain a JSON object")
    return raw


def load_theme(path: Path) -> StyleRegistry:
    raw = _read_json(path)
    try:
        spec = ThemeFile.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid theme file {path}: {e}") from e

    registry = dark_theme() if spec.base == "dark" else light_theme()
    changes: dict[str, Any] = {}
    for name, style_spec in spec.styles.items():
        if name not in STYLE_NAMES:
            raise ConfigError(f"Unknown style {name!r} in theme file {path}")
        overrides = style_spec.model_dump(exclude_none=True)
        changes[name] = replace(getattr(registry, name), **overrides)
    if spec.background is not None:
        changes["background"] = spec.background
    return replace(registry, **changes)


def build_styles(theme: str = "light", theme_file: Path | None = None) -> StyleRegistry:
    if theme_file is not None:
        return load_theme(Path(theme_file))
    if str(theme).lower() == "dark":
        return dark_theme()
    return light_theme()
