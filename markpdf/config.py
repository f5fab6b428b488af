from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError
from .text import IconMode


def _package_root() -> Path:
    return Path(__file__).resolve().parent


PACKAGE_ROOT = _package_root()
ASSETS_DIR = PACKAGE_ROOT / "assets"

FONT_DIR = Path(os.getenv("MARKPDF_FONT_DIR", str(ASSETS_DIR / "fonts")))
EMOJI_DIR = Path(os.getenv("MARKPDF_EMOJI_DIR", str(ASSETS_DIR / "emoji")))
SYNTAX_DIR = Path(os.environ["MARKPDF_SYNTAX_DIR"]) if os.getenv("MARKPDF_SYNTAX_DIR") else None

DEFAULT_PAGE_SIZE = os.getenv("MARKPDF_PAGE_SIZE", "A4")
FETCH_TIMEOUT_S = float(os.getenv("MARKPDF_FETCH_TIMEOUT", "30"))
USER_AGENT = "markpdf/0.1 (+https://pypi.org/project/markpdf/)"

MM_TO_PT = 2.83465
PAGE_SIZES = ("a3", "a4", "a5", "letter", "legal")
ORIENTATIONS = ("portrait", "landscape")
THEMES = ("light", "dark")

_MARGIN_RE = re.compile(r"^(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>mm|pt)$", re.IGNORECASE)


@dataclass(frozen=True)
class Margins:
    left: float
    top: float
    right: float
    bottom: float


def _parse_margin_value(raw: str) -> float:
    text = str(raw or "").strip()
    match = _MARGIN_RE.match(text)
    if not match:
        raise ConfigError(f"margin must end with 'mm' or 'pt': {text!r}")
    value = float(match.group("value"))
    if match.group("unit").lower() == "mm":
        return value * MM_TO_PT
    return value


def parse_margins(spec: str) -> Margins:
    parts = str(spec or "").split(",")
    if len(parts) == 1:
        value = _parse_margin_value(parts[0])
        return Margins(value, value, value, value)
    if len(parts) == 4:
        left, top, right, bottom = (_parse_margin_value(p) for p in parts)
        return Margins(left, top, right, bottom)
    raise ConfigError("margins must be a single value or 4 comma-separated values (left,top,right,bottom)")


DEFAULT_MARGINS = parse_margins(os.getenv("MARKPDF_MARGINS", "35mm"))


@dataclass(frozen=True)
class RenderOptions:
    icon_mode: IconMode = IconMode.EMBED
    keep_numbering: bool = False
    anchor_links: bool = False
    hr_new_page: bool = False
    syntax_dir: Path | None = SYNTAX_DIR
    # Defaults to 3 em of the normal style when unset.
    indent: float | None = None
    theme: str = "light"
    theme_file: Path | None = None
    page_size: str = DEFAULT_PAGE_SIZE
    orientation: str = "portrait"
    margins: Margins = field(default_factory=lambda: DEFAULT_MARGINS)
    font: str | None = None
    font_family: str | None = None
    title: str = ""
    author: str = ""
    subject: str = ""
    footer: bool = False
    toc: bool = False
    base_url: str = ""
    base_dir: Path | None = None
    emoji_dir: Path = EMOJI_DIR
    font_dir: Path = FONT_DIR
    fetch_timeout_s: float = FETCH_TIMEOUT_S

    def __post_init__(self) -> None:
        if not isinstance(self.icon_mode, IconMode):
            try:
                object.__setattr__(self, "icon_mode", IconMode(str(self.icon_mode).lower()))
            except ValueError as e:
                raise ConfigError(f"Unknown icon mode: {self.icon_mode!r}") from e
        if self.page_size.lower() not in PAGE_SIZES:
            raise ConfigError(f"Unsupported page size: {self.page_size!r} (expected one of {', '.join(PAGE_SIZES)})")
        if self.orientation.lower() not in ORIENTATIONS:
            raise ConfigError(f"Unsupported orientation: {self.orientation!r}")
        if self.theme_file is None and self.theme.lower() not in THEMES:
            raise ConfigError(f"Unknown theme: {self.theme!r}")
        if self.indent is not None and self.indent <= 0:
            raise ConfigError("indent must be > 0")
        object.__setattr__(self, "base_url", str(self.base_url or "").rstrip("/"))
