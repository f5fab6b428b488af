from __future__ import annotations

from pathlib import Path
from typing import Protocol

from fpdf import FPDF, XPos, YPos
from fpdf.errors import FPDFUnicodeEncodingException

from .errors import ConfigError
from .logging_utils import get_logger
from .styles import Color

log = get_logger(__name__)

_ASCII_REPLACEMENTS = {
    "\u00a0": " ",
    "\u2007": " ",
    "\u2009": " ",
    "\u200b": "",
    "‐": "-",
    "‑": "-",
    "‒": "-",
    "–": "-",
    "—": "--",
    "―": "--",
    "−": "-",
    "…": "...",
    "‘": "'",
    "’": "'",
    "“": '"',
    "”": '"',
    "•": "*",
    "←": "<-",
    "→": "->",
    "↔": "<->",
    "⇐": "<=",
    "⇒": "=>",
    "⇔": "<=>",
    "☐": "[ ]",
    "☑": "[x]",
}

_CORE_FONTS = {
    "sans": "Helvetica",
    "helvetica": "Helvetica",
    "arial": "Helvetica",
    "serif": "Times",
    "times": "Times",
    "mono": "Courier",
    "courier": "Courier",
}

_PRESET_FONTS = {
    "dejavu_sans": {
        "family": "DejaVuSans",
        "files": {
            "": "DejaVuSans.ttf",
            "B": "DejaVuSans-Bold.ttf",
            "I": "DejaVuSans-Oblique.ttf",
            "BI": "DejaVuSans-BoldOblique.ttf",
        },
    },
    "dejavu_serif": {
        "family": "DejaVuSerif",
        "files": {
            "": "DejaVuSerif.ttf",
            "B": "DejaVuSerif-Bold.ttf",
            "I": "DejaVuSerif-Italic.ttf",
            "BI": "DejaVuSerif-BoldItalic.ttf",
        },
    },
    "noto_sans": {
        "family": "NotoSans",
        "files": {
            "": "NotoSans-Regular.ttf",
            "B": "NotoSans-Bold.ttf",
            "I": "NotoSans-Italic.ttf",
            "BI": "NotoSans-BoldItalic.ttf",
        },
    },
    "roboto": {
        "family": "Roboto",
        "files": {
            "": "Roboto-Regular.ttf",
            "B": "Roboto-Bold.ttf",
            "I": "Roboto-Italic.ttf",
            "BI": "Roboto-BoldItalic.ttf",
        },
    },
    "eb_garamond": {
        "family": "EBGaramond",
        "files": {
            "": "EBGaramond-Regular.ttf",
            "B": "EBGaramond-Bold.ttf",
            "I": "EBGaramond-Italic.ttf",
            "BI": "EBGaramond-BoldItalic.ttf",
        },
    },
    "merriweather": {
        "family": "Merriweather",
        "files": {
            "": "Merriweather-Regular.ttf",
            "B": "Merriweather-Bold.ttf",
            "I": "Merriweather-Italic.ttf",
            "BI": "Merriweather-BoldItalic.ttf",
        },
    },
    "source_serif": {
        "family": "SourceSerif4",
        "files": {
            "": "SourceSerif4-Regular.ttf",
            "B": "SourceSerif4-Bold.ttf",
            "I": "SourceSerif4-It.ttf",
            "BI": "SourceSerif4-BoldIt.ttf",
        },
    },
}
PRESET_FONT_NAMES = tuple(_PRESET_FONTS)


def _normalize_ascii(text: str) -> str:
    out = text
    for key, val in _ASCII_REPLACEMENTS.items():
        out = out.replace(key, val)
    return out


def _sanitize_pdf_text(text: str, *, allow_unicode: bool) -> str:
    if allow_unicode:
        return text
    cleaned = _normalize_ascii(text)
    return cleaned.encode("latin-1", "replace").decode("latin-1")


def resolve_core_font(name: str | None, *, default: str = "Helvetica") -> str:
    if not name:
        return default
    key = str(name).strip().lower()
    if key in _CORE_FONTS:
        return _CORE_FONTS[key]
    if "serif" in key:
        return "Times"
    if "mono" in key or "courier" in key:
        return "Courier"
    return default


class Canvas(Protocol):
    @property
    def page_width(self) -> float: ...

    @property
    def page_height(self) -> float: ...

    @property
    def right_margin(self) -> float: ...

    @property
    def top_margin(self) -> float: ...

    @property
    def bottom_margin(self) -> float: ...

    def get_left_margin(self) -> float: ...

    def set_left_margin(self, margin: float) -> None: ...

    def get_x(self) -> float: ...

    def get_y(self) -> float: ...

    def set_x(self, x: float) -> None: ...

    def set_y(self, y: float) -> None: ...

    def set_font(self, family: str, style: str, size: float) -> None: ...

    def set_text_color(self, color: Color) -> None: ...

    def set_fill_color(self, color: Color) -> None: ...

    def set_draw_color(self, color: Color) -> None: ...

    def set_line_width(self, width: float) -> None: ...

    def string_width(self, text: str) -> float: ...

    def write(self, h: float, text: str, link: str | int = "") -> None: ...

    def cell(
        self,
        w: float,
        h: float,
        text: str = "",
        border: str | int = 0,
        *,
        align: str = "L",
        fill: bool = False,
        new_line: bool = False,
    ) -> None: ...

    def multi_cell(self, w: float, h: float, text: str, *, align: str = "L", fill: bool = False) -> None: ...

    def line(self, x1: float, y1: float, x2: float, y2: float) -> None: ...

    def image(self, path: Path, *, x: float, y: float, w: float, h: float) -> None: ...

    def add_link(self) -> int: ...

    def set_link(self, link: int) -> None: ...

    def ln(self, h: float | None = None) -> None: ...

    def add_page(self) -> None: ...


class DocumentPdf(FPDF):
    def __init__(
        self,
        *,
        orientation: str = "portrait",
        page_size: str = "A4",
        background: Color | None = None,
    ) -> None:
        super().__init__(orientation=orientation, unit="pt", format=page_size.lower())
        self.background = background
        self.footer_left = ""
        self.footer_center = ""
        self.footer_enabled = False
        self.footer_font = "Helvetica"
        self.page_left_margin = 0.0

    def header(self) -> None:
        if self.background is None:
            return
        self.set_fill_color(*self.background)
        self.rect(0, 0, self.w, self.h, "F")

    def footer(self) -> None:
        if not self.footer_enabled:
            return
        allow_unicode = self.footer_font not in _CORE_FONTS.values()
        self.set_y(-15 - self.b_margin / 2)
        self.set_font(self.footer_font, "I" if not allow_unicode else "", 8)
        self.set_text_color(128, 128, 128)
        width = (self.w - self.page_left_margin * 2) / 3
        self.set_x(self.page_left_margin)
        self.cell(width, 10, _sanitize_pdf_text(self.footer_left, allow_unicode=allow_unicode), align="L")
        self.cell(width, 10, _sanitize_pdf_text(self.footer_center, allow_unicode=allow_unicode), align="C")
        self.cell(width, 10, f"Page {self.page_no()}", align="R")


class FpdfCanvas:
    def __init__(self, pdf: DocumentPdf) -> None:
        self.pdf = pdf
        self._font_styles: dict[str, set[str]] = {}

    @property
    def page_width(self) -> float:
        return float(self.pdf.w)

    @property
    def page_height(self) -> float:
        return float(self.pdf.h)

    @property
    def right_margin(self) -> float:
        return float(self.pdf.r_margin)

    @property
    def top_margin(self) -> float:
        return float(self.pdf.t_margin)

    @property
    def bottom_margin(self) -> float:
        return float(self.pdf.b_margin)

    def register_preset_font(self, name: str, font_dir: Path) -> str | None:
        key = str(name or "").strip().lower()
        meta = _PRESET_FONTS.get(key)
        if meta is None:
            raise ConfigError(f"Unknown preset font: {name} (available: {', '.join(PRESET_FONT_NAMES)})")
        family = str(meta["family"])
        files: dict[str, str] = meta["files"]  # type: ignore[assignment]
        if not (font_dir / files[""]).exists():
            log.warning("Preset font %s not found in %s; falling back to core fonts", key, font_dir)
            return None
        styles: set[str] = set()
        for style, filename in files.items():
            path = font_dir / filename
            if not path.exists():
                continue
            self.pdf.add_font(family, style=style, fname=str(path))
            styles.add(style)
        self._font_styles[family.lower()] = styles
        return family

    def _is_unicode_font(self) -> bool:
        return bool(self.pdf.is_ttf_font)

    def _safe(self, text: str) -> str:
        return _sanitize_pdf_text(text, allow_unicode=self._is_unicode_font())

    def get_left_margin(self) -> float:
        return float(self.pdf.l_margin)

    def set_left_margin(self, margin: float) -> None:
        self.pdf.set_left_margin(margin)

    def get_x(self) -> float:
        return float(self.pdf.get_x())

    def get_y(self) -> float:
        return float(self.pdf.get_y())

    def set_x(self, x: float) -> None:
        self.pdf.set_x(x)

    def set_y(self, y: float) -> None:
        # set_y also resets x to the left margin.
        self.pdf.set_y(y)

    def set_font(self, family: str, style: str, size: float) -> None:
        available = self._font_styles.get(family.lower())
        if available is not None:
            emphasis = "".join(ch for ch in "BI" if ch in style)
            if emphasis not in available:
                emphasis = ""
            style = emphasis + ("U" if "U" in style else "")
        self.pdf.set_font(family, style, size)

    def set_text_color(self, color: Color) -> None:
        self.pdf.set_text_color(*color)

    def set_fill_color(self, color: Color) -> None:
        self.pdf.set_fill_color(*color)

    def set_draw_color(self, color: Color) -> None:
        self.pdf.set_draw_color(*color)

    def set_line_width(self, width: float) -> None:
        self.pdf.set_line_width(width)

    def _can_render(self, text: str) -> bool:
        if not self._is_unicode_font():
            try:
                text.encode("latin-1")
            except UnicodeEncodeError:
                return False
            return True
        cmap = getattr(self.pdf.current_font, "cmap", None)
        if isinstance(cmap, dict):
            return all(ch.isspace() or ord(ch) in cmap for ch in text)
        return True

    def string_width(self, text: str) -> float:
        """Width of ``text`` in the current font, or 0.0 when the font lacks a glyph."""
        if not text or not self._can_render(text):
            return 0.0
        try:
            return float(self.pdf.get_string_width(text))
        except FPDFUnicodeEncodingException:
            return 0.0

    def write(self, h: float, text: str, link: str | int = "") -> None:
        self.pdf.write(h, self._safe(text), link=link)

    def cell(
        self,
        w: float,
        h: float,
        text: str = "",
        border: str | int = 0,
        *,
        align: str = "L",
        fill: bool = False,
        new_line: bool = False,
    ) -> None:
        self.pdf.cell(
            w,
            h,
            self._safe(text),
            border,
            align=align,
            fill=fill,
            new_x=XPos.LMARGIN if new_line else XPos.RIGHT,
            new_y=YPos.NEXT if new_line else YPos.TOP,
        )

    def multi_cell(self, w: float, h: float, text: str, *, align: str = "L", fill: bool = False) -> None:
        self.pdf.multi_cell(
            w,
            h,
            self._safe(text),
            align=align,
            fill=fill,
            new_x=XPos.LMARGIN,
            new_y=YPos.NEXT,
        )

    def line(self, x1: float, y1: float, x2: float, y2: float) -> None:
        self.pdf.line(x1, y1, x2, y2)

    def image(self, path: Path, *, x: float, y: float, w: float, h: float) -> None:
        self.pdf.image(str(path), x=x, y=y, w=w, h=h)

    def add_link(self) -> int:
        return int(self.pdf.add_link())

    def set_link(self, link: int) -> None:
        self.pdf.set_link(link, y=self.pdf.get_y(), page=self.pdf.page_no())

    def ln(self, h: float | None = None) -> None:
        self.pdf.ln(h)

    def add_page(self) -> None:
        self.pdf.add_page()

    def output(self) -> bytes:
        out = self.pdf.output()
        if isinstance(out, (bytes, bytearray)):
            return bytes(out)
        return str(out).encode("latin-1", "replace")
