from __future__ import annotations

import re
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
from urllib.parse import parse_qs, urljoin, urlparse

import httpx
from fpdf.errors import FPDFException
from PIL import Image, UnidentifiedImageError

from .canvas import Canvas
from .config import FETCH_TIMEOUT_S, MM_TO_PT, USER_AGENT
from .errors import ElementError, RemoteFetchError, ResourceNotFoundError
from .logging_utils import get_logger

log = get_logger(__name__)

_IMG_WIDTH_RE = re.compile(r"^(?P<value>\d+(?:\.\d+)?)(?P<unit>%|px|mm|cm|pt)?$", re.IGNORECASE)
_SVG_DIM_RE = re.compile(r"""\b(?P<name>width|height)\s*=\s*["'](?P<value>\d+(?:\.\d+)?)(?:px|pt)?["']""")
_SVG_VIEWBOX_RE = re.compile(r"""\bviewBox\s*=\s*["'][-\d.]+[\s,]+[-\d.]+[\s,]+(?P<w>[\d.]+)[\s,]+(?P<h>[\d.]+)["']""")
_CONTENT_SUFFIXES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/svg+xml": ".svg",
    "image/webp": ".webp",
    "image/bmp": ".bmp",
}
_DEFAULT_DPI = 96.0
_MIN_WIDTH = 14.0


def is_http_url(url: str) -> bool:
    try:
        u = urlparse(url)
    except ValueError:
        return False
    return u.scheme in ("http", "https")


def parse_image_width(src: str) -> tuple[str, float | None, str | None]:
    """Split ``path|width=50%`` or ``path?width=200`` into the path and a width hint."""
    raw = str(src or "").strip()
    if not raw:
        return "", None, None
    width_spec = None
    if "|width=" in raw or "|w=" in raw:
        base, _, tail = raw.partition("|")
        raw = base.strip()
        match = re.match(r"^(?:width|w)=(.+)$", tail.strip(), re.IGNORECASE)
        if match:
            width_spec = match.group(1).strip()
    parsed = urlparse(raw)
    if not width_spec and parsed.query:
        params = parse_qs(parsed.query)
        width_spec = params.get("width", [None])[0] or params.get("w", [None])[0]
    if not width_spec and parsed.fragment and "=" in parsed.fragment:
        params = parse_qs(parsed.fragment)
        width_spec = params.get("width", [None])[0] or params.get("w", [None])[0]
    if not width_spec:
        return raw, None, None
    if not is_http_url(raw) and (parsed.query or parsed.fragment):
        raw = parsed.path
    match = _IMG_WIDTH_RE.match(width_spec.strip())
    if not match:
        return raw, None, None
    return raw, float(match.group("value")), (match.group("unit") or "px").lower()


class ImageFetcher:
    """Resolves image references to local files, downloading remote ones on demand."""

    def __init__(
        self,
        *,
        base_dir: Path | None = None,
        base_url: str = "",
        timeout_s: float = FETCH_TIMEOUT_S,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_dir = base_dir
        self.base_url = str(base_url or "").rstrip("/")
        self.timeout_s = timeout_s
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(follow_redirects=True, timeout=httpx.Timeout(self.timeout_s))
        return self._client

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def __enter__(self) -> ImageFetcher:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _local_candidate(self, src: str) -> Path | None:
        path = Path(src)
        if path.is_absolute():
            return path if path.is_file() else None
        if self.base_dir is not None:
            candidate = self.base_dir / path
            if candidate.is_file():
                return candidate
        return path if path.is_file() else None

    def download(self, url: str, dest_dir: Path) -> Path:
        headers = {"user-agent": USER_AGENT, "accept": "image/*,*/*;q=0.5"}
        try:
            resp = self._get_client().get(url, headers=headers)
        except httpx.HTTPError as e:
            raise RemoteFetchError(f"Fetch failed: {type(e).__name__}: {e}", element=url) from e
        if resp.status_code != 200:
            raise RemoteFetchError(f"Fetch failed ({resp.status_code}): {url}", element=url)
        content_type = str(resp.headers.get("content-type", "") or "").split(";", 1)[0].strip().lower()
        suffix = Path(urlparse(url).path).suffix.lower() or _CONTENT_SUFFIXES.get(content_type, ".img")
        target = dest_dir / f"remote{suffix}"
        target.write_bytes(resp.content)
        log.debug("Downloaded %s (%d bytes)", url, len(resp.content))
        return target

    @contextmanager
    def open(self, src: str) -> Iterator[Path]:
        """Yield a local path for ``src``; downloaded files are removed on exit."""
        src = str(src or "").strip()
        if not src:
            raise ResourceNotFoundError("Image has no source", element=src)
        if not is_http_url(src):
            local = self._local_candidate(src)
            if local is not None:
                yield local
                return
            if not self.base_url:
                raise ResourceNotFoundError(f"Image not found: {src}", element=src)
            src = urljoin(self.base_url + "/", src.lstrip("/"))

        tmp_dir = Path(tempfile.mkdtemp(prefix="markpdf-"))
        try:
            yield self.download(src, tmp_dir)
        finally:
            shutil.rmtree(tmp_dir, ignore_errors=True)


def _svg_size(path: Path) -> tuple[float, float]:
    try:
        head = path.read_text(encoding="utf-8", errors="replace")[:4096]
    except OSError as e:
        raise ResourceNotFoundError(f"Cannot read image {path.name}: {e}", element=str(path)) from e
    dims = {m.group("name"): float(m.group("value")) for m in _SVG_DIM_RE.finditer(head.split(">", 1)[0])}
    if "width" in dims and "height" in dims:
        return dims["width"], dims["height"]
    match = _SVG_VIEWBOX_RE.search(head)
    if match:
        return float(match.group("w")), float(match.group("h"))
    return 0.0, 0.0


def natural_size(path: Path) -> tuple[float, float]:
    """Image size in points at its recorded DPI (96 when absent)."""
    if path.suffix.lower() == ".svg":
        width, height = _svg_size(path)
        return width * 72 / _DEFAULT_DPI, height * 72 / _DEFAULT_DPI
    try:
        with Image.open(path) as img:
            width_px, height_px = img.size
            dpi = img.info.get("dpi")
    except (OSError, UnidentifiedImageError) as e:
        raise ElementError(f"Unreadable image {path.name}: {e}", element=str(path)) from e
    dpi_value = _DEFAULT_DPI
    if isinstance(dpi, (tuple, list)) and dpi and dpi[0]:
        dpi_value = float(dpi[0])
    elif isinstance(dpi, (int, float)) and dpi:
        dpi_value = float(dpi)
    return width_px / dpi_value * 72, height_px / dpi_value * 72


def _override_width(value: float, unit: str, content_width: float) -> float:
    if unit == "%":
        width = content_width * (value / 100.0)
    elif unit == "mm":
        width = value * MM_TO_PT
    elif unit == "cm":
        width = value * 10.0 * MM_TO_PT
    elif unit == "pt":
        width = value
    else:
        width = value / _DEFAULT_DPI * 72
    return max(_MIN_WIDTH, min(width, content_width))


def place_image(
    canvas: Canvas,
    path: Path,
    *,
    width_override: float | None = None,
    width_unit: str | None = None,
) -> None:
    left = canvas.get_left_margin()
    content_width = canvas.page_width - canvas.right_margin - left
    natural_w, natural_h = natural_size(path)
    if natural_w <= 0 or natural_h <= 0:
        raise ElementError(f"Image has no size: {path.name}", element=str(path))

    if width_override and width_override > 0:
        width = _override_width(width_override, width_unit or "px", content_width)
    else:
        width = min(natural_w, content_width)
    height = width * (natural_h / natural_w)

    max_height = canvas.page_height - canvas.top_margin - canvas.bottom_margin
    if height > max_height:
        width = width * (max_height / height)
        height = max_height
    if canvas.get_y() + height > canvas.page_height - canvas.bottom_margin:
        canvas.add_page()

    y = canvas.get_y()
    _draw(canvas, path, x=left, y=y, w=width, h=height)
    canvas.set_y(y + height)


def draw_inline_icon(canvas: Canvas, path: Path, size: float, line_height: float) -> None:
    x = canvas.get_x()
    if x + size > canvas.page_width - canvas.right_margin:
        canvas.ln(line_height)
        x = canvas.get_x()
    y = canvas.get_y() + max(0.0, (line_height - size) / 2)
    _draw(canvas, path, x=x, y=y, w=size, h=size)
    canvas.set_x(x + size)


def _draw(canvas: Canvas, path: Path, *, x: float, y: float, w: float, h: float) -> None:
    # the header check in natural_size passes truncated and malformed files
    try:
        canvas.image(path, x=x, y=y, w=w, h=h)
    except (OSError, ValueError, FPDFException) as e:
        raise ElementError(f"Cannot draw image {path.name}: {e}", element=str(path)) from e
