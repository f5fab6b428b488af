from __future__ import annotations

import sys
from dataclasses import dataclass, field, replace
from pathlib import Path
from urllib.parse import urlparse

import httpx

from .canvas import DocumentPdf, FpdfCanvas, resolve_core_font
from .config import FETCH_TIMEOUT_S, USER_AGENT, RenderOptions
from .errors import ElementError, MarkpdfError, RemoteFetchError
from .frontmatter import DocumentMeta, extract_meta
from .images import ImageFetcher, is_http_url
from .layout import compute_column_widths
from .logging_utils import get_logger
from .markers import ensure_list_spacing, mark_list_transitions
from .nodes import Node, parse_markdown
from .renderer import PdfRenderer
from .styles import build_styles
from .toc import collect_headings, render_toc

log = get_logger(__name__)

MARKDOWN_SUFFIXES = (".md", ".markdown")
# Joins the files of a directory input; renders as a rule or page break.
FILE_SEPARATOR = "\n\n---\n\n"


@dataclass(frozen=True)
class SourceDocument:
    text: str
    name: str = ""
    base_dir: Path | None = None
    base_url: str = ""


@dataclass
class ConversionResult:
    pdf: bytes
    meta: DocumentMeta
    errors: list[ElementError] = field(default_factory=list)


def fetch_text(url: str, *, timeout_s: float = FETCH_TIMEOUT_S, client: httpx.Client | None = None) -> str:
    headers = {"user-agent": USER_AGENT, "accept": "text/markdown,text/plain;q=0.9,*/*;q=0.1"}
    own = client is None
    http = client or httpx.Client(follow_redirects=True, timeout=httpx.Timeout(timeout_s))
    try:
        resp = http.get(url, headers=headers)
    except httpx.HTTPError as e:
        raise RemoteFetchError(f"Fetch failed: {type(e).__name__}: {e}", element=url) from e
    finally:
        if own:
            http.close()
    if resp.status_code != 200:
        raise RemoteFetchError(f"Fetch failed ({resp.status_code}): {url}", element=url)
    return resp.text


def _markdown_files(directory: Path) -> list[Path]:
    return sorted(p for p in directory.rglob("*") if p.is_file() and p.suffix.lower() in MARKDOWN_SUFFIXES)


def read_source(
    target: str | Path | None,
    *,
    timeout_s: float = FETCH_TIMEOUT_S,
    client: httpx.Client | None = None,
) -> SourceDocument:
    """Load markdown from stdin, a URL, a file, or every markdown file under a directory."""
    if target is None or str(target) == "-":
        return SourceDocument(text=sys.stdin.read(), name="stdin")
    raw = str(target)
    if is_http_url(raw):
        text = fetch_text(raw, timeout_s=timeout_s, client=client)
        base_url = raw.rsplit("/", 1)[0]
        return SourceDocument(text=text, name=Path(urlparse(raw).path).stem or "document", base_url=base_url)

    path = Path(raw)
    if path.is_dir():
        files = _markdown_files(path)
        if not files:
            raise MarkpdfError(f"No markdown files found under {path}")
        text = FILE_SEPARATOR.join(f.read_text(encoding="utf-8") for f in files)
        return SourceDocument(text=text, name=path.resolve().name, base_dir=path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise MarkpdfError(f"Cannot read {path}: {e}") from e
    return SourceDocument(text=text, name=path.stem, base_dir=path.parent)


def default_output_path(target: str | Path) -> Path:
    raw = str(target)
    if is_http_url(raw):
        return Path((Path(urlparse(raw).path).stem or "document") + ".pdf")
    path = Path(raw)
    if path.is_dir():
        return Path(path.resolve().name + ".pdf")
    if path.suffix.lower() in MARKDOWN_SUFFIXES:
        return path.with_suffix(".pdf")
    return Path(raw + ".pdf")


def prepare_document(source: str) -> Node:
    text = str(source or "").replace("\r\n", "\n")
    root = parse_markdown(ensure_list_spacing(text))
    mark_list_transitions(root)
    return root


def convert_markdown(
    source: str,
    options: RenderOptions | None = None,
    *,
    fetcher: ImageFetcher | None = None,
) -> ConversionResult:
    options = options or RenderOptions()
    meta, body = extract_meta(str(source or "").replace("\r\n", "\n"))
    options = replace(
        options,
        title=options.title or meta.title,
        author=options.author or meta.author,
        subject=options.subject or meta.subject or options.title or meta.title,
    )

    styles = build_styles(options.theme, options.theme_file)
    pdf = DocumentPdf(orientation=options.orientation, page_size=options.page_size, background=styles.background)
    canvas = FpdfCanvas(pdf)
    margins = options.margins
    pdf.set_margins(margins.left, margins.top, margins.right)
    pdf.set_auto_page_break(True, margin=margins.bottom)
    pdf.page_left_margin = margins.left

    family = None
    if options.font:
        family = canvas.register_preset_font(options.font, options.font_dir)
    if family is None and options.font_family:
        family = resolve_core_font(options.font_family)
    if family:
        styles = styles.with_font(family)

    pdf.footer_enabled = options.footer
    pdf.footer_left = options.author
    pdf.footer_center = options.title
    pdf.footer_font = styles.normal.font
    if options.title:
        pdf.set_title(options.title)
    if options.author:
        pdf.set_author(options.author)
    if options.subject:
        pdf.set_subject(options.subject)
    pdf.set_creator("markpdf")
    pdf.add_page()

    root = prepare_document(body)
    entries = collect_headings(root)
    heading_slugs = {entry.node: entry.slug for entry in entries}
    links: dict[str, int] = {}
    if options.toc and entries:
        for entry in entries:
            links[entry.slug] = canvas.add_link()
        render_toc(canvas, entries, links, styles)

    content_width = pdf.w - margins.left - margins.right
    column_widths = compute_column_widths(root, canvas, styles, content_width, options.icon_mode)

    owned = fetcher is None
    fetcher = fetcher or ImageFetcher(
        base_dir=options.base_dir,
        base_url=options.base_url,
        timeout_s=options.fetch_timeout_s,
    )
    try:
        renderer = PdfRenderer(
            canvas,
            styles,
            options,
            column_widths=column_widths,
            heading_slugs=heading_slugs,
            links=links,
            fetcher=fetcher,
        )
        renderer.render(root)
    finally:
        if owned:
            fetcher.close()

    if renderer.errors:
        log.warning("Rendered with %d skipped element(s)", len(renderer.errors))
    return ConversionResult(pdf=canvas.output(), meta=meta, errors=renderer.errors)


def convert_file(
    target: str | Path | None,
    output: str | Path | None = None,
    options: RenderOptions | None = None,
) -> tuple[Path, ConversionResult]:
    options = options or RenderOptions()
    if output is None:
        if target is None or str(target) == "-":
            raise MarkpdfError("An output path is required when reading from stdin")
        output = default_output_path(target)
    doc = read_source(target, timeout_s=options.fetch_timeout_s)
    options = replace(
        options,
        base_dir=options.base_dir or doc.base_dir,
        base_url=options.base_url or doc.base_url,
    )
    result = convert_markdown(doc.text, options)
    out_path = Path(output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(result.pdf)
    log.info("Wrote %s (%d bytes)", out_path, len(result.pdf))
    return out_path, result
