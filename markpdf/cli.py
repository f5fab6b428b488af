from __future__ import annotations

import argparse
import logging
from pathlib import Path

from . import __version__
from .canvas import PRESET_FONT_NAMES
from .config import DEFAULT_PAGE_SIZE, SYNTAX_DIR, THEMES, RenderOptions, parse_margins
from .converter import convert_file, default_output_path
from .errors import ConfigError, MarkpdfError
from .logging_utils import configure_logging, get_logger
from .text import IconMode

log = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="markpdf", description="Render Markdown documents to PDF.")
    ap.add_argument("source", nargs="?", help="Input file, directory of .md/.markdown files, or http(s) URL")
    ap.add_argument("target", nargs="?", help="Output PDF path")
    ap.add_argument("-i", "--input", type=str, default="", help="Input (same as the first positional); stdin when omitted")
    ap.add_argument("-o", "--output", type=str, default="", help="Output PDF filename")
    ap.add_argument("-s", "--syntax-files", type=Path, default=SYNTAX_DIR, help="Directory of extra Pygments lexer files")
    ap.add_argument("--title", type=str, default="", help="Document title")
    ap.add_argument("--author", type=str, default="", help="Author name; shown in the footer")
    ap.add_argument("--font-family", type=str, default="", help="Core font family [Times | Helvetica | Courier]")
    ap.add_argument("--font", type=str, default="", help=f"Preset Unicode font [{' | '.join(PRESET_FONT_NAMES)}]")
    ap.add_argument("--theme", type=str, default="light", help="[light | dark | /path/to/theme.json]")
    ap.add_argument("--no-new-page", action="store_true", help="Draw horizontal rules instead of breaking the page")
    ap.add_argument("--keep-numbering", action="store_true", help="Continue ordered list numbering across sections")
    ap.add_argument("--with-footer", action="store_true", help="Print a footer with author, title and page number")
    ap.add_argument("--generate-toc", action="store_true", help="Prepend a table of contents")
    ap.add_argument("--page-size", type=str, default=DEFAULT_PAGE_SIZE, help="[A3 | A4 | A5 | Letter | Legal]")
    ap.add_argument("--orientation", type=str, default="portrait", help="[portrait | landscape]")
    ap.add_argument("--margins", type=str, default="35mm", help="One value or left,top,right,bottom (e.g. 15mm,20mm,15mm,20mm)")
    ap.add_argument("--anchor-links", action="store_true", help="Keep internal [text](#anchor) links")
    ap.add_argument("--log-file", type=Path, default=None, help="Write a render trace to this file")
    ap.add_argument("--debug", action="store_true", help="Verbose logging; traces next to the output PDF")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    icons = ap.add_mutually_exclusive_group()
    icons.add_argument("--embed-icons", dest="icons", action="store_const", const=IconMode.EMBED, help="Draw emoji as inline images (default)")
    icons.add_argument("--text-icons", dest="icons", action="store_const", const=IconMode.TEXT, help="Replace emoji with labels like [warning]")
    icons.add_argument("--strip-icons", dest="icons", action="store_const", const=IconMode.STRIP, help="Replace emoji with spaces")
    icons.add_argument("--keep-icons", dest="icons", action="store_const", const=IconMode.KEEP, help="Pass emoji through to the font")
    ap.set_defaults(icons=IconMode.EMBED)
    return ap


def _theme_options(theme: str) -> dict[str, object]:
    if theme.lower() in THEMES:
        return {"theme": theme.lower()}
    path = Path(theme)
    if path.is_file():
        return {"theme_file": path}
    raise ConfigError(f"Unknown theme: {theme!r} (expected light, dark or a theme file)")


def build_options(args: argparse.Namespace) -> RenderOptions:
    if args.font and args.font_family:
        log.warning("Both --font and --font-family given; --font takes priority")
    return RenderOptions(
        icon_mode=args.icons,
        keep_numbering=args.keep_numbering,
        anchor_links=args.anchor_links,
        hr_new_page=not args.no_new_page,
        syntax_dir=args.syntax_files,
        page_size=args.page_size,
        orientation=args.orientation.lower(),
        margins=parse_margins(args.margins),
        font=args.font or None,
        font_family=args.font_family or None,
        title=args.title,
        author=args.author,
        footer=args.with_footer,
        toc=args.generate_toc,
        **_theme_options(args.theme),
    )


def main(argv: list[str] | None = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    source = args.input or args.source or None
    output = args.output or args.target or None
    if source is None and output is None:
        ap.error("an output path is required when reading from stdin")

    trace_file = args.log_file
    if args.debug and trace_file is None:
        base = Path(output) if output else default_output_path(source)
        trace_file = base.with_suffix(".log")
    configure_logging(logging.DEBUG if args.debug else logging.INFO, trace_file=trace_file)

    try:
        options = build_options(args)
        out_path, result = convert_file(source, output, options)
    except MarkpdfError as e:
        log.error("markpdf: %s", e)
        return 1

    for err in result.errors:
        log.warning("Skipped %s: %s", err.element or "element", err)
    log.info("Done. Output written to %s", out_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
