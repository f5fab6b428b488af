from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name, load_lexer_from_file
from pygments.token import Comment, Keyword, Name, Number, Operator, Punctuation, String, Token, _TokenType
from pygments.util import ClassNotFound

from .logging_utils import get_logger
from .styles import Color

log = get_logger(__name__)

CODE_WRAP = 90

GREEN: Color = (42, 170, 138)
BLUE: Color = (137, 207, 240)
RED: Color = (255, 80, 80)
CYAN: Color = (0, 136, 163)
MAGENTA: Color = (255, 0, 255)
YELLOW: Color = (255, 165, 0)
BRIGHT_GREEN: Color = (82, 204, 0)

# Most specific first; the first ancestor match wins.
_TOKEN_COLORS: tuple[tuple[_TokenType, Color], ...] = (
    (Comment.Preproc, RED),
    (Comment, BRIGHT_GREEN),
    (Keyword.Type, RED),
    (Keyword.Constant, CYAN),
    (Keyword, GREEN),
    (String.Escape, MAGENTA),
    (String, MAGENTA),
    (Number, CYAN),
    (Name.Variable, CYAN),
    (Name.Constant, CYAN),
    (Name.Builtin, RED),
    (Name.Tag, YELLOW),
    (Name.Class, YELLOW),
    (Name.Function, BLUE),
    (Name.Attribute, BLUE),
    (Operator, YELLOW),
    (Punctuation, CYAN),
)


@dataclass(frozen=True)
class CodeRun:
    text: str
    color: Color | None = None


def token_color(ttype: _TokenType) -> Color | None:
    for parent, color in _TOKEN_COLORS:
        if ttype in parent:
            return color
    return None


def _wrap_code_line(line: str, max_len: int = CODE_WRAP) -> list[str]:
    if len(line) <= max_len:
        return [line]
    return [line[i : i + max_len] for i in range(0, len(line), max_len)]


def wrap_code(code: str, max_len: int = CODE_WRAP) -> list[str]:
    lines: list[str] = []
    for raw in code.rstrip("\n").split("\n"):
        lines.extend(_wrap_code_line(raw, max_len))
    return lines


def find_lexer(info: str, *, syntax_dir: Path | None = None, literal: str = "") -> Lexer | None:
    lang = str(info or "").strip().split(None, 1)[0].lower() if str(info or "").strip() else ""
    if not lang:
        return None
    if lang == "html" and literal.lstrip().startswith("<script"):
        lang = "javascript"
    if syntax_dir is not None:
        candidate = syntax_dir / f"{lang}.py"
        if candidate.is_file():
            try:
                return load_lexer_from_file(str(candidate))
            except ClassNotFound as e:
                log.debug("Syntax definition %s unusable: %s", candidate, e)
    try:
        return get_lexer_by_name(lang, stripnl=False, ensurenl=False)
    except ClassNotFound:
        log.debug("No syntax definition for %r; rendering unhighlighted", lang)
        return None


def highlight_lines(code: str, lexer: Lexer, max_len: int = CODE_WRAP) -> list[list[CodeRun]]:
    """Tokenize wrapped code and split the colored runs back into lines."""
    text = "\n".join(wrap_code(code, max_len))
    lines: list[list[CodeRun]] = [[]]
    for ttype, value in lexer.get_tokens(text):
        color = None if ttype is Token.Text else token_color(ttype)
        parts = value.split("\n")
        for idx, part in enumerate(parts):
            if idx > 0:
                lines.append([])
            if part:
                lines[-1].append(CodeRun(part, color))
    if len(lines) > 1 and not lines[-1]:
        lines.pop()
    return lines
