from __future__ import annotations

__version__ = "0.1.0"

from .config import Margins, RenderOptions, parse_margins  # noqa: E402
from .converter import ConversionResult, convert_file, convert_markdown  # noqa: E402
from .errors import (  # noqa: E402
    ConfigError,
    ContainerStackError,
    ElementError,
    MarkpdfError,
    RemoteFetchError,
    ResourceNotFoundError,
)
from .text import IconMode  # noqa: E402

__all__ = [
    "ConfigError",
    "ContainerStackError",
    "ConversionResult",
    "ElementError",
    "IconMode",
    "Margins",
    "MarkpdfError",
    "RemoteFetchError",
    "RenderOptions",
    "ResourceNotFoundError",
    "__version__",
    "convert_file",
    "convert_markdown",
    "parse_margins",
]
