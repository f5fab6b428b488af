from __future__ import annotations

import logging
import sys
from pathlib import Path

TRACE_LOGGER = "markpdf.trace"

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_configured = False


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def configure_logging(level: int | str = logging.INFO, trace_file: Path | str | None = None) -> None:
    global _configured
    root = logging.getLogger("markpdf")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)
    if not _configured:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
        _configured = True

    if trace_file:
        tracer = logging.getLogger(TRACE_LOGGER)
        tracer.setLevel(logging.DEBUG)
        tracer.propagate = False
        path = Path(trace_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="w", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        tracer.addHandler(file_handler)
