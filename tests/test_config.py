from __future__ import annotations

import pytest

from markpdf.config import MM_TO_PT, Margins, RenderOptions, parse_margins
from markpdf.errors import ConfigError
from markpdf.text import IconMode


def test_single_margin_applies_to_all_sides() -> None:
    margins = parse_margins("10mm")
    assert margins == Margins(10 * MM_TO_PT, 10 * MM_TO_PT, 10 * MM_TO_PT, 10 * MM_TO_PT)


def test_four_margins_in_mixed_units() -> None:
    margins = parse_margins("15mm, 72pt,15mm,20pt")
    assert margins.left == pytest.approx(15 * MM_TO_PT)
    assert margins.top == 72.0
    assert margins.right == pytest.approx(15 * MM_TO_PT)
    assert margins.bottom == 20.0


@pytest.mark.parametrize("spec", ["", "10", "10in", "1mm,2mm", "a,b,c,d"])
def test_bad_margins_raise(spec: str) -> None:
    with pytest.raises(ConfigError):
        parse_margins(spec)


def test_render_options_normalizes_values() -> None:
    options = RenderOptions(icon_mode="TEXT", base_url="https://example.com/docs/")
    assert options.icon_mode is IconMode.TEXT
    assert options.base_url == "https://example.com/docs"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"icon_mode": "sparkle"},
        {"page_size": "b5"},
        {"orientation": "diagonal"},
        {"theme": "neon"},
        {"indent": 0},
    ],
)
def test_render_options_reject_invalid_values(kwargs: dict) -> None:
    with pytest.raises(ConfigError):
        RenderOptions(**kwargs)


def test_page_size_is_case_insensitive() -> None:
    assert RenderOptions(page_size="Letter").page_size == "Letter"
