from __future__ import annotations

import logging

import httpx
import pytest
from PIL import Image

from markpdf.converter import prepare_document
from markpdf.errors import RemoteFetchError, ResourceNotFoundError
from markpdf.highlight import CYAN
from markpdf.images import ImageFetcher
from markpdf.markers import CHECKED_BOX, LIST_TRANSITION_ATTR, UNCHECKED_BOX
from markpdf.nodes import NodeKind
from markpdf.renderer import PdfRenderer
from markpdf.text import IconMode

from conftest import RecordingCanvas


def test_checkbox_items_use_glyph_bullets(render) -> None:
    _, canvas, _ = render("- [ ] a\n- [x] b\n")
    assert canvas.writes() == [UNCHECKED_BOX, "a", CHECKED_BOX, "b"]
    assert not any("[" in text for text in canvas.writes())


def test_checkbox_falls_back_when_glyph_missing(render) -> None:
    _, canvas, _ = render("- [x] done\n", canvas=RecordingCanvas(missing=CHECKED_BOX))
    assert canvas.writes() == ["[x]", "done"]


def test_nested_ordered_numbering(render) -> None:
    _, canvas, _ = render("1. a\n   1. x\n   2. y\n2. b\n")
    labels = [text for text in canvas.writes() if text.endswith(".")]
    assert labels == ["1.", "1.", "2.", "2."]


def test_unordered_items_use_bullet(render) -> None:
    _, canvas, _ = render("- one\n- two\n")
    assert canvas.writes() == ["•", "one", "•", "two"]


def test_item_content_starts_after_label(render) -> None:
    _, canvas, _ = render("- one\n")
    margins = [call[1] for call in canvas.named("left_margin")]
    # list indent is 3 em; item content sits a bullet plus gap further in
    assert margins == pytest.approx([88.5, 88.5 + 5.5 * 1.35, 88.5, 72.0])


def test_definition_list_has_no_bullets(render) -> None:
    _, canvas, _ = render("Term\n: Meaning\n")
    assert "•" not in canvas.writes()
    assert "Term" in canvas.writes()
    assert "Meaning" in canvas.writes()


@pytest.mark.parametrize(
    ("keep", "expected"),
    [(False, ["1.", "2.", "1."]), (True, ["1.", "2.", "3."])],
)
def test_keep_numbering_continues_lists(render, keep: bool, expected: list[str]) -> None:
    _, canvas, _ = render("1. a\n2. b\n\nbreak\n\n1. c\n", keep_numbering=keep)
    labels = [text for text in canvas.writes() if text.endswith(".")]
    assert labels == expected


def test_explicit_start_is_respected(render) -> None:
    _, canvas, _ = render("3. c\n4. d\n")
    assert [t for t in canvas.writes() if t.endswith(".")] == ["3.", "4."]


def test_header_and_body_cells_share_column_width(render) -> None:
    _, canvas, _ = render("| same |\n|---|\n| same |\n")
    cells = [call for call in canvas.named("cell") if call[3] == "same"]
    assert len(cells) == 2
    header, body = cells
    assert header[1] == pytest.approx(body[1])
    assert header[4] == "B"
    assert body[4] == 0
    # closing border spans the table
    assert ("cell", header[1], 0, "", "T", "L", False) in canvas.calls


def test_cell_text_is_buffered_not_written(render) -> None:
    _, canvas, _ = render("| **bold** [x] |\n|---|\n| ✅ |\n", icon_mode=IconMode.EMBED)
    texts = [call[3] for call in canvas.named("cell") if call[3]]
    assert texts == [f"bold {CHECKED_BOX}", "[correct]"]
    assert canvas.writes() == []


def test_container_depth_returns_to_root(styles) -> None:
    source = (
        "# Title\n\n> quote with *em* and [link](https://example.com)\n\n"
        "- a\n  - b\n    1. c\n\n| h |\n|---|\n| v |\n\n```\ncode\n```\n"
    )
    root = prepare_document(source)
    renderer = PdfRenderer(RecordingCanvas(), styles)
    depth_at_enter: dict[int, int] = {}
    for node, entering in root.walk():
        if entering:
            depth_at_enter[id(node)] = renderer.stack.depth
        renderer.dispatch(node, entering)
        if not entering:
            assert renderer.stack.depth == depth_at_enter[id(node)]
    assert renderer.stack.depth == 1
    assert renderer.errors == []


def test_anchor_links_disabled_render_plain(render) -> None:
    _, canvas, _ = render("[go](#sec)\n\n# Sec\n")
    assert ("write", "go", "") in canvas.calls
    assert canvas.named("set_link") == []


def test_anchor_links_enabled_point_at_heading(render) -> None:
    _, canvas, _ = render("[go](#sec)\n\n# Sec\n", anchor_links=True)
    assert ("write", "go", 1) in canvas.calls
    assert canvas.named("set_link") == [("set_link", 1)]


def test_external_link_keeps_destination(render) -> None:
    _, canvas, _ = render("[site](https://example.com/x)\n")
    assert ("write", "site", "https://example.com/x") in canvas.calls


def test_relative_link_uses_base_url(render) -> None:
    _, canvas, _ = render("[doc](./guide.md)\n", base_url="https://example.com/docs/")
    assert ("write", "doc", "https://example.com/docs/guide.md") in canvas.calls


def test_bold_inside_link_keeps_destination(render) -> None:
    _, canvas, _ = render("[**big**](https://example.com)\n")
    assert ("write", "big", "https://example.com") in canvas.calls


def test_missing_image_is_recorded_and_rendering_continues(render, tmp_path) -> None:
    renderer, canvas, _ = render("before\n\n![alt](missing.png)\n\nafter\n", base_dir=tmp_path)
    assert len(renderer.errors) == 1
    assert isinstance(renderer.errors[0], ResourceNotFoundError)
    assert canvas.writes() == ["before", "after"]


def test_remote_image_failure_is_recorded(render) -> None:
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
    fetcher = ImageFetcher(client=client)
    renderer, canvas, _ = render("![x](https://example.com/a.png)\n\nafter\n", fetcher=fetcher)
    assert isinstance(renderer.errors[0], RemoteFetchError)
    assert "after" in canvas.writes()
    client.close()


def test_local_image_is_placed(render, tmp_path) -> None:
    Image.new("RGB", (96, 48), "red").save(tmp_path / "pic.png")
    renderer, canvas, _ = render("![pic](pic.png)\n", base_dir=tmp_path)
    assert renderer.errors == []
    ((_, name, x, _, w, h),) = canvas.named("image")
    assert name == "pic.png"
    assert x == 72.0
    assert w == pytest.approx(72.0)
    assert h == pytest.approx(36.0)


def test_image_width_hint(render, tmp_path) -> None:
    Image.new("RGB", (96, 48), "red").save(tmp_path / "pic.png")
    _, canvas, _ = render("![pic](pic.png?width=50%)\n", base_dir=tmp_path)
    ((_, _, _, _, w, _),) = canvas.named("image")
    assert w == pytest.approx((595 - 144) / 2)


def test_strip_mode_removes_icons(render) -> None:
    _, canvas, _ = render("Ship it \U0001f680 now\n", icon_mode=IconMode.STRIP)
    assert "".join(canvas.writes()) == "Ship it   now"


def test_text_mode_writes_labels(render) -> None:
    _, canvas, _ = render("Ship it \U0001f680\n", icon_mode=IconMode.TEXT)
    assert "".join(canvas.writes()) == "Ship it [launch]"


def test_embed_mode_draws_icon_image(render, tmp_path) -> None:
    Image.new("RGBA", (72, 72)).save(tmp_path / "1f680.png")
    _, canvas, _ = render("Go \U0001f680\n", icon_mode=IconMode.EMBED, emoji_dir=tmp_path)
    assert [call[1] for call in canvas.named("image")] == ["1f680.png"]
    assert canvas.writes() == ["Go "]


def test_embed_mode_falls_back_to_label(render, tmp_path) -> None:
    _, canvas, _ = render("Go \U0001f680\n", icon_mode=IconMode.EMBED, emoji_dir=tmp_path)
    assert canvas.named("image") == []
    assert canvas.writes() == ["Go ", "[launch]"]


def test_code_block_strips_icons_in_embed_mode(render) -> None:
    _, canvas, _ = render("```\nlaunch \U0001f680\n```\n", icon_mode=IconMode.EMBED)
    ((_, _, _, text, fill),) = canvas.named("multi_cell")
    assert text == "launch  "
    assert fill is True


def test_highlighted_code_colors_numbers(render) -> None:
    _, canvas, _ = render("```python\nx = 42\n```\n")
    calls = canvas.calls
    idx = calls.index(("write", "42", ""))
    colors = [call for call in calls[:idx] if call[0] == "text_color"]
    assert colors[-1] == ("text_color", CYAN)


def test_unknown_language_renders_plain(render) -> None:
    _, canvas, _ = render("```nosuchlang\nplain text\n```\n")
    assert [call[3] for call in canvas.named("multi_cell")] == ["plain text"]


def test_horizontal_rule_line(render) -> None:
    _, canvas, _ = render("a\n\n---\n\nb\n")
    assert len(canvas.named("line")) == 1
    assert canvas.named("add_page") == []


def test_horizontal_rule_page_break(render) -> None:
    _, canvas, _ = render("a\n\n---\n\nb\n", hr_new_page=True)
    assert canvas.named("line") == []
    assert canvas.named("add_page") == [("add_page",)]


def test_block_quote_indents_and_restores(render) -> None:
    _, canvas, _ = render("> quoted\n\nafter\n")
    margins = [call[1] for call in canvas.named("left_margin")]
    assert margins[0] > 72.0
    assert margins[-1] == 72.0


def test_headings_get_anchor_targets_for_toc(render) -> None:
    renderer, canvas, _ = render("# One\n\n## Two\n", toc=True)
    assert canvas.named("set_link") == [("set_link", 1), ("set_link", 2)]
    assert renderer.links == {"one": 1, "two": 2}


def test_trace_logger_records_events(render, caplog, monkeypatch) -> None:
    monkeypatch.setattr(logging.getLogger("markpdf.trace"), "propagate", True)
    with caplog.at_level("DEBUG", logger="markpdf.trace"):
        render("hello\n")
    messages = [r.getMessage() for r in caplog.records if r.name == "markpdf.trace"]
    assert any(m.startswith("paragraph enter") for m in messages)
    assert any(m.startswith("text enter") for m in messages)


def test_document_kind_is_ignored(render) -> None:
    _, _, root = render("")
    assert root.kind is NodeKind.DOCUMENT


def _advances(canvas: RecordingCanvas) -> list[float]:
    return [call[1] for call in canvas.named("ln")]


def test_nested_list_advances_a_reduced_line(render) -> None:
    _, canvas, _ = render("- a\n  - b\n")
    # item gap, 0.4 of the item line height, item gap, closing line
    assert _advances(canvas) == pytest.approx([9.0, 12.2 * 0.4, 9.0, 13.0])


def test_list_transition_adds_a_full_line(render) -> None:
    _, canvas, root = render("- a\n\n1. b\n")
    second = list(root.iter_kind(NodeKind.LIST))[1]
    assert LIST_TRANSITION_ATTR in second.attrs
    assert _advances(canvas) == pytest.approx([9.0, 13.0, 13.0, 9.0, 13.0])
    assert canvas.writes() == ["•", "a", "1.", "b"]


@pytest.mark.parametrize(
    ("keep", "expected"),
    [(False, ["1.", "1."]), (True, ["1.", "2."])],
)
def test_bullet_list_between_ordered_lists(render, keep: bool, expected: list[str]) -> None:
    _, canvas, _ = render("1. a\n\n- x\n\n1. b\n", keep_numbering=keep)
    labels = [text for text in canvas.writes() if text.endswith(".")]
    assert labels == expected


def test_heading_resets_numbering(render) -> None:
    _, canvas, _ = render("1. a\n2. b\n\n# Next\n\n1. c\n")
    assert [t for t in canvas.writes() if t.endswith(".")] == ["1.", "2.", "1."]


def test_counter_carries_after_top_level_ordered_list(render) -> None:
    renderer, _, _ = render("1. a\n2. b\n")
    assert renderer.stack.ordered_counter == 2


class _BrokenImageCanvas(RecordingCanvas):
    def image(self, path, *, x, y, w, h) -> None:
        raise OSError("image file is truncated")


def test_broken_icon_image_falls_back_to_label(render, tmp_path) -> None:
    Image.new("RGBA", (72, 72)).save(tmp_path / "1f680.png")
    renderer, canvas, _ = render(
        "Go \U0001f680 now\n",
        canvas=_BrokenImageCanvas(),
        icon_mode=IconMode.EMBED,
        emoji_dir=tmp_path,
    )
    assert len(renderer.errors) == 1
    assert "1f680.png" in str(renderer.errors[0])
    assert canvas.writes() == ["Go ", "[launch]", " now"]
