from __future__ import annotations

import httpx
import pytest
from PIL import Image

from markpdf.config import MM_TO_PT
from markpdf.errors import ElementError, RemoteFetchError, ResourceNotFoundError
from markpdf.images import ImageFetcher, is_http_url, natural_size, parse_image_width, place_image

from conftest import RecordingCanvas


@pytest.mark.parametrize(
    ("src", "expected"),
    [
        ("pic.png", ("pic.png", None, None)),
        ("pic.png|width=50%", ("pic.png", 50.0, "%")),
        ("pic.png?width=200", ("pic.png", 200.0, "px")),
        ("pic.png#w=30mm", ("pic.png", 30.0, "mm")),
        ("https://x.test/a.png?width=10cm", ("https://x.test/a.png?width=10cm", 10.0, "cm")),
        ("pic.png?width=wide", ("pic.png", None, None)),
        ("", ("", None, None)),
    ],
)
def test_parse_image_width(src: str, expected: tuple) -> None:
    assert parse_image_width(src) == expected


def test_is_http_url() -> None:
    assert is_http_url("https://example.com/a.png")
    assert not is_http_url("ftp://example.com/a.png")
    assert not is_http_url("images/a.png")


def test_natural_size_uses_dpi(tmp_path) -> None:
    path = tmp_path / "hi.png"
    Image.new("RGB", (300, 150)).save(path, dpi=(300, 300))
    width, height = natural_size(path)
    assert width == pytest.approx(72.0, abs=0.5)
    assert height == pytest.approx(36.0, abs=0.5)


def test_natural_size_of_svg(tmp_path) -> None:
    path = tmp_path / "a.svg"
    path.write_text('<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 192 96"></svg>', encoding="utf-8")
    assert natural_size(path) == pytest.approx((144.0, 72.0))


def test_natural_size_rejects_garbage(tmp_path) -> None:
    path = tmp_path / "bad.png"
    path.write_bytes(b"not an image")
    with pytest.raises(ElementError):
        natural_size(path)


def test_place_image_clamps_to_content_width(tmp_path) -> None:
    path = tmp_path / "wide.png"
    Image.new("RGB", (2000, 100)).save(path)
    canvas = RecordingCanvas()
    place_image(canvas, path)
    ((_, _, x, y, w, h),) = canvas.named("image")
    assert (x, y) == (72.0, 72.0)
    assert w == pytest.approx(451.0)
    assert h == pytest.approx(451.0 / 20)
    assert canvas.get_y() == pytest.approx(72.0 + h)


def test_place_image_breaks_page_when_needed(tmp_path) -> None:
    path = tmp_path / "tall.png"
    Image.new("RGB", (100, 400)).save(path)
    canvas = RecordingCanvas()
    canvas.y = 700.0
    place_image(canvas, path)
    assert canvas.named("add_page") == [("add_page",)]
    assert canvas.named("image")[0][3] == 72.0


def test_place_image_width_override_in_mm(tmp_path) -> None:
    path = tmp_path / "p.png"
    Image.new("RGB", (100, 100)).save(path)
    canvas = RecordingCanvas()
    place_image(canvas, path, width_override=50, width_unit="mm")
    assert canvas.named("image")[0][4] == pytest.approx(50 * MM_TO_PT)


def test_fetcher_resolves_local_files(tmp_path) -> None:
    (tmp_path / "a.png").write_bytes(b"x")
    with ImageFetcher(base_dir=tmp_path) as fetcher, fetcher.open("a.png") as path:
        assert path == tmp_path / "a.png"


def test_fetcher_missing_local_file(tmp_path) -> None:
    fetcher = ImageFetcher(base_dir=tmp_path)
    with pytest.raises(ResourceNotFoundError):
        with fetcher.open("nope.png"):
            pass


def test_fetcher_downloads_relative_to_base_url() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, content=b"PNGDATA", headers={"content-type": "image/png"})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    fetcher = ImageFetcher(base_url="https://example.com/docs", client=client)
    with fetcher.open("img/a.png") as path:
        assert path.read_bytes() == b"PNGDATA"
        tmp_dir = path.parent
    assert seen == ["https://example.com/docs/img/a.png"]
    assert not tmp_dir.exists()
    fetcher.close()
    assert not client.is_closed
    client.close()


def test_fetcher_wraps_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    fetcher = ImageFetcher(client=httpx.Client(transport=httpx.MockTransport(handler)))
    with pytest.raises(RemoteFetchError):
        with fetcher.open("https://example.com/a.png"):
            pass
