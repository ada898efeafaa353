import asyncio
import base64
import io
from dataclasses import replace

import pytest

pytest.importorskip("reportlab")

from PIL import Image
from pypdf import PdfReader
from reportlab.pdfgen import canvas

from api.services.analysis_pdf.blocks import OffscreenHost
from api.services.analysis_pdf.config import PdfConfig
from api.services.analysis_pdf.fallback import (
    CapturedSubtree,
    SubtreeRasterizer,
    capture_subtree,
    draw_subtree_pages,
    subtree_content_pages,
    window_offsets,
)
from api.services.analysis_pdf.text_layout import TextMeasurer
from api.services.analysis_pdf.view_tree import ViewNode

CONFIG = replace(PdfConfig.from_env(), settle_delay=0)
MEASURER = TextMeasurer(CONFIG.font_path, CONFIG.bold_font_path)


def _data_uri(size=(40, 20)):
    buf = io.BytesIO()
    Image.new("RGB", size, (139, 92, 246)).save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode()


def _view(hidden_style, extra_children=()):
    return ViewNode.from_dict(
        {
            "tag": "div",
            "style": {"padding": "16px", "background-color": "#f5f3ff"},
            "children": [
                {"tag": "h1", "text": "Kahve Falı"},
                {"tag": "p", "text": "Fincanınızda bir kuş görünüyor. " * 10, "style": hidden_style},
                {"tag": "img", "src": _data_uri()},
                *extra_children,
            ],
        }
    )


def _capture(view, host=None):
    return asyncio.run(capture_subtree(view, CONFIG, MEASURER, host or OffscreenHost()))


def test_capture_renders_at_fixed_width_and_unmounts():
    host = OffscreenHost()
    capture = _capture(_view({}), host)
    assert capture.image.width == CONFIG.subtree_pixel_width * CONFIG.subtree_scale
    assert capture.width_units == pytest.approx(CONFIG.content_width)
    assert capture.height_units == pytest.approx(capture.image.height * CONFIG.content_width / capture.image.width)
    assert host.mounted == ()


def test_hidden_content_is_expanded_before_capture():
    visible = _capture(_view({}))
    hidden = _capture(_view({"display": "none", "max-height": "20px", "overflow": "hidden"}))
    assert hidden.image.height == visible.image.height


def test_share_controls_are_not_captured():
    plain = _capture(_view({}))
    with_share = _capture(
        _view({}, [{"tag": "div", "attrs": {"class": "share-actions"}, "text": "Paylaş ve kazan " * 20}])
    )
    assert with_share.image.height == plain.image.height


def test_caller_tree_is_not_mutated():
    view = _view({"display": "none"})
    _capture(view)
    assert view.children[1].style == {"display": "none"}


def test_broken_images_do_not_fail_capture():
    view = ViewNode.from_dict({"children": [{"tag": "img", "src": "/no/such/file.png"}, {"tag": "p", "text": "ok"}]})
    capture = _capture(view)
    assert capture.image.height > 0


def test_window_offsets_walk_down_the_image():
    windows = window_offsets(500.0, CONFIG)
    band = CONFIG.content_height
    assert [round(top, 6) for top, _ in windows] == [35.0, 35.0 - band, 35.0 - 2 * band]
    assert windows[-1][1] == pytest.approx(500.0 - 2 * band)


def test_draw_subtree_pages_decorates_every_page():
    capture = CapturedSubtree(image=Image.new("RGB", (200, 600), (255, 255, 255)), width_units=170.0, height_units=500.0)
    assert subtree_content_pages(capture, CONFIG) == 3
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=CONFIG.page_size)
    decorated = []
    drawn = draw_subtree_pages(pdf, capture, 4, CONFIG, lambda c, page, total: decorated.append((page, total)))
    pdf.save()
    assert drawn == 3
    assert decorated == [(2, 4), (3, 4), (4, 4)]
    assert len(PdfReader(io.BytesIO(buffer.getvalue())).pages) == 3


def test_zero_font_size_text_is_hidden_not_fatal():
    hidden = ViewNode.from_dict(
        {
            "children": [
                {"tag": "span", "text": "hidden label", "style": {"font-size": "0px"}},
                {"tag": "span", "text": "negative", "style": {"font-size": "-4px"}},
                {"tag": "p", "text": "ok"},
            ]
        }
    )
    plain = ViewNode.from_dict({"children": [{"tag": "p", "text": "ok"}]})
    assert _capture(hidden).image.height == _capture(plain).image.height


def test_zero_font_size_measurer_still_returns_a_font():
    font = MEASURER.font(0)
    assert MEASURER.width("abc", font) >= 0


def test_nested_backgrounds_paint_outer_first():
    view = ViewNode.from_dict(
        {
            "style": {"background-color": "#ff0000", "padding": "10px"},
            "children": [{"style": {"background-color": "#0000ff", "padding": "10px"}, "text": "x"}],
        }
    )
    image = SubtreeRasterizer(MEASURER, 200, 1).rasterize(view)
    assert image.getpixel((2, 2)) == (255, 0, 0)
    assert image.getpixel((12, 12)) == (0, 0, 255)


def test_capture_taller_than_jpeg_limit_spans_many_pages():
    capture = CapturedSubtree(image=Image.new("RGB", (20, 70000), (245, 243, 255)), width_units=170.0, height_units=6300.0)
    pages = subtree_content_pages(capture, CONFIG)
    assert pages == 31
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=CONFIG.page_size)
    drawn = draw_subtree_pages(pdf, capture, pages + 1, CONFIG, lambda c, page, total: None)
    pdf.save()
    assert drawn == 31
    assert len(PdfReader(io.BytesIO(buffer.getvalue())).pages) == 31
