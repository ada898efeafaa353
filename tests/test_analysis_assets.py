import asyncio
import base64
import io

import pytest
from PIL import Image

from api.services.analysis_pdf import assets
from api.services.analysis_pdf.assets import AssetSourceRejected, fetch_image, load_images, load_optional_image


def _png_bytes(size=(8, 6)):
    buf = io.BytesIO()
    Image.new("RGB", size, (10, 20, 30)).save(buf, format="PNG")
    return buf.getvalue()


def _data_uri():
    return "data:image/png;base64," + base64.b64encode(_png_bytes()).decode()


@pytest.fixture
def local_png(tmp_path):
    path = tmp_path / "avatar.png"
    path.write_bytes(_png_bytes())
    return str(path)


def test_local_paths_load_for_trusted_callers(local_png):
    assert fetch_image(local_png).size == (8, 6)


def test_request_sources_refuse_local_files(local_png):
    with pytest.raises(AssetSourceRejected):
        fetch_image(local_png, remote_only=True)
    assert asyncio.run(load_optional_image(local_png, 1.0, remote_only=True)) is None


def test_request_sources_refuse_plain_http_without_fetching(monkeypatch):
    def no_network(*args, **kwargs):
        raise AssertionError("must not fetch")

    monkeypatch.setattr(assets.requests, "get", no_network)
    with pytest.raises(AssetSourceRejected):
        fetch_image("http://169.254.169.254/latest/meta-data", remote_only=True)


def test_request_sources_accept_data_uris():
    image = asyncio.run(load_optional_image(_data_uri(), 1.0, remote_only=True))
    assert image.size == (8, 6)


def test_load_images_dedupes_and_marks_rejections(local_png):
    uri = _data_uri()
    loaded = asyncio.run(load_images([uri, uri, local_png, ""], 1.0, remote_only=True))
    assert list(loaded) == [uri, local_png]
    assert loaded[uri] is not None
    assert loaded[local_png] is None
