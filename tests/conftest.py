"""
Pytest fixtures for picture pipeline tests.
"""

import base64
import io
import random

import pytest
from PIL import Image

from picture_shared.protocol import ProcessingOptions


def _encode(img, fmt, **params):
    buffer = io.BytesIO()
    img.save(buffer, format=fmt, **params)
    return buffer.getvalue()


def gradient_image(width, height, mode="RGB"):
    """Smooth image that compresses well."""
    gray = Image.linear_gradient("L").resize((width, height))
    if mode == "RGBA":
        return Image.merge("RGBA", (gray, gray.transpose(Image.Transpose.FLIP_LEFT_RIGHT), gray, gray))
    return Image.merge("RGB", (gray, gray.transpose(Image.Transpose.FLIP_TOP_BOTTOM), gray))


def noise_image(width, height, mode="RGB", seed=0):
    """Incompressible image, seeded so every run gets the same pixels."""
    channels = len(mode)
    data = random.Random(seed).randbytes(width * height * channels)
    return Image.frombytes(mode, (width, height), data)


@pytest.fixture
def make_jpeg():
    def factory(width=100, height=100, noise=False, quality=90, exif=None):
        img = noise_image(width, height) if noise else gradient_image(width, height)
        params = {"quality": quality}
        if exif is not None:
            params["exif"] = exif
        return _encode(img, "JPEG", **params)
    return factory


@pytest.fixture
def make_png():
    def factory(width=100, height=100, noise=False, alpha=True):
        mode = "RGBA" if alpha else "RGB"
        img = noise_image(width, height, mode) if noise else gradient_image(width, height, mode)
        return _encode(img, "PNG")
    return factory


@pytest.fixture
def sample_image_bytes(make_jpeg):
    """Fixture providing sample JPEG image bytes."""
    return make_jpeg(100, 100)


@pytest.fixture
def sample_png_bytes(make_png):
    """Fixture providing sample PNG image bytes with transparency."""
    return make_png(100, 100)


@pytest.fixture
def data_uri():
    def factory(data, mime="image/png"):
        return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"
    return factory


@pytest.fixture
def content_dir(tmp_path):
    path = tmp_path / "content"
    path.mkdir()
    return path


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "out"


@pytest.fixture
def options(content_dir, output_dir):
    """Options rooted in the test's temporary directory."""
    return ProcessingOptions(
        output_base=output_dir,
        source_base=content_dir,
        public_base="/assets",
    )


@pytest.fixture
def mock_response(mocker):
    """Factory for a streamed requests.Response stand-in."""
    def factory(status=200, body=b"", headers=None, chunk_size=None):
        response = mocker.MagicMock()
        response.status_code = status
        response.headers = headers if headers is not None else {}
        if chunk_size:
            chunks = [body[i:i + chunk_size] for i in range(0, len(body), chunk_size)]
        else:
            chunks = [body] if body else []
        response.iter_content.return_value = iter(chunks)
        return response
    return factory


@pytest.fixture
def mock_session(mocker):
    """Session whose get() is configured per test."""
    return mocker.MagicMock()
