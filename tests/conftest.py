from __future__ import annotations

import io
from typing import Callable

import pytest
from PIL import Image


def _image_bytes(width: int = 400, height: int = 400, fmt: str = "PNG", color=(255, 255, 255)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def make_image_bytes() -> Callable[..., bytes]:
    return _image_bytes
