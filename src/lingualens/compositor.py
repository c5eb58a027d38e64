from __future__ import annotations

import base64
import binascii
import io
import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Optional, Sequence, Union

from PIL import Image, UnidentifiedImageError

from lingualens.errors import AssetLoadError
from lingualens.models import Annotation
from lingualens.offsets import OffsetStore
from lingualens.painter import draw_labels

ImageSource = Union[bytes, str, Path, Image.Image]

DEFAULT_QUALITY = 90
DEFAULT_LOAD_TIMEOUT = 10.0

logger = logging.getLogger(__name__)


def decode_data_uri(data_uri: str) -> tuple[bytes, str]:
    """
    Split a ``data:<mime>;base64,<payload>`` URI into bytes and mime type.
    """
    header, sep, payload = data_uri.partition(",")
    if not sep or not header.startswith("data:") or ";base64" not in header:
        raise ValueError("Expected a base64 data URI")
    mime = header[len("data:"):].split(";", 1)[0] or "image/jpeg"
    try:
        return base64.b64decode(payload, validate=True), mime
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 payload: {exc}") from exc


def _read_source(source: ImageSource) -> Image.Image:
    if isinstance(source, Image.Image):
        image = source.copy()
    elif isinstance(source, (bytes, bytearray)):
        image = Image.open(io.BytesIO(source))
    elif isinstance(source, str) and source.startswith("data:"):
        image = Image.open(io.BytesIO(decode_data_uri(source)[0]))
    else:
        image = Image.open(Path(source))
    # Force a full decode; Image.open alone only reads the header.
    image.load()
    return image


def load_image(source: ImageSource, timeout: Optional[float] = DEFAULT_LOAD_TIMEOUT) -> Image.Image:
    """
    Decode ``source`` into a drawable image, waiting at most ``timeout`` seconds.

    Raises AssetLoadError on decode failure or timeout. Nothing may be drawn
    until this returns.
    """
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(_read_source, source)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError as exc:
        future.cancel()
        raise AssetLoadError(f"Source image not ready after {timeout}s") from exc
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise AssetLoadError(f"Could not decode source image: {exc}") from exc
    finally:
        executor.shutdown(wait=False)


def composite(
    image: Image.Image,
    annotations: Sequence[Annotation],
    offsets: OffsetStore,
    font_path: Optional[str] = None,
) -> Image.Image:
    """
    Draw boxes and labels over ``image`` at its native resolution.
    """
    width, height = image.size
    if width <= 0 or height <= 0:
        raise AssetLoadError("Source image has no pixels")
    return draw_labels(image, annotations, offsets, font_path)


def encode_jpeg(image: Image.Image, quality: int = DEFAULT_QUALITY) -> bytes:
    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def export_composite(
    source: ImageSource,
    annotations: Sequence[Annotation],
    offsets: OffsetStore,
    quality: int = DEFAULT_QUALITY,
    timeout: Optional[float] = DEFAULT_LOAD_TIMEOUT,
    font_path: Optional[str] = None,
) -> bytes:
    """
    Rasterize the annotated image at native resolution and return JPEG bytes.
    """
    image = load_image(source, timeout=timeout)
    logger.info(
        "Compositing %d annotations onto %dx%d image",
        len(annotations),
        image.width,
        image.height,
    )
    return encode_jpeg(composite(image, annotations, offsets, font_path), quality=quality)
