from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from lingualens.backends import VisionBackend
from lingualens.compositor import (
    DEFAULT_LOAD_TIMEOUT,
    DEFAULT_QUALITY,
    decode_data_uri,
    export_composite,
    load_image,
)
from lingualens.errors import DetectionError, EditError
from lingualens.models import Annotation, ImageState, Mode, Offset
from lingualens.offsets import OffsetStore
from lingualens.overlay import OverlayRenderer

NO_TEXT_MESSAGE = "No text detected to translate."


@dataclass
class DetectionResult:
    annotations: List[Annotation] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def no_text(self) -> bool:
        return not self.annotations


class LensSession:
    """
    Holds one uploaded image with its annotations and label offsets.

    Translate mode fills ``state.annotations`` through the vision backend and
    exports a composite; studio mode fills ``state.processed`` through the
    editing backend. Loading a new image or resetting discards everything.
    """

    def __init__(
        self,
        backend: VisionBackend,
        target_lang: str = "zh-CN",
        font_path: Optional[str] = None,
        load_timeout: Optional[float] = DEFAULT_LOAD_TIMEOUT,
        quality: int = DEFAULT_QUALITY,
    ) -> None:
        self.backend = backend
        self.target_lang = target_lang
        self.font_path = font_path
        self.load_timeout = load_timeout
        self.quality = quality
        self.state = ImageState()
        self.offsets = OffsetStore()
        self.logger = logging.getLogger(__name__)

    @property
    def has_image(self) -> bool:
        return self.state.original is not None

    def load(self, data: Union[bytes, str], mime_type: Optional[str] = None) -> ImageState:
        """
        Start over with a new image, given as raw bytes or a base64 data URI.
        """
        if isinstance(data, str):
            data, uri_mime = decode_data_uri(data)
            mime_type = mime_type or uri_mime
        image = load_image(data, timeout=self.load_timeout)
        self.reset()
        self.state = ImageState(
            original=data,
            mime_type=mime_type or _mime_for_format(image.format),
            annotations=self.state.annotations,
            width=image.width,
            height=image.height,
        )
        self.logger.info("Loaded %dx%d %s image", image.width, image.height, self.state.mime_type)
        return self.state

    def load_file(self, path: Path) -> ImageState:
        if not path.exists():
            raise FileNotFoundError(f"Input file not found: {path}")
        mime_type, _ = mimetypes.guess_type(path.name)
        return self.load(path.read_bytes(), mime_type)

    def reset(self) -> None:
        # Keep the list object so overlays already handed out see it emptied.
        annotations = self.state.annotations
        annotations.clear()
        self.state = ImageState(annotations=annotations)
        self.offsets.clear()

    def detect(self) -> DetectionResult:
        """
        Run detection and replace the annotation list with its result.

        Offsets are cleared first since they are keyed by list position.
        """
        original = self._require_image()
        self.offsets.clear()
        try:
            results = self.backend.detect(original, self.state.mime_type, target_lang=self.target_lang)
        except Exception as exc:
            raise DetectionError(f"Failed to process translation: {exc}") from exc
        # Replace in place so overlays holding this list see the new annotations.
        self.state.annotations[:] = results
        if not results:
            self.logger.info(NO_TEXT_MESSAGE)
            return DetectionResult(annotations=[], message=NO_TEXT_MESSAGE)
        self.logger.info("Detected %d annotations", len(results))
        return DetectionResult(annotations=list(results))

    def set_offset(self, index: int, offset: Offset) -> None:
        self._check_index(index)
        self.offsets.set(index, offset)

    def set_translation(self, index: int, text: str) -> None:
        self._check_index(index)
        current = self.state.annotations[index]
        self.state.annotations[index] = Annotation(
            original=current.original,
            translation=text,
            box_2d=current.box_2d,
        )

    def overlay(self, max_width: float) -> OverlayRenderer:
        """
        Interactive overlay bound to this session's annotations and offsets.
        """
        self._require_image()
        return OverlayRenderer.fit(
            self.state.annotations,
            self.offsets,
            (self.state.width, self.state.height),
            max_width,
            font_path=self.font_path,
        )

    def edit(self, prompt: str) -> bytes:
        original = self._require_image()
        if not prompt.strip():
            raise ValueError("Edit prompt must not be empty")
        try:
            edited = self.backend.edit(original, prompt, self.state.mime_type)
        except Exception as exc:
            raise EditError(f"Failed to edit image: {exc}") from exc
        self.state.processed = edited
        self.logger.info("Received edited image (%d bytes)", len(edited))
        return edited

    def export(self, mode: Mode = Mode.TRANSLATE) -> bytes:
        """
        Bytes of the downloadable image for ``mode``.

        Studio mode returns the edited image, or the original if there is none yet.
        """
        original = self._require_image()
        if mode == Mode.STUDIO:
            return self.state.processed or original
        return export_composite(
            original,
            self.state.annotations,
            self.offsets,
            quality=self.quality,
            timeout=self.load_timeout,
            font_path=self.font_path,
        )

    def save(self, output_dir: Path, mode: Mode = Mode.TRANSLATE, output_path: Optional[Path] = None) -> Path:
        target = output_path or output_dir / download_name(mode)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(self.export(mode))
        self.logger.info("Wrote %s image to %s", mode.value, target)
        return target

    def _require_image(self) -> bytes:
        if self.state.original is None:
            raise ValueError("No image loaded")
        return self.state.original

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.state.annotations):
            raise IndexError(f"Annotation index {index} out of range")


def _mime_for_format(image_format: Optional[str]) -> str:
    if not image_format:
        return "image/jpeg"
    return mimetypes.types_map.get(f".{image_format.lower()}", "image/jpeg")


def download_name(mode: Mode, now: Optional[datetime] = None) -> str:
    """
    File name for a download, e.g. ``lingualens-translated-2024-05-01T10-00-00-000000+00-00.jpg``.
    """
    timestamp = (now or datetime.now(timezone.utc)).isoformat().replace(":", "-").replace(".", "-")
    label = "translated" if mode == Mode.TRANSLATE else "studio"
    return f"lingualens-{label}-{timestamp}.jpg"
