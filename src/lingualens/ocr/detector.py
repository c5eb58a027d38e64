from __future__ import annotations

import io
import logging
from typing import List, Optional

from PIL import Image

from lingualens.backends.base import TranslationBackend, VisionBackend
from lingualens.geometry import normalize_pixel_bbox
from lingualens.models import Annotation
from lingualens.ocr.base import OcrBackend
from lingualens.ocr.pytesseract_backend import PytesseractOcrBackend


class OcrDetectionBackend(VisionBackend):
    """
    Local detection: OCR for the regions, a text backend for the translations.
    """

    def __init__(
        self,
        translator: TranslationBackend,
        ocr_backend: Optional[OcrBackend] = None,
        ocr_config: Optional[dict] = None,
        source_lang: Optional[str] = None,
    ) -> None:
        self.translator = translator
        self.ocr_backend = ocr_backend or PytesseractOcrBackend()
        self.ocr_config = ocr_config or {}
        self.source_lang = source_lang
        self.logger = logging.getLogger(__name__)

    def detect(
        self,
        image_bytes: bytes,
        mime_type: str,
        target_lang: str = "zh-CN",
    ) -> List[Annotation]:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
        width, height = image.size
        regions = self.ocr_backend.recognize(image, config=self.ocr_config)
        if not regions:
            return []
        self.logger.info("Extracted %d OCR text regions", len(regions))

        translations = self.translator.translate_texts(
            [r.source_text for r in regions],
            target_lang=target_lang,
            source_lang=self.source_lang,
        )
        if len(translations) != len(regions):
            raise RuntimeError(f"Expected {len(regions)} translations, got {len(translations)}")

        annotations: List[Annotation] = []
        for region, translation in zip(regions, translations):
            left, top, w, h = region.bbox
            try:
                box = normalize_pixel_bbox(left, top, w, h, width, height)
            except ValueError as exc:
                self.logger.warning("Dropping OCR region %r: %s", region.source_text, exc)
                continue
            annotations.append(Annotation(original=region.source_text, translation=translation, box_2d=box))
        return annotations
