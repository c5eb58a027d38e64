from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from PIL import Image

try:
    import pytesseract
except ImportError:  # pragma: no cover - optional dependency
    pytesseract = None

from lingualens.models import OcrTextRegion
from lingualens.ocr.base import OcrBackend


class PytesseractOcrBackend(OcrBackend):
    """
    OCR backend using pytesseract.

    Words are merged into one region per Tesseract line so that labels carry
    whole phrases rather than single words.
    """

    def __init__(self, min_confidence: float = 0.0) -> None:
        if pytesseract is None:
            raise ImportError("pytesseract is required for OCR; install with `pip install lingualens[ocr]`.")
        self.min_confidence = min_confidence
        self.logger = logging.getLogger(__name__)

    def recognize(
        self,
        image: Image.Image,
        config: Optional[dict] = None,
    ) -> List[OcrTextRegion]:
        tesseract_config = config.get("tesseract_config", "") if config else ""
        lang = config.get("lang") if config else None
        data = pytesseract.image_to_data(
            image,
            config=tesseract_config,
            lang=lang,
            output_type=pytesseract.Output.DICT,
        )

        lines: Dict[Tuple[int, int, int], List[int]] = {}
        for i, text in enumerate(data["text"]):
            if not text or text.strip() == "":
                continue
            if float(data["conf"][i]) < self.min_confidence:
                continue
            key = (int(data["block_num"][i]), int(data["par_num"][i]), int(data["line_num"][i]))
            lines.setdefault(key, []).append(i)

        regions: List[OcrTextRegion] = []
        for key in sorted(lines):
            words = lines[key]
            left = min(int(data["left"][i]) for i in words)
            top = min(int(data["top"][i]) for i in words)
            right = max(int(data["left"][i]) + int(data["width"][i]) for i in words)
            bottom = max(int(data["top"][i]) + int(data["height"][i]) for i in words)
            confidences = [float(data["conf"][i]) for i in words]
            regions.append(
                OcrTextRegion(
                    bbox=(left, top, right - left, bottom - top),
                    source_text=" ".join(data["text"][i].strip() for i in words),
                    confidence=sum(confidences) / len(confidences),
                )
            )
        self.logger.debug("Tesseract found %d lines", len(regions))
        return regions
