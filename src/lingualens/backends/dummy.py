from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from lingualens.backends.base import TranslationBackend, VisionBackend
from lingualens.models import Annotation


class DummyBackend(TranslationBackend, VisionBackend):
    """
    Development backend.

    Translation prefixes each string with the target language code, detection
    returns the annotations it was configured with, and editing hands the
    image back unchanged.
    """

    def __init__(self, annotations: Optional[Iterable[dict]] = None) -> None:
        self.annotations = [Annotation.from_dict(item) for item in (annotations or [])]

    def translate_texts(
        self,
        texts: Sequence[str],
        target_lang: str,
        source_lang: Optional[str] = None,
    ) -> List[str]:
        return [f"[{target_lang}] {text}" for text in texts]

    def detect(
        self,
        image_bytes: bytes,
        mime_type: str,
        target_lang: str = "zh-CN",
    ) -> List[Annotation]:
        return [
            Annotation(original=a.original, translation=a.translation, box_2d=a.box_2d)
            for a in self.annotations
        ]

    def edit(self, image_bytes: bytes, prompt: str, mime_type: str) -> bytes:
        return image_bytes
