from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from lingualens.models import Annotation


class TranslationBackend(ABC):
    """
    Interface for plain text translation backends.
    """

    @abstractmethod
    def translate_texts(
        self,
        texts: Sequence[str],
        target_lang: str,
        source_lang: Optional[str] = None,
    ) -> List[str]:
        """
        Translate ``texts`` and return translations in the same order.
        """
        raise NotImplementedError


class VisionBackend(ABC):
    """
    Interface for backends that look at a whole image.
    """

    @abstractmethod
    def detect(
        self,
        image_bytes: bytes,
        mime_type: str,
        target_lang: str = "zh-CN",
    ) -> List[Annotation]:
        """
        Find text regions and return them with translations.

        An empty list means no text was found; it is not an error.
        """
        raise NotImplementedError

    def edit(self, image_bytes: bytes, prompt: str, mime_type: str) -> bytes:
        """
        Apply a free-text instruction to the image and return the new image bytes.
        """
        raise NotImplementedError(f"{self.__class__.__name__} does not support image editing")
