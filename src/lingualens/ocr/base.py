from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from PIL import Image

from lingualens.models import OcrTextRegion


class OcrBackend(ABC):
    """
    Interface for OCR backends.
    """

    @abstractmethod
    def recognize(
        self,
        image: Image.Image,
        config: Optional[dict] = None,
    ) -> List[OcrTextRegion]:
        """
        Perform OCR on an image and return text regions.
        """
        raise NotImplementedError
