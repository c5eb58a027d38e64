from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from PIL import ImageFont

FontType = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]

BOX_COLOR = (59, 130, 246, 178)
LABEL_BACKGROUND = (15, 23, 42, 255)
LABEL_TEXT = (255, 255, 255, 255)
GRIP_WIDTH = 10  # room for the drag handle drawn on interactive chips

MIN_FONT_SIZE = 16
MAX_FONT_SIZE = 32

_BOLD_FONT_CANDIDATES = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
    "/usr/share/fonts/truetype/noto/NotoSans-Bold.ttf",
    "/usr/share/fonts/truetype/freefont/FreeSansBold.ttf",
    "/Library/Fonts/Arial Bold.ttf",
    "C:/Windows/Fonts/arialbd.ttf",
]

logger = logging.getLogger(__name__)


def find_bold_font() -> Optional[str]:
    for candidate in _BOLD_FONT_CANDIDATES:
        if Path(candidate).exists():
            return candidate
    return None


@functools.lru_cache(maxsize=64)
def load_font(font_path: Optional[str], size: int) -> FontType:
    if font_path:
        try:
            return ImageFont.truetype(font_path, size=size)
        except OSError as exc:
            logger.warning("Could not load font %s (%s); using Pillow default", font_path, exc)
    return ImageFont.load_default(size=size)


@dataclass(frozen=True)
class LabelStyle:
    """
    Label and box metrics for one canvas width.

    Every size derives from the width of the surface being drawn on, which is
    what keeps the preview and the export proportional to each other.
    """

    canvas_width: float
    font_path: Optional[str] = None

    @classmethod
    def for_canvas(cls, canvas_width: float, font_path: Optional[str] = None) -> "LabelStyle":
        return cls(canvas_width=canvas_width, font_path=font_path or find_bold_font())

    @property
    def font_size(self) -> float:
        return max(MIN_FONT_SIZE, min(self.canvas_width * 0.025, MAX_FONT_SIZE))

    @property
    def padding(self) -> float:
        return self.font_size * 0.6

    @property
    def stroke_width(self) -> int:
        return int(round(max(2, self.canvas_width * 0.003)))

    @property
    def font(self) -> FontType:
        return load_font(self.font_path, int(round(self.font_size)))

    def label_size(self, text: str) -> Tuple[float, float]:
        """
        Width and height of the label chip for ``text``.
        """
        text_width = self.font.getlength(text)
        height = self.font_size + self.padding
        width = text_width + self.padding * 2 + GRIP_WIDTH
        return width, height

    def text_origin(self, label_x: float, label_y: float, label_height: float, text: str) -> Tuple[float, float]:
        """
        Top-left draw position that left-aligns ``text`` after the padding and
        centers it vertically in the label.
        """
        _, top, _, bottom = self.font.getbbox(text)
        center_y = label_y + label_height / 2
        return label_x + self.padding + GRIP_WIDTH / 2, center_y - (top + bottom) / 2
