from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

Box2D = Tuple[int, int, int, int]  # ymin, xmin, ymax, xmax on a 0-1000 scale


class Mode(str, Enum):
    TRANSLATE = "translate"
    STUDIO = "studio"


@dataclass
class Annotation:
    """
    One detected text region with its translation.
    """

    original: str
    translation: str
    box_2d: Box2D

    @classmethod
    def from_dict(cls, data: dict) -> "Annotation":
        """
        Build an annotation from a model payload.

        Raises ValueError when a key is missing or the box is not four numbers.
        Coordinates are kept as given; range problems are handled at draw time.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Annotation must be an object, got {type(data).__name__}")
        missing = [key for key in ("original", "translation", "box_2d") if key not in data]
        if missing:
            raise ValueError(f"Annotation missing keys: {', '.join(missing)}")
        box = data["box_2d"]
        if not isinstance(box, (list, tuple)) or len(box) != 4:
            raise ValueError(f"box_2d must have four coordinates, got {box!r}")
        try:
            coords = tuple(int(round(float(v))) for v in box)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ValueError(f"box_2d must be numeric, got {box!r}") from exc
        return cls(
            original=str(data["original"]),
            translation=str(data["translation"]),
            box_2d=coords,  # type: ignore[arg-type]
        )

    def to_dict(self) -> dict:
        return {
            "original": self.original,
            "translation": self.translation,
            "box_2d": list(self.box_2d),
        }


@dataclass(frozen=True)
class Offset:
    """
    Drag delta of a label's top-left corner, on the same 0-1000 scale as boxes.
    """

    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: "Offset") -> "Offset":
        return Offset(self.x + other.x, self.y + other.y)


@dataclass(frozen=True)
class PixelRect:
    x: float
    y: float
    w: float
    h: float

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.right and self.y <= py <= self.bottom


@dataclass(frozen=True)
class LabelLayout:
    """
    Box and label rectangles for one annotation at one canvas size.
    """

    box_rect: PixelRect
    label_rect: PixelRect


@dataclass
class OcrTextRegion:
    """
    OCR result region in image pixels.
    """

    bbox: Tuple[int, int, int, int]  # left, top, width, height in pixels (image coords)
    source_text: str
    confidence: Optional[float] = None


@dataclass
class ImageState:
    """
    Everything known about the current upload.
    """

    original: Optional[bytes] = None
    mime_type: str = "image/jpeg"
    processed: Optional[bytes] = None
    annotations: List[Annotation] = field(default_factory=list)
    width: int = 0
    height: int = 0
