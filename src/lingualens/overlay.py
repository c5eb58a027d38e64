from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from PIL import Image

from lingualens.geometry import pixel_delta_to_offset
from lingualens.models import Annotation, Offset, PixelRect
from lingualens.offsets import OffsetStore
from lingualens.painter import draw_labels, place_labels
from lingualens.style import LabelStyle


@dataclass(frozen=True)
class HighlightBox:
    index: int
    rect: PixelRect


@dataclass(frozen=True)
class LabelChip:
    index: int
    rect: PixelRect
    text: str
    original: str


@dataclass
class OverlayFrame:
    """
    One render of the overlay at the displayed size, in draw order.
    """

    width: float
    height: float
    boxes: List[HighlightBox] = field(default_factory=list)
    labels: List[LabelChip] = field(default_factory=list)


@dataclass
class _DragGesture:
    index: int
    start: Tuple[float, float]
    start_offset: Offset


class OverlayRenderer:
    """
    Interactive annotation overlay for an image shown at some displayed size.

    The host UI feeds pointer events in displayed-surface pixels and redraws
    from ``render()`` after each of them. Pixel positions are never cached:
    every render works from the normalized annotations and offsets, so a
    resize simply changes the next frame.
    """

    def __init__(
        self,
        annotations: List[Annotation],
        offsets: OffsetStore,
        displayed_width: float,
        displayed_height: float,
        font_path: Optional[str] = None,
    ) -> None:
        self.annotations = annotations
        self.offsets = offsets
        self.font_path = font_path
        self.displayed_width = 0.0
        self.displayed_height = 0.0
        self.resize(displayed_width, displayed_height)
        self._drag: Optional[_DragGesture] = None
        self.logger = logging.getLogger(__name__)

    @classmethod
    def fit(
        cls,
        annotations: List[Annotation],
        offsets: OffsetStore,
        image_size: Tuple[int, int],
        max_width: float,
        font_path: Optional[str] = None,
    ) -> "OverlayRenderer":
        """
        Overlay for an image scaled down to ``max_width`` at its natural aspect ratio.
        """
        image_width, image_height = image_size
        if image_width <= 0 or image_height <= 0:
            raise ValueError(f"Image size must be positive, got {image_width}x{image_height}")
        width = min(float(max_width), float(image_width))
        height = width * image_height / image_width
        return cls(annotations, offsets, width, height, font_path=font_path)

    def resize(self, displayed_width: float, displayed_height: float) -> None:
        if displayed_width <= 0 or displayed_height <= 0:
            raise ValueError(f"Displayed size must be positive, got {displayed_width}x{displayed_height}")
        self.displayed_width = float(displayed_width)
        self.displayed_height = float(displayed_height)

    @property
    def dragging(self) -> Optional[int]:
        return self._drag.index if self._drag else None

    def render(self) -> OverlayFrame:
        frame = OverlayFrame(width=self.displayed_width, height=self.displayed_height)
        style = LabelStyle.for_canvas(self.displayed_width, self.font_path)
        for placed in place_labels(
            self.annotations,
            self.offsets,
            self.displayed_width,
            self.displayed_height,
            style,
        ):
            frame.boxes.append(HighlightBox(index=placed.index, rect=placed.layout.box_rect))
            frame.labels.append(
                LabelChip(
                    index=placed.index,
                    rect=placed.layout.label_rect,
                    text=placed.annotation.translation,
                    original=placed.annotation.original,
                )
            )
        return frame

    def hit_test(self, x: float, y: float) -> Optional[int]:
        """
        Index of the topmost label under the point, if any.
        """
        for chip in reversed(self.render().labels):
            if chip.rect.contains(x, y):
                return chip.index
        return None

    def pointer_down(self, x: float, y: float) -> bool:
        index = self.hit_test(x, y)
        if index is None:
            return False
        self._drag = _DragGesture(index=index, start=(x, y), start_offset=self.offsets.get(index))
        self.logger.debug("Drag started on label %d at (%.1f, %.1f)", index, x, y)
        return True

    def pointer_move(self, x: float, y: float) -> Optional[Offset]:
        if self._drag is None:
            return None
        dx = x - self._drag.start[0]
        dy = y - self._drag.start[1]
        delta = pixel_delta_to_offset(dx, dy, self.displayed_width, self.displayed_height)
        offset = self._drag.start_offset + delta
        self.offsets.set(self._drag.index, offset)
        return offset

    def pointer_up(self) -> None:
        if self._drag is not None:
            self.logger.debug("Drag ended on label %d", self._drag.index)
        self._drag = None

    def edit_text(self, index: int, text: str) -> None:
        """
        Replace the translation shown for annotation ``index``; its box is unchanged.
        """
        if not 0 <= index < len(self.annotations):
            raise IndexError(f"Annotation index {index} out of range")
        current = self.annotations[index]
        self.annotations[index] = Annotation(
            original=current.original,
            translation=text,
            box_2d=current.box_2d,
        )

    def paint(self, image: Image.Image) -> Image.Image:
        """
        Preview of ``image`` with the overlay drawn at the displayed size.
        """
        size = (max(1, int(round(self.displayed_width))), max(1, int(round(self.displayed_height))))
        preview = image.convert("RGB").resize(size)
        return draw_labels(preview, self.annotations, self.offsets, self.font_path)
