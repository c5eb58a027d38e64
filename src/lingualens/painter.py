from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Sequence

from PIL import Image, ImageDraw

from lingualens.geometry import compute_layout, is_identical
from lingualens.models import Annotation, LabelLayout
from lingualens.offsets import OffsetStore
from lingualens.style import BOX_COLOR, LABEL_BACKGROUND, LABEL_TEXT, LabelStyle


@dataclass(frozen=True)
class PlacedLabel:
    index: int
    annotation: Annotation
    layout: LabelLayout


def place_labels(
    annotations: Sequence[Annotation],
    offsets: OffsetStore,
    canvas_width: float,
    canvas_height: float,
    style: LabelStyle,
) -> Iterator[PlacedLabel]:
    """
    Yield the layout of every drawable annotation, in list order.

    Identical-text annotations and unusable boxes are skipped but keep their
    index, so offsets and text edits still line up with the list.
    """
    for index, annotation in enumerate(annotations):
        if is_identical(annotation):
            continue
        label_width, label_height = style.label_size(annotation.translation)
        layout = compute_layout(
            annotation,
            offsets.get(index),
            canvas_width,
            canvas_height,
            label_width,
            label_height,
        )
        if layout is None:
            continue
        yield PlacedLabel(index=index, annotation=annotation, layout=layout)


def draw_labels(
    image: Image.Image,
    annotations: Sequence[Annotation],
    offsets: OffsetStore,
    font_path: Optional[str] = None,
) -> Image.Image:
    """
    Draw boxes and labels onto a copy of ``image`` at its own pixel size.
    """
    canvas = image.convert("RGB")
    width, height = canvas.size
    style = LabelStyle.for_canvas(width, font_path)
    draw = ImageDraw.Draw(canvas, "RGBA")
    for placed in place_labels(annotations, offsets, width, height, style):
        box = placed.layout.box_rect
        label = placed.layout.label_rect
        draw.rectangle(
            [box.x, box.y, box.right, box.bottom],
            outline=BOX_COLOR,
            width=style.stroke_width,
        )
        draw.rectangle([label.x, label.y, label.right, label.bottom], fill=LABEL_BACKGROUND)
        text = placed.annotation.translation
        draw.text(
            style.text_origin(label.x, label.y, label.h, text),
            text,
            fill=LABEL_TEXT,
            font=style.font,
        )
    return canvas
