"""
Layout math shared by the interactive overlay and the export compositor.

Boxes arrive as ``(ymin, xmin, ymax, xmax)`` on a 0-1000 scale. Every function
here is pure so that both renderers produce the same layout from the same
annotations and offsets at whatever size they draw.
"""
from __future__ import annotations

import logging
import math
from typing import Optional, Sequence, Tuple

from lingualens.models import Annotation, Box2D, LabelLayout, Offset, PixelRect

SCALE = 1000
LABEL_GAP = 4  # px between a box and its label, same at every resolution
BOTTOM_THRESHOLD = 850
LEFT_EDGE_THRESHOLD = 100
RIGHT_EDGE_THRESHOLD = 900

logger = logging.getLogger(__name__)


def sanitize_box(box_2d: Sequence) -> Optional[Box2D]:
    """
    Clamp a box into [0, 1000] and fix inverted pairs.

    Returns None when the box cannot be used at all.
    """
    try:
        if len(box_2d) != 4:
            return None
        values = [float(v) for v in box_2d]
    except (TypeError, ValueError):
        return None
    if not all(math.isfinite(v) for v in values):
        return None
    ymin, xmin, ymax, xmax = (int(round(min(max(v, 0.0), SCALE))) for v in values)
    if ymin > ymax:
        ymin, ymax = ymax, ymin
    if xmin > xmax:
        xmin, xmax = xmax, xmin
    return ymin, xmin, ymax, xmax


def is_identical(annotation: Annotation) -> bool:
    """
    True when the translation adds nothing (numbers, symbols); such labels are not drawn.
    """
    return annotation.original.strip() == annotation.translation.strip()


def to_pixel_rect(box_2d: Box2D, canvas_width: float, canvas_height: float) -> PixelRect:
    ymin, xmin, ymax, xmax = box_2d
    sx = canvas_width / SCALE
    sy = canvas_height / SCALE
    return PixelRect(
        x=xmin * sx,
        y=ymin * sy,
        w=(xmax - xmin) * sx,
        h=(ymax - ymin) * sy,
    )


def default_label_origin(
    box_2d: Box2D,
    rect: PixelRect,
    label_width: float,
    label_height: float,
) -> Tuple[float, float]:
    """
    Initial top-left corner of a label, before any user offset.

    Labels go below their box unless the box sits in the bottom 15% of the
    image, and are centered unless the box touches a side edge, in which case
    they align to that edge of the box. Other labels are not considered.
    """
    _, xmin, ymax, xmax = box_2d
    if ymax > BOTTOM_THRESHOLD:
        y = rect.y - label_height - LABEL_GAP
    else:
        y = rect.y + rect.h + LABEL_GAP

    if xmin < LEFT_EDGE_THRESHOLD:
        x = rect.x
    elif xmax > RIGHT_EDGE_THRESHOLD:
        x = rect.x + rect.w - label_width
    else:
        x = rect.x + rect.w / 2 - label_width / 2
    return x, y


def apply_offset(
    origin: Tuple[float, float],
    offset: Offset,
    canvas_width: float,
    canvas_height: float,
) -> Tuple[float, float]:
    x, y = origin
    return (
        x + offset.x * canvas_width / SCALE,
        y + offset.y * canvas_height / SCALE,
    )


def pixel_delta_to_offset(dx: float, dy: float, width: float, height: float) -> Offset:
    """
    Inverse of apply_offset for a pointer movement on a surface of the given size.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Surface size must be positive, got {width}x{height}")
    return Offset(dx * SCALE / width, dy * SCALE / height)


def compute_layout(
    annotation: Annotation,
    offset: Offset,
    canvas_width: float,
    canvas_height: float,
    label_width: float,
    label_height: float,
) -> Optional[LabelLayout]:
    """
    Box and label rectangles for ``annotation`` on a canvas of the given size.

    Returns None if the annotation's box is unrecoverable.
    """
    box = sanitize_box(annotation.box_2d)
    if box is None:
        logger.warning("Skipping annotation with unusable box %r", annotation.box_2d)
        return None
    rect = to_pixel_rect(box, canvas_width, canvas_height)
    origin = default_label_origin(box, rect, label_width, label_height)
    label_x, label_y = apply_offset(origin, offset, canvas_width, canvas_height)
    return LabelLayout(
        box_rect=rect,
        label_rect=PixelRect(label_x, label_y, label_width, label_height),
    )


def normalize_pixel_bbox(
    left: float,
    top: float,
    width: float,
    height: float,
    image_width: int,
    image_height: int,
) -> Box2D:
    """
    Convert a pixel bbox (left, top, width, height) into a 0-1000 ``box_2d``.
    """
    if image_width <= 0 or image_height <= 0:
        raise ValueError(f"Image size must be positive, got {image_width}x{image_height}")
    box = sanitize_box(
        (
            top * SCALE / image_height,
            left * SCALE / image_width,
            (top + height) * SCALE / image_height,
            (left + width) * SCALE / image_width,
        )
    )
    if box is None:
        raise ValueError(f"Invalid pixel bbox {(left, top, width, height)!r}")
    return box
