from .compositor import export_composite
from .geometry import compute_layout
from .models import Annotation, ImageState, LabelLayout, Mode, Offset, PixelRect
from .offsets import OffsetStore

__version__ = "0.1.0"

__all__ = [
    "Annotation",
    "ImageState",
    "LabelLayout",
    "Mode",
    "Offset",
    "OffsetStore",
    "PixelRect",
    "compute_layout",
    "export_composite",
]
