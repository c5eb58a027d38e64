from .base import OcrBackend
from .detector import OcrDetectionBackend
from .pytesseract_backend import PytesseractOcrBackend

__all__ = ["OcrBackend", "OcrDetectionBackend", "PytesseractOcrBackend"]
