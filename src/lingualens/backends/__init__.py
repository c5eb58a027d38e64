from .base import TranslationBackend, VisionBackend
from .dummy import DummyBackend
from .openai_backend import OpenAIBackend

__all__ = ["TranslationBackend", "VisionBackend", "DummyBackend", "OpenAIBackend"]
