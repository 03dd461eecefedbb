from .base import TranslationBackend
from .dummy import DummyBackend
from .generate_api import GenerateApiBackend

__all__ = ["TranslationBackend", "DummyBackend", "GenerateApiBackend"]
