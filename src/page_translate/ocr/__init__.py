from .base import OcrEngine
from .pytesseract_backend import PytesseractOcrEngine

__all__ = ["OcrEngine", "PytesseractOcrEngine"]
