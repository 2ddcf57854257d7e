"""OCR engine implementations."""

from video_reg.engines.base import BaseOCREngine, TextRegion
from video_reg.engines.easyocr_engine import EasyOCREngine
from video_reg.engines.tesseract_engine import TesseractEngine

__all__ = [
    "BaseOCREngine",
    "TextRegion",
    "EasyOCREngine",
    "TesseractEngine",
]
