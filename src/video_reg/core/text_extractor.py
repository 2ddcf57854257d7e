"""Text recognition for single frames."""

import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Type

import numpy as np

from video_reg.core.errors import RecognitionError, RecognizerUnavailableError
from video_reg.engines.base import BaseOCREngine
from video_reg.engines.easyocr_engine import EasyOCREngine
from video_reg.engines.languages import DEFAULT_LANGUAGE_HINTS, UnsupportedLanguageError
from video_reg.engines.tesseract_engine import TesseractEngine
from video_reg.utils.image_utils import enhance_contrast
from video_reg.utils.logging_config import get_logger


@dataclass
class EngineInfo:
    """Information about an OCR engine."""

    name: str
    display_name: str
    requires_gpu: bool
    description: str


class TextExtractor:
    """
    Recognize the text in a frame.

    Engines are created lazily, one per language configuration, and reused
    for every frame recognized with that configuration.
    """

    _engines: Dict[str, Type[BaseOCREngine]] = {
        "easyocr": EasyOCREngine,
        "tesseract": TesseractEngine,
    }

    _engine_info: Dict[str, EngineInfo] = {
        "easyocr": EngineInfo(
            name="easyocr",
            display_name="EasyOCR",
            requires_gpu=False,
            description="Deep-learning OCR, 80+ languages, one Chinese script per reader",
        ),
        "tesseract": EngineInfo(
            name="tesseract",
            display_name="Tesseract",
            requires_gpu=False,
            description="Classic OCR, CPU-only, supports mixed Chinese scripts",
        ),
    }

    def __init__(
        self,
        engine: str = "easyocr",
        confidence_threshold: float = 0.0,
        gpu: bool = True,
        separator: str = "",
        preprocess: bool = False,
    ):
        """
        Initialize text extractor.

        Args:
            engine: Engine name (see available_engines())
            confidence_threshold: Minimum region confidence to keep
            gpu: Use GPU acceleration if available
            separator: String placed between region texts
            preprocess: Enhance contrast before recognition
        """
        self.logger = get_logger(__name__)
        self.engine_name = engine.lower()
        self.confidence_threshold = confidence_threshold
        self.gpu = gpu
        self.separator = separator
        self.preprocess = preprocess

        self._cache: Dict[Tuple[Tuple[str, ...], bool], BaseOCREngine] = {}
        self._lock = threading.Lock()

    def get_engine(
        self,
        language_hints: Sequence[str] = DEFAULT_LANGUAGE_HINTS,
        allow_language_correction: bool = False,
    ) -> BaseOCREngine:
        """
        Get an initialized engine for a language configuration.

        Raises:
            RecognizerUnavailableError: If the engine is unknown, does not
                support the languages, or fails to initialize
        """
        key = (tuple(language_hints), bool(allow_language_correction))

        with self._lock:
            engine = self._cache.get(key)
            if engine is not None:
                return engine

            if self.engine_name not in self._engines:
                available = ", ".join(self._engines.keys())
                raise RecognizerUnavailableError(
                    f"Unknown engine: {self.engine_name}. Available: {available}"
                )

            self.logger.info(
                f"Creating OCR engine: {self.engine_name} (languages={list(key[0])}, "
                f"language_correction={key[1]})"
            )

            engine = self._engines[self.engine_name](
                languages=key[0],
                allow_language_correction=key[1],
                confidence_threshold=self.confidence_threshold,
                gpu=self.gpu,
            )

            try:
                engine.ensure_initialized()
            except UnsupportedLanguageError as e:
                raise RecognizerUnavailableError(str(e)) from e
            except Exception as e:
                raise RecognizerUnavailableError(
                    f"Failed to initialize {self.engine_name}: {e}"
                ) from e

            self._cache[key] = engine
            return engine

    def recognize(
        self,
        image: np.ndarray,
        language_hints: Sequence[str] = DEFAULT_LANGUAGE_HINTS,
        allow_language_correction: bool = False,
    ) -> str:
        """
        Recognize the text in a frame.

        The best candidate of each detected region is joined in observation
        order and surrounding whitespace is trimmed.

        Args:
            image: BGR numpy array
            language_hints: Ordered locale tags, e.g. ("zh-Hans", "zh-Hant")
            allow_language_correction: Let the engine correct using a language model

        Returns:
            Recognized text, or "" if no text was detected

        Raises:
            RecognizerUnavailableError: If the engine cannot be prepared
            RecognitionError: If the engine fails on this image
        """
        engine = self.get_engine(language_hints, allow_language_correction)

        if self.preprocess:
            image = enhance_contrast(image)

        try:
            regions = engine.recognize(image)
        except Exception as e:
            raise RecognitionError(f"Text recognition failed: {e}") from e

        return self.separator.join(region.text for region in regions).strip()

    @classmethod
    def register_engine(
        cls,
        name: str,
        engine_class: Type[BaseOCREngine],
        info: Optional[EngineInfo] = None,
    ) -> None:
        """Register an additional engine implementation."""
        cls._engines[name.lower()] = engine_class
        if info is not None:
            cls._engine_info[name.lower()] = info

    @classmethod
    def available_engines(cls) -> List[str]:
        """Get list of available engine names."""
        return list(cls._engines.keys())

    @classmethod
    def is_engine_available(cls, engine_name: str) -> bool:
        return engine_name.lower() in cls._engines

    @classmethod
    def get_engine_info(cls, engine_name: str) -> Optional[EngineInfo]:
        return cls._engine_info.get(engine_name.lower())
