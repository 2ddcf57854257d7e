"""Base class for OCR engines."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from video_reg.engines.languages import DEFAULT_LANGUAGE_HINTS


@dataclass
class TextRegion:
    """A detected text region with its best candidate string."""

    text: str
    confidence: float
    bbox: Tuple[int, int, int, int]  # (x, y, width, height)


class BaseOCREngine(ABC):
    """Abstract base class for OCR engines."""

    def __init__(
        self,
        languages: Sequence[str] = DEFAULT_LANGUAGE_HINTS,
        allow_language_correction: bool = False,
        confidence_threshold: float = 0.0,
        gpu: bool = True,
    ):
        """
        Initialize OCR engine.

        Args:
            languages: Ordered locale tags (e.g. "zh-Hans") to recognize
            allow_language_correction: Let the engine apply language-model correction
            confidence_threshold: Minimum confidence to accept a region
            gpu: Use GPU acceleration if available
        """
        self.languages = list(languages)
        self.allow_language_correction = allow_language_correction
        self.confidence_threshold = confidence_threshold
        self.gpu = gpu
        self._initialized = False

    @abstractmethod
    def _initialize(self) -> None:
        """Initialize the OCR engine. Called lazily on first use."""
        pass

    def ensure_initialized(self) -> None:
        """Ensure the engine is initialized."""
        if not self._initialized:
            self._initialize()
            self._initialized = True

    @abstractmethod
    def _process_frame(self, frame: np.ndarray) -> List[TextRegion]:
        """
        Run OCR on a frame.

        Args:
            frame: BGR numpy array

        Returns:
            TextRegion objects in the order the engine observed them
        """
        pass

    def recognize(self, frame: np.ndarray) -> List[TextRegion]:
        """
        Detect text regions in a frame.

        Args:
            frame: BGR numpy array

        Returns:
            Regions at or above the confidence threshold, in observation order
        """
        self.ensure_initialized()

        regions = self._process_frame(frame)

        return [r for r in regions if r.confidence >= self.confidence_threshold]

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of this OCR engine."""
        pass
