"""Tesseract OCR engine implementation."""

from typing import Dict, List, Tuple

import numpy as np
import pytesseract
from PIL import Image

from video_reg.engines.base import BaseOCREngine, TextRegion
from video_reg.engines.languages import TESSERACT_CODES, map_languages
from video_reg.utils.image_utils import frame_to_rgb
from video_reg.utils.logging_config import get_logger

# Turns off the word lists Tesseract uses to correct recognized text
_NO_DICTIONARY_CONFIG = "-c load_system_dawg=0 -c load_freq_dawg=0"


class TesseractEngine(BaseOCREngine):
    """OCR engine using Tesseract via pytesseract. Each region is one text line."""

    def __init__(self, *args, **kwargs):
        # Tesseract doesn't use GPU
        kwargs["gpu"] = False
        super().__init__(*args, **kwargs)
        self.logger = get_logger(__name__)
        self._tesseract_lang: str = ""
        self._config: str = ""

    def _initialize(self) -> None:
        self._tesseract_lang = "+".join(map_languages(self.languages, TESSERACT_CODES))

        try:
            pytesseract.get_tesseract_version()
        except pytesseract.TesseractNotFoundError as e:
            raise RuntimeError(f"Tesseract is not installed or not in PATH: {e}") from e

        self._config = "" if self.allow_language_correction else _NO_DICTIONARY_CONFIG

        self.logger.info(
            f"Initialized Tesseract with languages: {self._tesseract_lang}, "
            f"language correction: {self.allow_language_correction}"
        )

    def _process_frame(self, frame: np.ndarray) -> List[TextRegion]:
        data = pytesseract.image_to_data(
            Image.fromarray(frame_to_rgb(frame)),
            lang=self._tesseract_lang,
            config=self._config,
            output_type=pytesseract.Output.DICT,
        )

        # Group words into lines, keeping the order Tesseract reports them in
        lines: Dict[Tuple[int, int, int], List[int]] = {}
        for i, word in enumerate(data["text"]):
            if not word.strip() or float(data["conf"][i]) < 0:
                continue
            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            lines.setdefault(key, []).append(i)

        regions = []
        for indices in lines.values():
            left = min(data["left"][i] for i in indices)
            top = min(data["top"][i] for i in indices)
            right = max(data["left"][i] + data["width"][i] for i in indices)
            bottom = max(data["top"][i] + data["height"][i] for i in indices)
            confidence = sum(float(data["conf"][i]) for i in indices) / len(indices) / 100.0

            regions.append(
                TextRegion(
                    text=" ".join(data["text"][i].strip() for i in indices),
                    confidence=confidence,
                    bbox=(left, top, right - left, bottom - top),
                )
            )

        return regions

    @property
    def name(self) -> str:
        return "tesseract"
