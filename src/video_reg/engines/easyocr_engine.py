"""EasyOCR engine implementation."""

from typing import List, Optional

import numpy as np

from video_reg.engines.base import BaseOCREngine, TextRegion
from video_reg.engines.languages import EASYOCR_CODES, map_languages
from video_reg.utils.image_utils import frame_to_rgb
from video_reg.utils.logging_config import get_logger

# EasyOCR cannot load both Chinese scripts into one reader
_EXCLUSIVE_CODES = ("ch_sim", "ch_tra")


class EasyOCREngine(BaseOCREngine):
    """OCR engine using EasyOCR."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._reader: Optional["easyocr.Reader"] = None
        self.logger = get_logger(__name__)

    def reader_languages(self) -> List[str]:
        """EasyOCR language codes for the configured hints."""
        codes = map_languages(self.languages, EASYOCR_CODES)

        exclusive = [c for c in codes if c in _EXCLUSIVE_CODES]
        if len(exclusive) > 1:
            dropped = exclusive[1:]
            self.logger.warning(
                f"EasyOCR cannot combine {exclusive}; dropping {dropped}"
            )
            codes = [c for c in codes if c not in dropped]

        return codes

    def _initialize(self) -> None:
        """Initialize the EasyOCR reader."""
        import easyocr

        codes = self.reader_languages()

        if self.allow_language_correction:
            self.logger.debug("EasyOCR has no language correction; option ignored")

        self.logger.info(f"Initializing EasyOCR with languages: {codes}, GPU: {self.gpu}")

        self._reader = easyocr.Reader(codes, gpu=self.gpu, verbose=False)

        self.logger.info("EasyOCR initialized successfully")

    def _process_frame(self, frame: np.ndarray) -> List[TextRegion]:
        if self._reader is None:
            raise RuntimeError("EasyOCR not initialized")

        results = self._reader.readtext(frame_to_rgb(frame))

        regions = []
        for polygon, text, confidence in results:
            xs = [p[0] for p in polygon]
            ys = [p[1] for p in polygon]

            regions.append(
                TextRegion(
                    text=text,
                    confidence=float(confidence),
                    bbox=(
                        int(min(xs)),
                        int(min(ys)),
                        int(max(xs) - min(xs)),
                        int(max(ys) - min(ys)),
                    ),
                )
            )

        return regions

    @property
    def name(self) -> str:
        return "easyocr"
