"""Image helpers shared by the OCR engines."""

import cv2
import numpy as np


def frame_to_rgb(frame: np.ndarray) -> np.ndarray:
    """
    Convert a BGR frame to RGB.

    Args:
        frame: BGR numpy array

    Returns:
        RGB numpy array
    """
    return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)


def enhance_contrast(
    frame: np.ndarray,
    clip_limit: float = 2.0,
    tile_grid_size: int = 8,
) -> np.ndarray:
    """
    Boost local contrast with CLAHE before OCR.

    Args:
        frame: BGR numpy array
        clip_limit: CLAHE clip limit
        tile_grid_size: CLAHE tile grid size (square)

    Returns:
        BGR numpy array of the same shape
    """
    gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    clahe = cv2.createCLAHE(
        clipLimit=clip_limit,
        tileGridSize=(tile_grid_size, tile_grid_size),
    )
    return cv2.cvtColor(clahe.apply(gray), cv2.COLOR_GRAY2BGR)
