"""Utility modules for video_reg."""

from video_reg.utils.logging_config import configure_logging, get_logger, setup_logging
from video_reg.utils.image_utils import enhance_contrast, frame_to_rgb

__all__ = [
    "configure_logging",
    "setup_logging",
    "get_logger",
    "enhance_contrast",
    "frame_to_rgb",
]
