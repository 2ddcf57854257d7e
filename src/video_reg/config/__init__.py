"""Configuration loading."""

from video_reg.config.schemas import VideoRegConfig, get_default_config, load_config

__all__ = ["VideoRegConfig", "get_default_config", "load_config"]
