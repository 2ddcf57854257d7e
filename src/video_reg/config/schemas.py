"""Configuration schemas and dataclasses for video_reg."""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

DEFAULT_CONFIG_LOCATIONS = [
    Path("config/default.yaml"),
    Path("~/.video-reg/config.yaml").expanduser(),
    Path("/etc/video-reg/config.yaml"),
]


@dataclass
class SamplingConfig:
    """Configuration for frame sampling."""
    stride: int = 15


@dataclass
class RecognitionConfig:
    """Configuration for text recognition."""
    engine: str = "easyocr"
    languages: List[str] = field(default_factory=lambda: ["zh-Hans", "zh-Hant"])
    allow_language_correction: bool = False
    confidence_threshold: float = 0.0
    gpu: bool = True
    separator: str = ""
    preprocess: bool = False


@dataclass
class OutputConfig:
    """Configuration for output generation."""
    format: str = "text"
    include_metadata: bool = True
    pretty_print: bool = True


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    file: Optional[str] = None
    rich_formatting: bool = True
    library_level: str = "WARNING"


@dataclass
class WebConfig:
    """Configuration for the web front end."""
    host: str = "127.0.0.1"
    port: int = 8080
    max_upload_mb: int = 500
    upload_folder: Optional[str] = None


@dataclass
class VideoRegConfig:
    """Main configuration container."""
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    recognition: RecognitionConfig = field(default_factory=RecognitionConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    web: WebConfig = field(default_factory=WebConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "VideoRegConfig":
        """Load configuration from a YAML file."""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "VideoRegConfig":
        """Create configuration from a dictionary."""
        return cls(
            sampling=SamplingConfig(**(data.get("sampling") or {})),
            recognition=RecognitionConfig(**(data.get("recognition") or {})),
            output=OutputConfig(**(data.get("output") or {})),
            logging=LoggingConfig(**(data.get("logging") or {})),
            web=WebConfig(**(data.get("web") or {})),
        )

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        return asdict(self)

    def merge_with(self, overrides: dict) -> "VideoRegConfig":
        """Create a new config with overrides applied. None values are ignored."""

        def deep_merge(base_dict: dict, override_dict: dict) -> dict:
            result = base_dict.copy()
            for key, value in override_dict.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = deep_merge(result[key], value)
                elif value is not None:
                    result[key] = value
            return result

        return VideoRegConfig.from_dict(deep_merge(self.to_dict(), overrides))


def get_default_config() -> VideoRegConfig:
    """Get the default configuration."""
    return VideoRegConfig()


def load_config(config_path: Optional[Path] = None) -> VideoRegConfig:
    """Load configuration from file or return defaults."""
    if config_path and Path(config_path).exists():
        return VideoRegConfig.from_yaml(Path(config_path))

    for location in DEFAULT_CONFIG_LOCATIONS:
        if location.exists():
            return VideoRegConfig.from_yaml(location)

    return get_default_config()
