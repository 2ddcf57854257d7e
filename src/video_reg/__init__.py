"""Video text recognition: sample video frames, OCR them, index text by timestamp."""

__version__ = "0.1.0"
