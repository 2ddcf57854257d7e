"""Core components for video text extraction."""

from video_reg.core.deduplicator import FirstOccurrenceDeduplicator
from video_reg.core.delivery import QueueDelivery, direct_delivery
from video_reg.core.frame_source import Frame, FrameSource, VideoHandle, VideoStream
from video_reg.core.orchestrator import CancellationToken, ExtractionOrchestrator, RunState
from video_reg.core.output_formatter import OutputFormatter
from video_reg.core.results import ExtractionOutcome, RecognitionResult
from video_reg.core.text_extractor import TextExtractor

__all__ = [
    "CancellationToken",
    "ExtractionOrchestrator",
    "ExtractionOutcome",
    "FirstOccurrenceDeduplicator",
    "Frame",
    "FrameSource",
    "OutputFormatter",
    "QueueDelivery",
    "RecognitionResult",
    "RunState",
    "TextExtractor",
    "VideoHandle",
    "VideoStream",
    "direct_delivery",
]
