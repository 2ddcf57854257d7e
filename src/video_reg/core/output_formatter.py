"""Output formatting for extraction results."""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Sequence

from video_reg.core.results import ExtractionOutcome, format_time

FORMAT_EXTENSIONS = {"json": ".json", "text": ".txt", "markdown": ".md"}


@dataclass
class ExtractionMetadata:
    """Metadata about the extraction process."""

    source_file: str
    duration_seconds: float
    stride: int
    frames_processed: int
    language_hints: List[str]
    ocr_engine: str
    extraction_timestamp: str

    def to_dict(self) -> dict:
        return {
            "source_file": self.source_file,
            "duration_seconds": round(self.duration_seconds, 3),
            "stride": self.stride,
            "frames_processed": self.frames_processed,
            "language_hints": self.language_hints,
            "ocr_engine": self.ocr_engine,
            "extraction_timestamp": self.extraction_timestamp,
        }


class OutputFormatter:
    """
    Format extraction results.

    Supports JSON, Markdown, and plain text output.
    """

    def __init__(self, include_metadata: bool = True, pretty_print: bool = True):
        self.include_metadata = include_metadata
        self.pretty_print = pretty_print

    def format_json(self, outcome: ExtractionOutcome, metadata: ExtractionMetadata) -> str:
        output: Dict[str, Any] = {}

        if self.include_metadata:
            output["metadata"] = metadata.to_dict()

        output["results"] = [r.to_dict() for r in outcome.results]
        output["frame_failures"] = [f.to_dict() for f in outcome.frame_failures]
        output["statistics"] = {
            "distinct_texts": len(outcome.results),
            "frames_processed": outcome.frames_processed,
            "recognition_failures": len(outcome.frame_failures),
            "character_count": sum(len(r.text) for r in outcome.results),
        }

        if self.pretty_print:
            return json.dumps(output, indent=2, ensure_ascii=False)
        return json.dumps(output, ensure_ascii=False)

    def format_text(self, outcome: ExtractionOutcome, metadata: ExtractionMetadata) -> str:
        lines = []

        if self.include_metadata:
            lines.append(f"Source: {metadata.source_file}")
            lines.append(f"Duration: {format_time(metadata.duration_seconds)}")
            lines.append("")

        for result in outcome.results:
            lines.append(f"[{result.timestamp_str}] {result.text}")

        return "\n".join(lines) + "\n"

    def format_markdown(self, outcome: ExtractionOutcome, metadata: ExtractionMetadata) -> str:
        lines = [f"# {metadata.source_file}", ""]

        if self.include_metadata:
            lines.append(f"- **Duration:** {format_time(metadata.duration_seconds)}")
            lines.append(f"- **Frames processed:** {metadata.frames_processed}")
            lines.append(f"- **Engine:** {metadata.ocr_engine}")
            lines.append(f"- **Languages:** {', '.join(metadata.language_hints)}")
            lines.append("")

        lines.append("| Time | Text |")
        lines.append("|------|------|")
        for result in outcome.results:
            text = result.text.replace("|", "\\|").replace("\n", " ")
            lines.append(f"| {result.timestamp_str} | {text} |")

        return "\n".join(lines) + "\n"

    def format(self, fmt: str, outcome: ExtractionOutcome, metadata: ExtractionMetadata) -> str:
        formatters = {
            "json": self.format_json,
            "text": self.format_text,
            "markdown": self.format_markdown,
        }
        if fmt not in formatters:
            raise ValueError(f"Unknown output format: {fmt}")
        return formatters[fmt](outcome, metadata)

    def save(
        self,
        fmt: str,
        outcome: ExtractionOutcome,
        metadata: ExtractionMetadata,
        output_path: Path,
    ) -> Path:
        """
        Write results in one format.

        A path without a suffix gets the format's extension.

        Returns:
            Path the file was written to
        """
        output_path = Path(output_path)
        if output_path.suffix == "":
            output_path = output_path.with_suffix(FORMAT_EXTENSIONS[fmt])

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.format(fmt, outcome, metadata), encoding="utf-8")
        return output_path


def create_metadata(
    source_file: str,
    duration_seconds: float,
    stride: int,
    frames_processed: int,
    language_hints: Sequence[str],
    ocr_engine: str,
) -> ExtractionMetadata:
    """Create extraction metadata stamped with the current UTC time."""
    return ExtractionMetadata(
        source_file=source_file,
        duration_seconds=duration_seconds,
        stride=stride,
        frames_processed=frames_processed,
        language_hints=list(language_hints),
        ocr_engine=ocr_engine,
        extraction_timestamp=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    )
