"""Command-line interface for video_reg."""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from video_reg import __version__
from video_reg.config.schemas import VideoRegConfig, load_config
from video_reg.core.delivery import QueueDelivery
from video_reg.core.errors import ExtractionCancelledError, ExtractionError
from video_reg.core.frame_source import FrameSource, VideoHandle
from video_reg.core.orchestrator import CancellationToken, ExtractionOrchestrator
from video_reg.core.output_formatter import OutputFormatter, create_metadata
from video_reg.core.text_extractor import TextExtractor
from video_reg.utils.logging_config import configure_logging

console = Console()


def print_banner():
    """Print application banner."""
    console.print(f"[bold blue]video-reg[/bold blue] v{__version__}", highlight=False)
    console.print()


def gpu_available() -> bool:
    """Check whether torch sees a CUDA device."""
    try:
        import torch
    except ImportError:
        return False
    return torch.cuda.is_available()


def video_info_table(info, title: str = "Video Information") -> Table:
    table = Table(title=title, show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("File", Path(info.path).name)
    table.add_row("Resolution", f"{info.width}x{info.height}")
    table.add_row("Duration", f"{info.duration_seconds:.2f}s")
    table.add_row("Frame Rate", f"{info.fps:.2f} fps")
    table.add_row("Total Frames", str(info.frame_count))
    return table


@click.group()
@click.version_option(version=__version__)
def main():
    """video-reg - find the text shown in a video and when it appears."""
    pass


@main.command()
@click.argument("video_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output file path")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML configuration file",
)
@click.option("--engine", type=str, default=None, help="OCR engine (see `video-reg engines`)")
@click.option(
    "--stride",
    type=click.IntRange(min=1),
    default=None,
    help="Recognize every Nth frame (default: 15)",
)
@click.option(
    "--language",
    "-l",
    multiple=True,
    help="Language hint as a locale tag, e.g. zh-Hans (repeatable)",
)
@click.option(
    "--language-correction/--no-language-correction",
    default=None,
    help="Let the OCR engine apply language-model correction",
)
@click.option("--confidence-threshold", type=float, default=None, help="Minimum region confidence")
@click.option("--gpu/--no-gpu", default=None, help="Use GPU acceleration if available")
@click.option("--preprocess/--no-preprocess", default=None, help="Enhance contrast before OCR")
@click.option(
    "--output-format",
    type=click.Choice(["json", "text", "markdown"]),
    default=None,
    help="Output format (default: text)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
def extract(
    video_path: Path,
    output: Optional[Path],
    config_path: Optional[Path],
    engine: Optional[str],
    stride: Optional[int],
    language: tuple,
    language_correction: Optional[bool],
    confidence_threshold: Optional[float],
    gpu: Optional[bool],
    preprocess: Optional[bool],
    output_format: Optional[str],
    verbose: bool,
):
    """Extract on-screen text from a video file.

    VIDEO_PATH is the path to the video file to process.
    """
    print_banner()

    config = load_config(config_path).merge_with(
        {
            "sampling": {"stride": stride},
            "recognition": {
                "engine": engine,
                "languages": list(language) or None,
                "allow_language_correction": language_correction,
                "confidence_threshold": confidence_threshold,
                "gpu": gpu,
                "preprocess": preprocess,
            },
            "output": {"format": output_format},
            "logging": {"level": "DEBUG" if verbose else None},
        }
    )

    configure_logging(config.logging)

    frame_source = FrameSource()

    try:
        handle = VideoHandle.from_path(video_path)
        video_info = frame_source.probe(handle)
    except ExtractionError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    console.print(video_info_table(video_info))
    console.print()

    outcome = _run_extraction(config, frame_source, handle)

    if not outcome.ok:
        if isinstance(outcome.error, ExtractionCancelledError):
            console.print(
                f"[yellow]Cancelled[/yellow] after {outcome.frames_processed} frames "
                f"({len(outcome.results)} texts found)"
            )
        else:
            console.print(f"[red]Error:[/red] {outcome.error}")
        sys.exit(1)

    if outcome.frame_failures:
        console.print(
            f"[yellow]Recognition failed on {len(outcome.frame_failures)} frames; "
            f"they were treated as having no text[/yellow]"
        )

    formatter = OutputFormatter(
        include_metadata=config.output.include_metadata,
        pretty_print=config.output.pretty_print,
    )
    metadata = create_metadata(
        source_file=handle.name,
        duration_seconds=outcome.duration_seconds,
        stride=config.sampling.stride,
        frames_processed=outcome.frames_processed,
        language_hints=config.recognition.languages,
        ocr_engine=config.recognition.engine,
    )

    fmt = config.output.format

    if output is not None:
        saved = formatter.save(fmt, outcome, metadata, output)
        console.print(f"[bold]Output saved to:[/bold] {saved}")
    elif fmt == "text":
        results_table = Table(title=f"Recognized Text ({len(outcome.results)})")
        results_table.add_column("Time", style="cyan", no_wrap=True)
        results_table.add_column("Text", style="green")
        for result in outcome.results:
            results_table.add_row(result.timestamp_str, result.text)
        console.print(results_table)
    else:
        click.echo(formatter.format(fmt, outcome, metadata))


def _run_extraction(config: VideoRegConfig, frame_source: FrameSource, handle: VideoHandle):
    """Run the orchestrator on its worker and render progress on this thread."""
    recognition = config.recognition
    use_gpu = recognition.gpu and gpu_available()

    text_extractor = TextExtractor(
        engine=recognition.engine,
        confidence_threshold=recognition.confidence_threshold,
        gpu=use_gpu,
        separator=recognition.separator,
        preprocess=recognition.preprocess,
    )

    delivery = QueueDelivery()
    orchestrator = ExtractionOrchestrator(frame_source, text_extractor, deliver=delivery)
    token = CancellationToken()

    console.print(
        f"[cyan]Using {recognition.engine} ({'GPU' if use_gpu else 'CPU'}), "
        f"languages: {', '.join(recognition.languages)}, stride: {config.sampling.stride}[/cyan]"
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("[cyan]Recognizing text...", total=1.0)

        future = orchestrator.extract(
            handle,
            stride=config.sampling.stride,
            language_hints=recognition.languages,
            progress=lambda value: progress.update(task, completed=value),
            cancel_token=token,
            allow_language_correction=recognition.allow_language_correction,
        )

        try:
            while not future.done():
                delivery.drain(timeout=0.1)
        except KeyboardInterrupt:
            token.cancel()
            console.print("[yellow]Cancelling...[/yellow]")

        outcome = future.result()
        delivery.drain()

    orchestrator.shutdown()
    return outcome


@main.command()
def engines():
    """List available OCR engines."""
    print_banner()

    console.print("[bold]Available OCR Engines:[/bold]")
    console.print()

    for engine_name in TextExtractor.available_engines():
        info = TextExtractor.get_engine_info(engine_name)
        description = f" - {info.description}" if info else ""
        console.print(f"  [green]✓[/green] {engine_name}{description}")


@main.command()
@click.argument("video_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def info(video_path: Path):
    """Display information about a video file."""
    print_banner()

    try:
        video_info = FrameSource().probe(VideoHandle.from_path(video_path))
    except ExtractionError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    console.print(video_info_table(video_info))
    console.print()
    console.print("[bold]Frames recognized per stride:[/bold]")

    for stride in [5, 10, 15, 30]:
        console.print(f"  Every {stride} frames: {video_info.frame_count // stride}")


@main.command()
@click.option("--host", default=None, help="Interface to bind")
@click.option("--port", type=int, default=None, help="Port to listen on")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML configuration file",
)
@click.option("--debug", is_flag=True, help="Run Flask in debug mode")
def serve(host: Optional[str], port: Optional[int], config_path: Optional[Path], debug: bool):
    """Run the web player with clickable text timestamps."""
    from video_reg.web.app import run_server

    config = load_config(config_path).merge_with({"web": {"host": host, "port": port}})
    run_server(config=config, debug=debug)


if __name__ == "__main__":
    main()
