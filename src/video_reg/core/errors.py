"""Exception hierarchy for video text extraction."""


class VideoRegError(Exception):
    """Base exception for video_reg errors."""

    pass


class ExtractionError(VideoRegError):
    """A failure that ends an extraction run."""

    pass


class StreamOpenError(ExtractionError):
    """The video locator is invalid or the decoder cannot open it."""

    pass


class DurationUnavailableError(ExtractionError):
    """The video's duration is missing or zero."""

    pass


class NoDecodableTrackError(ExtractionError):
    """The video has no visual track."""

    pass


class DecodeError(ExtractionError):
    """The decoder failed while reading the stream."""

    pass


class RecognizerUnavailableError(ExtractionError):
    """The OCR engine could not be created or initialized."""

    pass


class ExtractionCancelledError(ExtractionError):
    """The run was cancelled through its cancellation token."""

    pass


class RecognitionError(VideoRegError):
    """OCR failed on a single frame."""

    pass


class ExtractionInProgressError(VideoRegError):
    """An extraction is already running on this orchestrator."""

    pass


class StreamConsumedError(VideoRegError):
    """A video stream was iterated after it was consumed or closed."""

    pass
