"""First-occurrence deduplication of recognized text."""

from typing import FrozenSet, Iterable, List, Optional, Tuple

from video_reg.core.results import RecognitionResult


class FirstOccurrenceDeduplicator:
    """
    Keep the first occurrence of each distinct text.

    Texts are compared by exact string equality and kept in order of first
    appearance together with the timestamp at which they were first seen.
    Empty strings are never recorded.
    """

    def __init__(self):
        self._seen: set = set()
        self._results: List[RecognitionResult] = []

    def add(self, text: str, timestamp_seconds: float) -> Optional[RecognitionResult]:
        """
        Record a recognized text.

        Args:
            text: Recognized text for one frame
            timestamp_seconds: Presentation time of that frame

        Returns:
            The new RecognitionResult, or None if the text was empty or seen
        """
        if not text or text in self._seen:
            return None

        result = RecognitionResult(text=text, timestamp_seconds=timestamp_seconds)
        self._seen.add(text)
        self._results.append(result)
        return result

    @property
    def results(self) -> List[RecognitionResult]:
        return list(self._results)

    @property
    def seen(self) -> FrozenSet[str]:
        return frozenset(self._seen)

    def __len__(self) -> int:
        return len(self._results)

    @classmethod
    def deduplicate(
        cls, pairs: Iterable[Tuple[str, float]]
    ) -> List[RecognitionResult]:
        """Deduplicate an iterable of (text, timestamp) pairs."""
        dedup = cls()
        for text, timestamp in pairs:
            dedup.add(text, timestamp)
        return dedup.results
