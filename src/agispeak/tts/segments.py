"""Text sanitising and segmentation for the speech service.

The speech endpoint rejects requests over 1000 characters, so text is cut
into segments that end on punctuation where possible, on whitespace
otherwise, and on a hard cut as a last resort.
"""

import re
from collections.abc import Iterator

PUNCTUATION = ".,?!:;"
MAX_SEGMENT_LENGTH = 1000

_UNSAFE_CHARS = re.compile(r"[\x00-\x1f\x7f\"\\]")
_WHITESPACE = re.compile(r"\s+")


def sanitize(text: str) -> str:
    """Strip control characters, quotes and backslashes and collapse whitespace."""
    text = _UNSAFE_CHARS.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def normalize(text: str) -> str:
    """Terminate text with a full stop unless it already ends on punctuation."""
    if text and text[-1] not in PUNCTUATION:
        return text + "."
    return text


def _segment_pattern(limit: int) -> re.Pattern[str]:
    if limit < 2:
        raise ValueError(f"segment limit must be at least 2, got {limit}")
    punct = re.escape(PUNCTUATION)
    return re.compile(
        rf".{{1,{limit - 1}}}[{punct}]|.{{1,{limit - 1}}}\s|.{{1,{limit}}}",
        re.DOTALL,
    )


class SegmentSequence:
    """Restartable, lazy sequence of bounded-length text segments.

    Iterating scans the normalized text from the start every time, so the
    same instance can be walked more than once.

    Example:
        >>> list(SegmentSequence("Hello there. How are you today", limit=20))
        ['Hello there.', 'How are you today.']
    """

    def __init__(self, text: str, limit: int = MAX_SEGMENT_LENGTH) -> None:
        self.text = normalize(text)
        self.limit = limit
        self._pattern = _segment_pattern(limit)

    def __iter__(self) -> Iterator[str]:
        for match in self._pattern.finditer(self.text):
            segment = match.group(0).strip()
            if segment:
                yield segment


def split_segments(text: str, limit: int = MAX_SEGMENT_LENGTH) -> SegmentSequence:
    """Split sanitized text into segments of at most ``limit`` characters."""
    return SegmentSequence(text, limit)
