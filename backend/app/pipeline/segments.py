"""Timed text segments and the highlight windows derived from them."""
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .config import HighlightConfig, DEFAULT_HIGHLIGHT_CONFIG


@dataclass
class Segment:
    """A timed span of transcript text (or a synthetic fallback bucket)."""
    start: float
    end: float
    text: str = ""

    @property
    def duration(self) -> float:
        return self.end - self.start

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end, "text": self.text}

    def __repr__(self):
        return f"Segment({self.start:.2f}-{self.end:.2f}, dur={self.duration:.2f}s)"


@dataclass
class Highlight:
    """A scored candidate window; the final output of the selector."""
    start: float
    end: float
    text: str
    score: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    def to_dict(self) -> dict:
        return {
            "start": self.start,
            "end": self.end,
            "duration": self.duration,
            "text": self.text,
            "score": self.score,
        }


def segments_from_dicts(items: Optional[Iterable[dict]]) -> List[Segment]:
    """
    Build segments from loosely-typed dictionaries (stored or uploaded transcripts).

    Entries with a missing or non-positive duration are dropped.
    """
    segments = []
    for item in items or []:
        try:
            start = max(0.0, float(item["start"]))
            end = float(item["end"])
        except (KeyError, TypeError, ValueError):
            continue
        if end <= start:
            continue
        segments.append(Segment(start=start, end=end, text=str(item.get("text") or "")))
    return segments


def fallback_segments(
    duration: float,
    config: HighlightConfig = DEFAULT_HIGHLIGHT_CONFIG,
) -> List[Segment]:
    """
    Split [0, duration) into contiguous fixed-width buckets.

    Every bucket carries placeholder whitespace text so it still scores as a
    candidate. The last bucket is cut short at ``duration``.
    """
    if not duration or duration <= 0:
        return []

    bucket = config.fallback_bucket_seconds
    count = int(math.ceil(duration / bucket))
    segments = []
    for i in range(count):
        start = i * bucket
        end = min(duration, start + bucket)
        if end > start:
            segments.append(Segment(start=start, end=end, text=config.fallback_text))
    return segments


def derive_segments(
    transcript: List[Segment],
    duration: float,
    config: HighlightConfig = DEFAULT_HIGHLIGHT_CONFIG,
) -> List[Segment]:
    """Use the transcript when there is one, otherwise synthesize buckets."""
    if transcript:
        return list(transcript)
    return fallback_segments(duration, config)
