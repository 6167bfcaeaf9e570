"""Highlight selection configuration."""
import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern

from app.config import settings


@dataclass
class HighlightConfig:
    """Tunables for the transcript-driven highlight selector."""

    # Scoring
    min_scoring_duration: float = 0.4  # Floor for words-per-second denominator
    keyword_boost: float = 1.4
    keywords: List[str] = field(default_factory=lambda: list(settings.highlight_keywords))

    # Merging
    merge_gap_sec: float = 0.6  # Adjacent segments closer than this are merged

    # Duration normalization
    target_min_seconds: float = 8.0
    max_extension_seconds: float = 4.0
    max_clip_seconds: float = 20.0

    # Overlap resolution
    overlap_buffer_sec: float = 0.5
    min_render_seconds: float = 0.2

    # Fallback segmentation when no transcript exists
    fallback_bucket_seconds: float = 10.0
    fallback_text: str = " "

    _keyword_pattern: Optional[Pattern] = field(default=None, init=False, repr=False)

    @property
    def keyword_pattern(self) -> Pattern:
        """Case-insensitive alternation of the virality keywords."""
        if self._keyword_pattern is None:
            alternation = "|".join(re.escape(k) for k in self.keywords if k)
            # An empty alternation would match every string
            self._keyword_pattern = re.compile(alternation or r"(?!x)x", re.IGNORECASE)
        return self._keyword_pattern


# Default configuration instance
DEFAULT_HIGHLIGHT_CONFIG = HighlightConfig()
