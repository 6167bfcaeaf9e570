"""Transcript-driven highlight selection.

Scores timed segments by speech density, sentiment and keyword presence,
merges neighbours into candidate windows, normalizes their length and keeps
the best non-overlapping few.
"""
import logging
from typing import Callable, List

import numpy as np

from .config import HighlightConfig, DEFAULT_HIGHLIGHT_CONFIG
from .segments import Segment, Highlight
from .sentiment import polarity

logger = logging.getLogger(__name__)

Scorer = Callable[[str], float]


def word_count(text: str) -> int:
    return len((text or "").split())


def score_segments(
    segments: List[Segment],
    config: HighlightConfig = DEFAULT_HIGHLIGHT_CONFIG,
    scorer: Scorer = polarity,
) -> List[Highlight]:
    """
    Score each segment independently.

    score = words_per_second * sentiment_factor * keyword_factor

    Returns:
        Scored candidates in start-time order
    """
    if not segments:
        return []

    ordered = sorted(segments, key=lambda s: s.start)

    words = np.array([word_count(s.text) for s in ordered], dtype=float)
    durations = np.array([s.end - s.start for s in ordered], dtype=float)
    words_per_sec = words / np.maximum(durations, config.min_scoring_duration)

    sentiment = np.maximum(0.0, np.array([scorer(s.text) for s in ordered], dtype=float) + 1.0)

    pattern = config.keyword_pattern
    has_keyword = np.array([bool(pattern.search(s.text or "")) for s in ordered])
    keyword = np.where(has_keyword, config.keyword_boost, 1.0)

    scores = words_per_sec * sentiment * keyword

    return [
        Highlight(start=s.start, end=s.end, text=s.text, score=float(score))
        for s, score in zip(ordered, scores)
    ]


def merge_adjacent(
    candidates: List[Highlight],
    config: HighlightConfig = DEFAULT_HIGHLIGHT_CONFIG,
) -> List[Highlight]:
    """
    Merge time-ordered candidates separated by less than ``merge_gap_sec``.

    Merged text is space-joined, the score is the max of the parts and the
    end extends to the later end.
    """
    merged: List[Highlight] = []
    for cand in candidates:
        last = merged[-1] if merged else None
        if last is not None and cand.start - last.end < config.merge_gap_sec:
            last.end = max(last.end, cand.end)
            last.text = f"{last.text} {cand.text}"
            last.score = max(last.score, cand.score)
        else:
            merged.append(Highlight(cand.start, cand.end, cand.text, cand.score))
    return merged


def normalize_duration(
    candidate: Highlight,
    config: HighlightConfig = DEFAULT_HIGHLIGHT_CONFIG,
) -> Highlight:
    """Extend short windows toward the target length and cap long ones."""
    duration = candidate.end - candidate.start
    if duration < config.target_min_seconds:
        candidate.end = candidate.start + min(
            config.target_min_seconds, duration + config.max_extension_seconds
        )
    elif duration > config.max_clip_seconds:
        candidate.end = candidate.start + config.max_clip_seconds
    return candidate


def rank_top(candidates: List[Highlight], count: int) -> List[Highlight]:
    """Best ``count`` candidates by score; ties keep their time order."""
    if count <= 0 or not candidates:
        return []
    scores = np.array([c.score for c in candidates], dtype=float)
    order = np.argsort(-scores, kind="stable")[:count]
    return [candidates[i] for i in order]


def resolve_overlaps(
    selected: List[Highlight],
    config: HighlightConfig = DEFAULT_HIGHLIGHT_CONFIG,
) -> List[Highlight]:
    """
    Re-sort by start and push each start past the previous end plus a buffer.

    Ends are left alone except for the final clamp that keeps every window
    at least ``min_render_seconds`` long.
    """
    ordered = sorted(selected, key=lambda h: h.start)
    for i, current in enumerate(ordered):
        if i > 0:
            earliest = ordered[i - 1].end + config.overlap_buffer_sec
            if current.start < earliest:
                current.start = earliest
        current.end = max(current.end, current.start + config.min_render_seconds)
    return ordered


def clamp_to_duration(
    highlights: List[Highlight],
    duration: float,
    config: HighlightConfig = DEFAULT_HIGHLIGHT_CONFIG,
) -> List[Highlight]:
    """
    Trim windows to end by ``duration`` and drop those left too short to render.

    A non-positive duration means unknown and leaves the windows as they are.
    """
    if not duration or duration <= 0:
        return list(highlights)

    kept = []
    for h in highlights:
        if h.start >= duration:
            continue
        end = min(h.end, duration)
        if end < h.end and end - h.start < config.min_render_seconds:
            continue
        kept.append(Highlight(h.start, end, h.text, h.score))
    return kept


def select_highlights(
    segments: List[Segment],
    count: int,
    config: HighlightConfig = DEFAULT_HIGHLIGHT_CONFIG,
    scorer: Scorer = polarity,
    duration: float = 0.0,
) -> List[Highlight]:
    """
    Pick up to ``count`` highlight windows from timed segments.

    Deterministic for identical inputs. The input segments are not modified.

    Args:
        segments: Transcript segments or fallback buckets
        count: Maximum number of highlights to return
        config: Selection tunables
        scorer: Text polarity function, roughly centered on zero
        duration: Source length; windows are trimmed to it when known (> 0)

    Returns:
        Highlights ordered by start time
    """
    if count <= 0 or not segments:
        return []

    scored = score_segments(segments, config, scorer)
    merged = merge_adjacent(scored, config)
    normalized = [normalize_duration(c, config) for c in merged]
    top = rank_top(normalized, count)
    chosen = clamp_to_duration(resolve_overlaps(top, config), duration, config)

    logger.debug(
        f"Selected {len(chosen)} highlights from {len(segments)} segments "
        f"({len(merged)} merged candidates)"
    )
    return chosen
