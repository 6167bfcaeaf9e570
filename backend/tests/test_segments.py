"""Tests for transcript segments and the no-transcript fallback."""
import pytest

from app.pipeline.config import HighlightConfig
from app.pipeline.segments import (
    Segment,
    derive_segments,
    fallback_segments,
    segments_from_dicts,
)


class TestSegment:

    def test_duration(self):
        seg = Segment(start=2.0, end=5.5, text="hello")
        assert seg.duration == 3.5

    def test_repr(self):
        assert repr(Segment(0.0, 10.0)) == "Segment(0.00-10.00, dur=10.00s)"


class TestSegmentsFromDicts:

    def test_valid_entries(self):
        segments = segments_from_dicts([
            {"start": 0, "end": 2.5, "text": "bonjour"},
            {"start": "3", "end": "4", "text": None},
        ])
        assert [(s.start, s.end, s.text) for s in segments] == [
            (0.0, 2.5, "bonjour"),
            (3.0, 4.0, ""),
        ]

    def test_drops_invalid(self):
        segments = segments_from_dicts([
            {"start": 5, "end": 5, "text": "zero length"},
            {"start": 6, "end": 4, "text": "reversed"},
            {"end": 3, "text": "no start"},
            {"start": "x", "end": 3},
        ])
        assert segments == []

    def test_none(self):
        assert segments_from_dicts(None) == []


class TestFallbackSegments:

    def test_exact_multiple(self):
        segments = fallback_segments(30.0)
        assert [(s.start, s.end) for s in segments] == [(0, 10), (10, 20), (20, 30)]

    def test_partial_last_bucket(self):
        segments = fallback_segments(25.0)
        assert len(segments) == 3
        assert segments[-1].start == 20
        assert segments[-1].end == 25.0

    def test_placeholder_text(self):
        for seg in fallback_segments(15.0):
            assert seg.text == " "

    def test_contiguous_cover(self):
        segments = fallback_segments(47.3)
        assert segments[0].start == 0
        assert segments[-1].end == pytest.approx(47.3)
        for prev, cur in zip(segments, segments[1:]):
            assert cur.start == prev.end

    @pytest.mark.parametrize("duration", [0, -5, None])
    def test_unknown_duration(self, duration):
        assert fallback_segments(duration) == []

    def test_custom_bucket(self):
        segments = fallback_segments(12.0, HighlightConfig(fallback_bucket_seconds=5.0))
        assert [(s.start, s.end) for s in segments] == [(0, 5), (5, 10), (10, 12.0)]


class TestDeriveSegments:

    def test_transcript_wins(self):
        transcript = [Segment(1.0, 3.0, "hi")]
        assert derive_segments(transcript, 100.0) == transcript

    def test_fallback_when_empty(self):
        assert len(derive_segments([], 20.0)) == 2
