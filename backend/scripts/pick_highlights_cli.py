#!/usr/bin/env python3
"""
CLI tool to run highlight selection offline and emit the chosen windows as JSON.

Usage:
    python scripts/pick_highlights_cli.py [--transcript <file>] [--video <file> | --duration <sec>]
                                          [--count N] [--output <file>]

Example:
    python scripts/pick_highlights_cli.py --transcript talk.json3 --video talk.mp4 --count 5
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config import settings
from app.pipeline.highlights import select_highlights
from app.pipeline.segments import derive_segments, segments_from_dicts
from app.utils.ffmpeg import get_duration
from app.utils.ytdlp import parse_json3_transcript


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger(__name__)


def load_transcript(path: Path):
    """Read a transcript as a json3 caption file or a [{start, end, text}] list."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict) and "events" in data:
        return parse_json3_transcript(data)
    return segments_from_dicts(data)


async def pick(
    transcript_path: Path = None,
    video_path: Path = None,
    duration: float = 0.0,
    count: int = 3,
) -> dict:
    """
    Select highlights from a transcript and/or a video's duration.

    Args:
        transcript_path: Optional transcript file
        video_path: Optional video whose duration is read with ffprobe
        duration: Duration to assume when no video is given
        count: Number of highlights

    Returns:
        Summary dictionary with the chosen highlights
    """
    transcript = []
    if transcript_path:
        if not transcript_path.exists():
            raise FileNotFoundError(f"Transcript not found: {transcript_path}")
        transcript = load_transcript(transcript_path)
        logger.info(f"Loaded {len(transcript)} transcript segments")

    if video_path:
        if not video_path.exists():
            raise FileNotFoundError(f"Video not found: {video_path}")
        duration = await get_duration(video_path)
        logger.info(f"Duration: {duration:.1f}s")

    segments = derive_segments(transcript, duration)
    highlights = select_highlights(segments, count, duration=duration)

    for i, h in enumerate(highlights):
        logger.info(f"  {i+1}. {h.start:.1f}s - {h.end:.1f}s (score: {h.score:.3f})")

    return {
        "duration": duration,
        "segment_count": len(segments),
        "transcript_source": "transcript" if transcript else "fallback",
        "highlights": [h.to_dict() for h in highlights],
    }


def main():
    parser = argparse.ArgumentParser(
        description="Pick highlight windows from a transcript",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--transcript", "-t",
        type=Path,
        default=None,
        help="Transcript file (YouTube json3 or [{start, end, text}] JSON)"
    )

    parser.add_argument(
        "--video", "-v",
        type=Path,
        default=None,
        help="Video file whose duration is read with ffprobe"
    )

    parser.add_argument(
        "--duration", "-d",
        type=float,
        default=0.0,
        help="Duration in seconds when no video is given"
    )

    parser.add_argument(
        "--count", "-n",
        type=int,
        default=settings.highlight_count,
        help="Number of highlights to pick"
    )

    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=None,
        help="Write the result to this JSON file instead of stdout"
    )

    args = parser.parse_args()

    if not args.transcript and not args.video and args.duration <= 0:
        parser.error("give a transcript, a video or a positive duration")

    try:
        result = asyncio.run(pick(
            transcript_path=args.transcript,
            video_path=args.video,
            duration=args.duration,
            count=args.count,
        ))
    except FileNotFoundError as e:
        logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)

    text = json.dumps(result, indent=2, ensure_ascii=False)
    if args.output:
        args.output.write_text(text, encoding="utf-8")
        logger.info(f"Highlights written to: {args.output}")
    else:
        print(text)


if __name__ == "__main__":
    main()
