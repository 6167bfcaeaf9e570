"""yt-dlp utilities for remote video and transcript acquisition."""
import asyncio
import json
import logging
import re
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

from app.config import settings
from app.pipeline.segments import Segment

logger = logging.getLogger(__name__)


class AcquisitionError(Exception):
    """Remote source unreachable or invalid."""
    pass


def check_ytdlp_available() -> bool:
    """Check if yt-dlp is available."""
    return shutil.which(settings.ytdlp_path) is not None


def is_remote_url(url: str) -> bool:
    """Check if a string looks like an http(s) URL yt-dlp can be pointed at."""
    return bool(re.match(r"^https?://[^\s/$.?#][^\s]*$", url or "", re.IGNORECASE))


async def download_video(
    url: str,
    output_dir: Path,
    filename: str = "source",
    timeout: Optional[float] = None,
) -> Path:
    """
    Download a remote video as a single mp4 file.

    Args:
        url: Remote video URL
        output_dir: Directory to save the video
        filename: Base filename without extension
        timeout: Seconds to wait before giving up (defaults to settings)

    Returns:
        Path to downloaded video file

    Raises:
        AcquisitionError: If the download fails, times out or yields no file
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    timeout = timeout or settings.acquisition_timeout_seconds

    # Clean up any partial downloads first
    for partial in list(output_dir.glob("*.part")) + list(output_dir.glob("*.ytdl")):
        partial.unlink(missing_ok=True)

    output_template = str(output_dir / f"{filename}.%(ext)s")

    # bv* requires a video stream so audio-only formats are never picked
    cmd = [
        settings.ytdlp_path,
        "-f", "bv*[ext=mp4]+ba[ext=m4a]/bv*[ext=mp4]+ba/bv*+ba/b",
        "--merge-output-format", "mp4",
        "-o", output_template,
        "--no-playlist",
        "--newline",
        "--force-overwrites",
        url
    ]

    logger.info(f"Running yt-dlp command: {' '.join(cmd)}")

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT
        )
    except FileNotFoundError as e:
        raise AcquisitionError(f"{settings.ytdlp_path} not found") from e

    output_lines: List[str] = []
    merged_path: Optional[Path] = None

    async def _consume():
        nonlocal merged_path
        while True:
            line = await proc.stdout.readline()
            if not line:
                break
            line_str = line.decode("utf-8", errors="ignore").strip()
            output_lines.append(line_str)

            merge_match = re.search(r'Merging formats into "(.+)"', line_str)
            if merge_match:
                merged_path = Path(merge_match.group(1))
        await proc.wait()

    try:
        await asyncio.wait_for(_consume(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise AcquisitionError(f"Download timed out after {timeout:.0f}s")

    if proc.returncode != 0:
        logger.error("yt-dlp failed with output:\n" + "\n".join(output_lines[-20:]))
        raise AcquisitionError("Download failed - check URL and try again")

    if merged_path and merged_path.exists():
        return merged_path

    for ext in ["mp4", "mkv", "webm", "mov"]:
        candidate = output_dir / f"{filename}.{ext}"
        if candidate.exists() and candidate.stat().st_size > 1000:
            return candidate

    logger.error("Last yt-dlp output:\n" + "\n".join(output_lines[-20:]))
    raise AcquisitionError("Download completed but video file not found")


def parse_json3_transcript(data: dict) -> List[Segment]:
    """
    Convert a YouTube json3 caption document into timed segments.

    Events without text (window and style events) are skipped.
    """
    segments = []
    for event in data.get("events", []):
        segs = event.get("segs")
        if not segs:
            continue
        text = "".join(s.get("utf8", "") for s in segs).replace("\n", " ").strip()
        if not text:
            continue
        start = event.get("tStartMs", 0) / 1000
        duration = event.get("dDurationMs", 0) / 1000
        if duration <= 0:
            continue
        segments.append(Segment(start=start, end=start + duration, text=text))
    return segments


def _pick_subtitle_file(files: Sequence[Path], languages: Sequence[str]) -> Optional[Path]:
    """Prefer files whose language tag matches the configured order."""
    for lang in languages:
        for f in files:
            # subs.<lang>.json3 or subs.<lang>-<variant>.json3
            tag = f.suffixes[-2].lstrip(".") if len(f.suffixes) >= 2 else ""
            if tag == lang or tag.startswith(f"{lang}-"):
                return f
    return files[0] if files else None


async def fetch_transcript(
    url: str,
    languages: Optional[Sequence[str]] = None,
    timeout: float = 120.0,
) -> List[Segment]:
    """
    Fetch the captions of a remote video as timed segments.

    Manual subtitles are preferred over automatic ones by yt-dlp itself;
    among languages, the configured order wins. Never raises: any failure
    is logged and yields an empty list.
    """
    languages = list(languages or settings.transcript_languages)

    try:
        with tempfile.TemporaryDirectory(prefix="reelcut_subs_") as tmp:
            cmd = [
                settings.ytdlp_path,
                "--skip-download",
                "--write-subs",
                "--write-auto-subs",
                "--sub-langs", ",".join(f"{lang}.*" for lang in languages),
                "--sub-format", "json3",
                "--no-playlist",
                "-o", str(Path(tmp) / "subs.%(ext)s"),
                url
            ]
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
            try:
                _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
            except asyncio.TimeoutError:
                proc.kill()
                await proc.wait()
                logger.warning(f"Transcript fetch timed out for {url}")
                return []

            if proc.returncode != 0:
                logger.warning(f"Transcript fetch failed for {url}: {stderr.decode(errors='ignore')[-500:]}")
                return []

            chosen = _pick_subtitle_file(sorted(Path(tmp).glob("*.json3")), languages)
            if not chosen:
                logger.info(f"No captions available for {url}")
                return []

            data = json.loads(chosen.read_text(encoding="utf-8"))
            segments = parse_json3_transcript(data)
            logger.info(f"Fetched {len(segments)} transcript segments from {chosen.name}")
            return segments

    except Exception as e:
        logger.warning(f"Transcript fetch failed for {url}: {e}")
        return []
