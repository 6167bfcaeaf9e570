"""FFmpeg and ffprobe utilities."""
import asyncio
import json
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Tuple

from app.config import settings

logger = logging.getLogger(__name__)


class RenderError(Exception):
    """FFmpeg related error."""
    pass


@dataclass
class ScriptStyle:
    """Look of a script video."""
    bg_color: str = "0x111827"
    text_color: str = "white"
    font_size: int = 60

    def to_dict(self) -> dict:
        return {
            "bg_color": self.bg_color,
            "text_color": self.text_color,
            "font_size": self.font_size,
        }


def check_ffmpeg_available() -> bool:
    """Check if ffmpeg is available."""
    return shutil.which(settings.ffmpeg_path) is not None


def check_ffprobe_available() -> bool:
    """Check if ffprobe is available."""
    return shutil.which(settings.ffprobe_path) is not None


async def _run(cmd: List[str], description: str) -> None:
    """Run an ffmpeg command to completion, raising RenderError on failure."""
    logger.debug(f"Running {description}: {' '.join(cmd)}")
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
    except FileNotFoundError as e:
        raise RenderError(f"{description} failed: {cmd[0]} not found") from e

    _, stderr = await proc.communicate()

    if proc.returncode != 0:
        tail = "\n".join(stderr.decode("utf-8", errors="ignore").strip().splitlines()[-5:])
        raise RenderError(f"{description} failed: {tail}")


async def _ffprobe_json(path: Path, *args: str) -> dict:
    cmd = [
        settings.ffprobe_path,
        "-v", "quiet",
        "-print_format", "json",
        *args,
        str(path)
    ]
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE
    )
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        raise RenderError(f"ffprobe failed: {stderr.decode(errors='ignore')}")
    return json.loads(stdout.decode() or "{}")


async def get_duration(video_path: str | Path) -> float:
    """
    Get media duration in seconds using ffprobe.

    Returns:
        Duration in seconds, or 0.0 if it cannot be determined
    """
    video_path = Path(video_path)
    try:
        data = await _ffprobe_json(video_path, "-show_format")
        return float(data.get("format", {}).get("duration") or 0)
    except (RenderError, OSError, ValueError) as e:
        logger.warning(f"Could not read duration of {video_path}: {e}")
        return 0.0


async def has_audio_stream(video_path: str | Path) -> bool:
    """Check whether a media file carries at least one audio stream."""
    try:
        data = await _ffprobe_json(Path(video_path), "-show_streams", "-select_streams", "a")
    except (RenderError, OSError, ValueError):
        return False
    return bool(data.get("streams"))


def build_vertical_filter(width: int, height: int, fps: int) -> str:
    """
    Filtergraph compositing the source centered over a blurred, cropped copy of itself.

    Output label is ``[v]``.
    """
    return (
        f"[0:v]split=2[bgsrc][fgsrc];"
        f"[bgsrc]scale={width}:{height}:force_original_aspect_ratio=increase,"
        f"crop={width}:{height},boxblur=40:8[bg];"
        f"[fgsrc]scale={width}:{height}:force_original_aspect_ratio=decrease,setsar=1[fg];"
        f"[bg][fg]overlay=(W-w)/2:(H-h)/2:shortest=1,fps={fps},format=yuv420p[v]"
    )


async def make_vertical_clip(
    source_path: str | Path,
    output_path: str | Path,
    start_time: float,
    end_time: float,
) -> Path:
    """
    Render one highlight window as a vertical clip.

    Sources without audio get a silent track so every clip can be concatenated.

    Args:
        source_path: Path to source video
        output_path: Path for output file
        start_time: Start time in seconds
        end_time: End time in seconds

    Returns:
        Path to rendered clip
    """
    source_path = Path(source_path)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    duration = max(0.2, end_time - start_time)
    filter_complex = build_vertical_filter(
        settings.vertical_width, settings.vertical_height, settings.output_fps
    )

    cmd = [
        settings.ffmpeg_path,
        "-y",
        "-ss", str(start_time),
        "-i", str(source_path),
    ]
    if await has_audio_stream(source_path):
        audio_map = "0:a:0"
    else:
        cmd += ["-f", "lavfi", "-t", str(duration), "-i", "anullsrc=r=48000:cl=stereo"]
        audio_map = "1:a:0"

    cmd += [
        "-t", str(duration),
        "-filter_complex", filter_complex,
        "-map", "[v]",
        "-map", audio_map,
        "-af", settings.loudnorm_filter,
        "-c:v", settings.export_video_codec,
        "-preset", settings.export_video_preset,
        "-crf", str(settings.export_video_crf),
        "-r", str(settings.output_fps),
        "-c:a", settings.export_audio_codec,
        "-b:a", settings.export_audio_bitrate,
        "-ar", "48000",
        "-movflags", "+faststart",
        str(output_path)
    ]

    await _run(cmd, "Clip render")
    return output_path


def build_concat_filter(count: int) -> str:
    """Concat filter over ``count`` inputs with one video and one audio stream each."""
    inputs = "".join(f"[{i}:v:0][{i}:a:0]" for i in range(count))
    return f"{inputs}concat=n={count}:v=1:a=1[v][a]"


async def concat_clips(
    clip_paths: Sequence[str | Path],
    output_path: str | Path,
) -> Path:
    """
    Concatenate rendered clips in the given order.

    Returns:
        Path to the concatenated video
    """
    if not clip_paths:
        raise RenderError("Nothing to concatenate")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    cmd = [settings.ffmpeg_path, "-y"]
    for clip in clip_paths:
        cmd += ["-i", str(clip)]
    cmd += [
        "-filter_complex", build_concat_filter(len(clip_paths)),
        "-map", "[v]",
        "-map", "[a]",
        "-c:v", settings.export_video_codec,
        "-preset", settings.export_video_preset,
        "-crf", str(settings.export_video_crf),
        "-c:a", settings.export_audio_codec,
        "-b:a", settings.export_audio_bitrate,
        "-movflags", "+faststart",
        str(output_path)
    ]

    await _run(cmd, "Concatenation")
    return output_path


def _escape_filter_path(path: Path) -> str:
    return str(path).replace("\\", "/").replace(":", "\\:").replace("'", "\\'")


def build_script_filter(
    text_files: Sequence[Path],
    windows: Sequence[Tuple[float, float]],
    style: ScriptStyle,
    width: int,
    height: int,
    fps: int,
    font_path: str,
) -> Tuple[str, str]:
    """
    Filtergraph drawing one line of text per time window over a slow zoom.

    Line text is read from files so it needs no filtergraph escaping.

    Returns:
        (filtergraph, output label)
    """
    parts = [
        f"[0:v]zoompan=z='min(zoom+0.0015,1.15)':x='iw/2-(iw/zoom/2)':y='ih/2-(ih/zoom/2)'"
        f":d=1:s={width}x{height}:fps={fps}[v0]"
    ]
    last = "v0"
    for i, (text_file, (t0, t1)) in enumerate(zip(text_files, windows)):
        label = f"v{i + 1}"
        parts.append(
            f"[{last}]drawtext=fontfile='{_escape_filter_path(Path(font_path))}'"
            f":textfile='{_escape_filter_path(text_file)}':expansion=none"
            f":fontcolor={style.text_color}:fontsize={style.font_size}"
            f":x=(w-text_w)/2:y=(h/2-text_h/2)"
            f":box=1:boxcolor=black@0.35:boxborderw=30"
            f":shadowcolor=black:shadowx=2:shadowy=2"
            f":enable='gte(t,{t0:.2f})*lt(t,{t1:.2f})'[{label}]"
        )
        last = label
    return ";".join(parts), last


async def render_script_video(
    lines: Sequence[str],
    windows: Sequence[Tuple[float, float]],
    total_duration: float,
    style: ScriptStyle,
    output_path: str | Path,
) -> Path:
    """
    Render a vertical text-slide video.

    Args:
        lines: One on-screen text per slide
        windows: (start, end) display window for each line
        total_duration: Length of the video in seconds
        style: Colours and font size
        output_path: Path for output file

    Returns:
        Path to rendered video
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    text_dir = output_path.parent / f"{output_path.stem}_lines"
    text_dir.mkdir(parents=True, exist_ok=True)
    text_files = []
    for i, line in enumerate(lines):
        text_file = text_dir / f"line_{i:02d}.txt"
        text_file.write_text(line, encoding="utf-8")
        text_files.append(text_file)

    filter_complex, out_label = build_script_filter(
        text_files,
        windows,
        style,
        settings.vertical_width,
        settings.vertical_height,
        settings.output_fps,
        settings.font_path,
    )
    source = (
        f"color=c={style.bg_color}:s={settings.vertical_width}x{settings.vertical_height}"
        f":r={settings.output_fps}:d={total_duration}"
    )

    cmd = [
        settings.ffmpeg_path,
        "-y",
        "-f", "lavfi",
        "-i", source,
        "-filter_complex", filter_complex,
        "-map", f"[{out_label}]",
        "-t", str(total_duration),
        "-r", str(settings.output_fps),
        "-c:v", settings.export_video_codec,
        "-preset", settings.export_video_preset,
        "-crf", str(settings.export_video_crf),
        "-pix_fmt", "yuv420p",
        "-movflags", "+faststart",
        str(output_path)
    ]

    try:
        await _run(cmd, "Script render")
    finally:
        shutil.rmtree(text_dir, ignore_errors=True)
    return output_path


async def mix_background_audio(
    video_path: str | Path,
    audio_path: str | Path,
    output_path: str | Path,
) -> Path:
    """
    Lay a normalized background track under a silent video.

    The video stream is copied; the output ends with the shorter input.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    cmd = [
        settings.ffmpeg_path,
        "-y",
        "-i", str(video_path),
        "-i", str(audio_path),
        "-map", "0:v:0",
        "-map", "1:a:0",
        "-af", "dynaudnorm=f=150:g=31,volume=0.6",
        "-c:v", "copy",
        "-c:a", settings.export_audio_codec,
        "-b:a", settings.export_audio_bitrate,
        "-shortest",
        "-movflags", "+faststart",
        str(output_path)
    ]

    await _run(cmd, "Audio mix")
    return output_path
