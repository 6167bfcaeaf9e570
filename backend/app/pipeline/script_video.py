"""Script-to-video synthesis: one slide of on-screen text per script line."""
import logging
import math
import re
import uuid
from pathlib import Path
from typing import List, Optional, Tuple

from app.config import settings
from app.services.errors import InputError
from app.utils import ffmpeg
from app.utils.ffmpeg import ScriptStyle

logger = logging.getLogger(__name__)

LINE_GAP_SEC = 0.2  # Blank time between consecutive slides
MAX_PER_LINE_SEC = 60.0
MIN_TOTAL_SEC = 3

MIN_FONT_SIZE = 8
MAX_FONT_SIZE = 300

# Named colour, 0xRRGGBB or #RRGGBB
_COLOR_RE = re.compile(r"[A-Za-z]+|0x[0-9A-Fa-f]{6}|#[0-9A-Fa-f]{6}")


def split_script_lines(script: str, max_lines: Optional[int] = None) -> List[str]:
    """Trimmed, non-blank lines of ``script``; anything past ``max_lines`` is dropped."""
    max_lines = settings.script_max_lines if max_lines is None else max_lines
    lines = [line.strip() for line in re.split(r"\r?\n", script or "")]
    return [line for line in lines if line][:max_lines]


def script_duration(per_line_sec: float, line_count: int) -> int:
    """Total length in whole seconds, rounding halves up, never under three seconds."""
    return max(MIN_TOTAL_SEC, int(math.floor(per_line_sec * line_count + 0.5)))


def line_windows(line_count: int, per_line_sec: float) -> List[Tuple[float, float]]:
    """Half-open display window [start, end) for each line."""
    return [
        (i * per_line_sec, (i + 1) * per_line_sec - LINE_GAP_SEC)
        for i in range(line_count)
    ]


def validate_script(script: str, per_line_sec: float) -> List[str]:
    """
    Check script input before any rendering.

    Raises:
        InputError: If there are no usable lines or the timing is invalid
    """
    if (
        per_line_sec is None
        or not math.isfinite(per_line_sec)
        or not LINE_GAP_SEC < per_line_sec <= MAX_PER_LINE_SEC
    ):
        raise InputError(
            f"per_line_sec must be greater than {LINE_GAP_SEC} and at most {MAX_PER_LINE_SEC:g}"
        )
    lines = split_script_lines(script)
    if not lines:
        raise InputError("Script is empty")
    return lines


def validate_style(style: ScriptStyle) -> ScriptStyle:
    """
    Check that a style is safe to place in a filtergraph.

    Raises:
        InputError: On an unknown colour format or an out-of-range font size
    """
    for name in ("bg_color", "text_color"):
        value = getattr(style, name)
        if not isinstance(value, str) or not _COLOR_RE.fullmatch(value):
            raise InputError(f"{name} must be a colour name, 0xRRGGBB or #RRGGBB")
    if (
        isinstance(style.font_size, bool)
        or not isinstance(style.font_size, int)
        or not MIN_FONT_SIZE <= style.font_size <= MAX_FONT_SIZE
    ):
        raise InputError(f"font_size must be between {MIN_FONT_SIZE} and {MAX_FONT_SIZE}")
    return style


async def synthesize(
    script: str,
    per_line_sec: float,
    style: Optional[ScriptStyle] = None,
    background_audio: Optional[str | Path] = None,
    output_dir: Optional[Path] = None,
) -> Path:
    """
    Render a vertical video from a text script.

    Args:
        script: Text with one slide per line
        per_line_sec: Seconds each line stays on screen (gap included)
        style: Colours and font size
        background_audio: Optional audio file mixed under the video
        output_dir: Destination directory (defaults to settings.outputs_dir)

    Returns:
        Path to the finished video

    Raises:
        InputError: If the script has no usable lines, or the timing or style is invalid
        RenderError: If rendering or mixing fails
    """
    lines = validate_script(script, per_line_sec)
    style = validate_style(style or ScriptStyle())
    output_dir = Path(output_dir or settings.outputs_dir)

    total = script_duration(per_line_sec, len(lines))
    windows = line_windows(len(lines), per_line_sec)
    output_path = output_dir / f"{uuid.uuid4().hex}.mp4"

    logger.info(f"Rendering script video: {len(lines)} lines, {total}s -> {output_path.name}")
    await ffmpeg.render_script_video(lines, windows, total, style, output_path)

    if background_audio:
        mixed_path = output_dir / f"{output_path.stem}_mixed.mp4"
        await ffmpeg.mix_background_audio(output_path, background_audio, mixed_path)
        mixed_path.replace(output_path)

    return output_path
