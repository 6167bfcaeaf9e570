"""Application configuration."""
from pathlib import Path
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )

    # App settings
    app_name: str = "ReelCut"
    debug: bool = False

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/reelcut.db"

    # Data directories
    data_dir: Path = Path("./data")
    uploads_dir: Path = Path("./data/uploads")
    outputs_dir: Path = Path("./data/outputs")
    work_dir: Path = Path("./data/work")

    # External tools
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    ytdlp_path: str = "yt-dlp"
    acquisition_timeout_seconds: float = 900.0

    # Export settings
    export_video_codec: str = "libx264"
    export_video_preset: str = "veryfast"
    export_video_crf: int = 22
    export_audio_codec: str = "aac"
    export_audio_bitrate: str = "192k"

    # Vertical output
    vertical_width: int = 1080
    vertical_height: int = 1920
    output_fps: int = 30
    loudnorm_filter: str = "loudnorm=I=-16:LRA=11:TP=-1.5"
    font_path: str = "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"

    # Highlight selection
    highlight_count: int = 3
    highlight_keywords: List[str] = [
        "incroyable", "astuce", "secret", "erreur", "gagne", "viral",
        "tendance", "conseil", "méthode", "stratégie", "top",
        "amazing", "hack", "mistake", "trick", "tip", "strategy",
    ]
    transcript_languages: List[str] = ["fr", "en"]

    # Script videos
    script_max_lines: int = 40
    script_per_line_sec: float = 2.5
    script_bg_color: str = "0x111827"
    script_text_color: str = "white"
    script_font_size: int = 60

    # Frontend
    frontend_url: str = "http://localhost:5173"


settings = Settings()

# Ensure directories exist
settings.data_dir.mkdir(parents=True, exist_ok=True)
settings.uploads_dir.mkdir(parents=True, exist_ok=True)
settings.outputs_dir.mkdir(parents=True, exist_ok=True)
settings.work_dir.mkdir(parents=True, exist_ok=True)
