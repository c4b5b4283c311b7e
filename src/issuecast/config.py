"""
Configuration for the video generation pipeline.

Values come from environment variables (loaded from .env by the CLI) and can
be overridden by command-line flags.
"""

import os
from dataclasses import dataclass, field

from .models import YouTubeCredentials


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class VideoConfig:
    """Voice, model, and rendering settings."""

    resolution: str = "1920x1080"
    fps: int = 30
    bitrate: str = "5000k"

    # TTS
    voice: str = "alloy"
    tts_model: str = "tts-1-hd"
    speed: float = 1.0

    # Script
    script_model: str = "gpt-4o-mini"
    temperature: float = 0.7
    max_body_chars: int = 3000
    max_duration: int = 600  # seconds

    # Slides
    slide_renderer: str = "browser"  # browser | placeholder
    background_color: str = "#1a1a2e"
    text_color: str = "#ffffff"
    accent_color: str = "#00d4ff"

    @property
    def size(self) -> tuple[int, int]:
        return parse_resolution(self.resolution)


@dataclass
class GenerationConfig:
    """Everything one pipeline run needs."""

    github_token: str
    owner: str
    repo: str
    openai_api_key: str

    youtube_client_id: str | None = None
    youtube_client_secret: str | None = None
    youtube_refresh_token: str | None = None
    youtube_playlist_id: str | None = None
    youtube_category: str = "28"  # Science & Technology
    youtube_privacy: str = "unlisted"
    default_tags: list[str] = field(default_factory=lambda: ["AI", "Tutorial", "DevOps"])

    working_dir: str | None = None
    keep_intermediate_files: bool = False
    upload_to_youtube: bool = True
    post_to_github: bool = True
    include_diff: bool = False
    script_path: str | None = None
    resume_dir: str | None = None
    export_narration: bool = False

    video: VideoConfig = field(default_factory=VideoConfig)

    @property
    def youtube_credentials(self) -> YouTubeCredentials | None:
        """Credentials if all three parts are set, else None."""
        if self.youtube_client_id and self.youtube_client_secret and self.youtube_refresh_token:
            return YouTubeCredentials(
                client_id=self.youtube_client_id,
                client_secret=self.youtube_client_secret,
                refresh_token=self.youtube_refresh_token,
            )
        return None

    @classmethod
    def from_env(cls) -> "GenerationConfig":
        owner = os.getenv("GITHUB_REPO_OWNER", "")
        repo = os.getenv("GITHUB_REPO_NAME", "")
        if not (owner and repo) and "/" in os.getenv("GITHUB_REPOSITORY", ""):
            owner, repo = os.environ["GITHUB_REPOSITORY"].split("/", 1)

        video = VideoConfig(
            voice=os.getenv("OPENAI_TTS_VOICE", VideoConfig.voice),
            tts_model=os.getenv("OPENAI_TTS_MODEL", VideoConfig.tts_model),
            script_model=os.getenv("OPENAI_SCRIPT_MODEL", VideoConfig.script_model),
        )
        return cls(
            github_token=os.getenv("GITHUB_TOKEN", ""),
            owner=owner,
            repo=repo,
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            youtube_client_id=os.getenv("YOUTUBE_CLIENT_ID") or None,
            youtube_client_secret=os.getenv("YOUTUBE_CLIENT_SECRET") or None,
            youtube_refresh_token=os.getenv("YOUTUBE_REFRESH_TOKEN") or None,
            youtube_playlist_id=os.getenv("YOUTUBE_PLAYLIST_ID") or None,
            youtube_category=os.getenv("YOUTUBE_CATEGORY_ID", "28"),
            youtube_privacy=os.getenv("YOUTUBE_PRIVACY_STATUS", "unlisted"),
            upload_to_youtube=_env_flag("UPLOAD_TO_YOUTUBE", True),
            post_to_github=_env_flag("POST_TO_GITHUB", True),
            keep_intermediate_files=_env_flag("KEEP_INTERMEDIATE_FILES", False),
            video=video,
        )


def parse_resolution(resolution: str) -> tuple[int, int]:
    """Parse ``"1920x1080"`` into ``(1920, 1080)``."""
    try:
        width, height = (int(x) for x in resolution.lower().split("x", 1))
    except ValueError:
        msg = f"Invalid resolution {resolution!r}, expected WIDTHxHEIGHT"
        raise ValueError(msg) from None
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid resolution {resolution!r}")
    return width, height
