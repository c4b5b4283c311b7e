"""
YouTube metadata (description, chapters, tags) and upload via the Data API v3.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

import httpx

from .exceptions import AuthError, UploadError
from .models import (
    Chapter,
    UploadResult,
    VideoMetadata,
    VideoScript,
    YouTubeCredentials,
    kind_label,
    to_dict,
)

logger = logging.getLogger("issuecast")

TOKEN_URL = "https://oauth2.googleapis.com/token"
UPLOAD_URL = "https://www.googleapis.com/upload/youtube/v3/videos"
PLAYLIST_ITEMS_URL = "https://www.googleapis.com/youtube/v3/playlistItems"
WATCH_URL = "https://www.youtube.com/watch?v="

MAX_TITLE_CHARS = 100
MAX_DESCRIPTION_CHARS = 5000
MAX_TAGS = 500
MAX_CONTENT_TAGS = 30

API_TIMEOUT = 30.0
UPLOAD_TIMEOUT = 300.0

TAG_KEYWORDS = (
    "github", "vercel", "nextjs", "react", "typescript", "javascript",
    "ai", "openai", "gpt", "tts", "automation", "workflow",
    "deployment", "devops", "ci/cd", "docker", "kubernetes",
    "api", "rest", "graphql", "database", "supabase", "dify",
)  # fmt: skip


def format_timestamp(seconds: float) -> str:
    """Format seconds as a YouTube chapter timestamp (M:SS)."""
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins}:{secs:02d}"


def build_chapters(script: VideoScript) -> list[Chapter]:
    """One chapter per section, starting at the running sum of earlier durations."""
    chapters = []
    current = 0
    for section in script.sections:
        chapters.append(Chapter(start_time=format_timestamp(current), title=section.heading))
        current += section.duration
    return chapters


def _generated_date(iso: str) -> str:
    try:
        return datetime.fromisoformat(iso).date().isoformat()
    except ValueError:
        return iso


def generate_description(script: VideoScript) -> str:
    """Script description, chapter list, and attribution footer."""
    lines = [script.description, "", "📝 Content Overview:", ""]
    lines += [f"{c.start_time} - {c.title}" for c in build_chapters(script)]
    meta = script.metadata
    lines += [
        "",
        "---",
        "",
        f"🔗 Source: {kind_label(meta.source_type)} #{meta.source_number}",
        f"📅 Generated: {_generated_date(meta.generated_at)}",
        "🤖 Created with AI using OpenAI GPT and TTS",
        "",
        "#AI #DevOps #Automation #Tutorial",
    ]
    return "\n".join(lines)


def extract_tags(script: VideoScript) -> list[str]:
    """Keywords from the fixed vocabulary that appear anywhere in the script text."""
    content = " ".join(
        [script.title, script.description] + [s.narration for s in script.sections]
    ).lower()
    return [kw for kw in TAG_KEYWORDS if kw in content][:MAX_CONTENT_TAGS]


def generate_youtube_metadata(
    script: VideoScript,
    default_tags: list[str] | tuple[str, ...] = (),
    category: str = "28",
    privacy: str = "unlisted",
    playlist_id: str | None = None,
) -> VideoMetadata:
    """Derive upload metadata from a script, truncated to YouTube's limits."""
    tags = list(dict.fromkeys([*default_tags, *extract_tags(script)]))[:MAX_TAGS]
    return VideoMetadata(
        title=script.title[:MAX_TITLE_CHARS],
        description=generate_description(script)[:MAX_DESCRIPTION_CHARS],
        tags=tuple(tags),
        category=category,
        privacy=privacy,
        playlist_id=playlist_id,
    )


def write_metadata(outdir: str, metadata: VideoMetadata) -> str:
    """Write the metadata as youtube_metadata.json for inspection."""
    path = Path(outdir) / "youtube_metadata.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(to_dict(metadata), indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("YouTube metadata written to %s", path)
    return str(path)


def get_access_token(
    credentials: YouTubeCredentials, *, http: httpx.Client | None = None
) -> str:
    """Exchange the refresh token for a short-lived access token."""
    data = {
        "client_id": credentials.client_id,
        "client_secret": credentials.client_secret,
        "refresh_token": credentials.refresh_token,
        "grant_type": "refresh_token",
    }
    try:
        if http is not None:
            r = http.post(TOKEN_URL, data=data)
        else:
            r = httpx.post(TOKEN_URL, data=data, timeout=API_TIMEOUT)
    except httpx.HTTPError as e:
        raise AuthError(f"Failed to get access token: {e}") from e
    if r.status_code != 200:
        raise AuthError(f"Failed to get access token: {r.status_code} {r.text[:300]}")
    try:
        token = r.json().get("access_token")
    except (ValueError, AttributeError) as e:
        raise AuthError(f"Token response is not a JSON object: {e}") from e
    if not token:
        raise AuthError("Token response did not include an access_token")
    return token


def upload_video(
    video_path: str,
    metadata: VideoMetadata,
    access_token: str,
    *,
    http: httpx.Client | None = None,
) -> str:
    """Resumable upload: open a session, then PUT the whole file. Returns the video ID."""
    file_size = os.path.getsize(video_path)
    body = {
        "snippet": {
            "title": metadata.title,
            "description": metadata.description,
            "tags": list(metadata.tags),
            "categoryId": metadata.category,
        },
        "status": {"privacyStatus": metadata.privacy},
    }
    headers = {
        "Authorization": f"Bearer {access_token}",
        "X-Upload-Content-Length": str(file_size),
        "X-Upload-Content-Type": "video/*",
    }
    client = http or httpx.Client(timeout=API_TIMEOUT)
    try:
        try:
            init = client.post(
                UPLOAD_URL,
                params={"uploadType": "resumable", "part": "snippet,status"},
                headers=headers,
                json=body,
            )
        except httpx.HTTPError as e:
            raise UploadError(f"Failed to initialize upload: {e}") from e
        if init.status_code not in (200, 201):
            raise UploadError(f"Failed to initialize upload: {init.status_code} {init.text[:300]}")

        session_url = init.headers.get("Location")
        if not session_url:
            raise UploadError("No upload URL received from YouTube")

        logger.info("Uploading %s (%.1f MB)", video_path, file_size / 1_000_000)
        try:
            with open(video_path, "rb") as f:
                r = client.put(
                    session_url,
                    content=f.read(),
                    headers={"Content-Type": "video/*"},
                    timeout=UPLOAD_TIMEOUT,
                )
        except httpx.HTTPError as e:
            raise UploadError(f"Failed to upload video: {e}") from e
        if r.status_code not in (200, 201):
            raise UploadError(f"Failed to upload video: {r.status_code} {r.text[:300]}")
    finally:
        if http is None:
            client.close()

    try:
        video_id = r.json().get("id")
    except (ValueError, AttributeError) as e:
        raise UploadError(f"Upload response is not a JSON object: {e}") from e
    if not video_id:
        raise UploadError("Upload response did not include a video id")
    return video_id


def add_to_playlist(
    video_id: str, playlist_id: str, access_token: str, *, http: httpx.Client | None = None
) -> bool:
    """Add the video to a playlist. Failure is logged, never raised."""
    body = {
        "snippet": {
            "playlistId": playlist_id,
            "resourceId": {"kind": "youtube#video", "videoId": video_id},
        }
    }
    headers = {"Authorization": f"Bearer {access_token}"}
    try:
        if http is not None:
            r = http.post(PLAYLIST_ITEMS_URL, params={"part": "snippet"}, headers=headers, json=body)
        else:
            r = httpx.post(
                PLAYLIST_ITEMS_URL,
                params={"part": "snippet"},
                headers=headers,
                json=body,
                timeout=API_TIMEOUT,
            )
    except httpx.HTTPError as e:
        logger.warning("Failed to add video to playlist %s: %s", playlist_id, e)
        return False
    if r.status_code not in (200, 201):
        logger.warning("Failed to add video to playlist %s: %s", playlist_id, r.text[:300])
        return False
    return True


def upload_to_youtube(
    video_path: str,
    metadata: VideoMetadata,
    credentials: YouTubeCredentials,
    *,
    http: httpx.Client | None = None,
) -> UploadResult:
    """Authenticate, upload, and optionally add to a playlist."""
    logger.info("Starting YouTube upload...")
    token = get_access_token(credentials, http=http)
    video_id = upload_video(video_path, metadata, token, http=http)
    if metadata.playlist_id:
        add_to_playlist(video_id, metadata.playlist_id, token, http=http)

    url = f"{WATCH_URL}{video_id}"
    logger.info("Video uploaded successfully: %s", url)
    return UploadResult(
        video_id=video_id,
        url=url,
        title=metadata.title,
        uploaded_at=datetime.now(timezone.utc).isoformat(),
    )
