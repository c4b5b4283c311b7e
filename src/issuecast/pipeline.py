"""
Pipeline orchestration: record -> script -> audio -> slides -> video -> YouTube.

Stages run strictly in order. Any fatal error stops the run in the FAILED
stage and leaves the working directory untouched for inspection.
"""

import contextlib
import enum
import json
import logging
import os
import shutil
import tempfile
import traceback
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import httpx
from openai import OpenAI
from pydub.exceptions import CouldntDecodeError

from .compose import compose_video
from .config import GenerationConfig
from .cost import estimate_costs
from .exceptions import CommandError, LinkPostError
from .github import extract_content, post_video_link
from .io_ffmpeg import ensure_dir, probe_video
from .models import (
    AudioResult,
    SlideResult,
    SourceRecord,
    UploadResult,
    VideoArtifact,
    VideoScript,
    record_from_dict,
    to_dict,
)
from .script import generate_script, load_script, validate_and_adjust_script
from .slides import BrowserSlideRenderer, RenderFunc, render_slides
from .tts import combine_audio_files, make_synth_openai, synthesize_audio
from .youtube import generate_youtube_metadata, upload_to_youtube, write_metadata

logger = logging.getLogger("issuecast")

TOTAL_STEPS = 6
OPENAI_TIMEOUT = 60.0


class Stage(str, enum.Enum):
    CREATED = "created"
    EXTRACTING = "extracting"
    SCRIPT_GENERATING = "script_generating"
    AUDIO_SYNTHESIZING = "audio_synthesizing"
    SLIDE_RENDERING = "slide_rendering"
    COMPOSING = "composing"
    PUBLISHING = "publishing"
    DONE = "done"
    FAILED = "failed"


STEP_INDEX = {
    Stage.EXTRACTING: 1,
    Stage.SCRIPT_GENERATING: 2,
    Stage.AUDIO_SYNTHESIZING: 3,
    Stage.SLIDE_RENDERING: 4,
    Stage.COMPOSING: 5,
    Stage.PUBLISHING: 6,
}


@dataclass
class PipelineServices:
    """External collaborators. Anything left as None is built from the config."""

    http: httpx.Client | None = None
    openai_client: OpenAI | None = None
    synth_func: Callable[[str, str], None] | None = None
    render_func: RenderFunc | None = None


@dataclass
class GenerationResult:
    """Outcome of one run, filled in stage by stage."""

    success: bool = False
    stage: Stage = Stage.CREATED
    failed_stage: Stage | None = None
    error: str | None = None
    traceback: str | None = None
    working_dir: str | None = None
    record: SourceRecord | None = None
    script: VideoScript | None = None
    audio: AudioResult | None = None
    slides: SlideResult | None = None
    video: VideoArtifact | None = None
    upload: UploadResult | None = None
    link_posted: bool = False
    warnings: list[str] = field(default_factory=list)


def _enter(result: GenerationResult, stage: Stage, status: str) -> None:
    result.stage = stage
    logger.info("[%d/%d] %s: %s", STEP_INDEX[stage], TOTAL_STEPS, stage.value, status)


def _write_json(path: str, data: Any) -> None:
    Path(path).write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def create_working_dir(base: str | None = None) -> str:
    """Create (or reuse) the run's working directory with its subdirectories."""
    if base:
        workdir = base
        ensure_dir(workdir)
    else:
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        workdir = tempfile.mkdtemp(prefix=f"video-gen-{stamp}-")
    for sub in ("audio", "slides", "output"):
        ensure_dir(os.path.join(workdir, sub))
    return workdir


def cleanup_intermediate(workdir: str) -> None:
    """Remove audio/ and slides/; the output and JSON snapshots stay."""
    for sub in ("audio", "slides"):
        path = os.path.join(workdir, sub)
        if os.path.isdir(path):
            shutil.rmtree(path)
    logger.info("Cleaned up intermediate files in %s", workdir)


def _log_costs(script: VideoScript, tts_model: str) -> None:
    est = estimate_costs(script, tts_model=tts_model)
    tts_str = "n/a" if est["tts_cost"] is None else f"${est['tts_cost']:.4f}"
    logger.info(
        "Estimated cost: script $%.4f, TTS (%d chars) %s, total $%.4f",
        est["script_cost"],
        est["tts_chars"],
        tts_str,
        est["total"],
    )


def _log_media_info(video: VideoArtifact) -> None:
    try:
        info = probe_video(video.path)
    except (CommandError, ValueError) as e:
        logger.warning("Could not probe %s: %s", video.path, e)
        return
    logger.info(
        "Encoded: %.1fs %s @ %.2ffps, %d kb/s (estimated %ds)",
        info.duration,
        info.resolution,
        info.fps,
        info.bitrate // 1000,
        video.duration,
    )


def _existing(workdir: str, name: str) -> str | None:
    path = os.path.join(workdir, name)
    return path if os.path.exists(path) else None


def generate_video(
    kind: str | None,
    number: int,
    config: GenerationConfig,
    services: PipelineServices | None = None,
) -> GenerationResult:
    """Run the whole pipeline for one issue or pull request.

    Never raises: failures are reported through the returned result, with the
    stage they happened in and the captured traceback.
    """
    services = services or PipelineServices()
    video_cfg = config.video
    result = GenerationResult()

    openai_client = services.openai_client

    def _openai() -> OpenAI:
        nonlocal openai_client
        if openai_client is None:
            openai_client = OpenAI(api_key=config.openai_api_key, timeout=OPENAI_TIMEOUT)
        return openai_client

    try:
        workdir = create_working_dir(config.resume_dir or config.working_dir)
        result.working_dir = workdir
        audio_dir = os.path.join(workdir, "audio")
        slides_dir = os.path.join(workdir, "slides")
        output_dir = os.path.join(workdir, "output")
        logger.info("Working directory: %s", workdir)

        # 1. Extract
        content_path = os.path.join(workdir, "content.json")
        if config.resume_dir and os.path.exists(content_path):
            _enter(result, Stage.EXTRACTING, f"reusing {content_path}")
            record = record_from_dict(json.loads(Path(content_path).read_text(encoding="utf-8")))
        else:
            _enter(result, Stage.EXTRACTING, f"fetching #{number} from {config.owner}/{config.repo}")
            record = extract_content(
                config.owner,
                config.repo,
                number,
                config.github_token,
                kind,
                include_diff=config.include_diff,
                http=services.http,
            )
            _write_json(content_path, to_dict(record))
        result.record = record
        logger.info("Extracted %s #%d: %s", record.kind, record.number, record.title)

        # 2. Script
        script_src = config.script_path
        if not script_src and config.resume_dir:
            script_src = _existing(workdir, "script.json")
        if script_src:
            _enter(result, Stage.SCRIPT_GENERATING, f"loading script from {script_src}")
            script = load_script(script_src)
        else:
            _enter(result, Stage.SCRIPT_GENERATING, f"generating script with {video_cfg.script_model}")
            script = generate_script(
                record,
                _openai(),
                max_body_chars=video_cfg.max_body_chars,
                temperature=video_cfg.temperature,
                model=video_cfg.script_model,
            )
        script = validate_and_adjust_script(script, video_cfg.max_duration)
        _write_json(os.path.join(workdir, "script.json"), to_dict(script))
        result.script = script
        logger.info(
            "Script '%s': %d sections, ~%ds", script.title, len(script.sections), script.estimated_duration
        )
        _log_costs(script, video_cfg.tts_model)

        # 3. Audio
        _enter(result, Stage.AUDIO_SYNTHESIZING, f"voice={video_cfg.voice} model={video_cfg.tts_model}")
        synth = services.synth_func or make_synth_openai(
            _openai(), video_cfg.tts_model, video_cfg.voice, speed=video_cfg.speed
        )
        audio = synthesize_audio(script, synth, audio_dir, speed=video_cfg.speed)
        result.audio = audio
        logger.info("Generated %d audio segments, ~%ds", len(audio.segments), audio.total_duration)
        if config.export_narration and audio.segments:
            narration_path = os.path.join(output_dir, "narration.mp3")
            try:
                combine_audio_files([s.path for s in audio.segments], narration_path)
            except (OSError, CouldntDecodeError) as e:
                logger.warning("Could not export narration track: %s", e)
                result.warnings.append(f"narration export failed: {e}")

        # 4. Slides
        _enter(result, Stage.SLIDE_RENDERING, f"{len(script.sections)} slides ({video_cfg.slide_renderer})")
        with contextlib.ExitStack() as stack:
            render_func = services.render_func
            if render_func is None and video_cfg.slide_renderer == "browser":
                render_func = stack.enter_context(BrowserSlideRenderer())
            slides = render_slides(
                script,
                slides_dir,
                render_func,
                resolution=video_cfg.resolution,
                background_color=video_cfg.background_color,
                text_color=video_cfg.text_color,
                accent_color=video_cfg.accent_color,
            )
        result.slides = slides

        # 5. Compose
        _enter(result, Stage.COMPOSING, f"{video_cfg.resolution} @ {video_cfg.fps}fps")
        video = compose_video(
            script,
            audio.segments,
            slides.slides,
            os.path.join(output_dir, "video.mp4"),
            resolution=video_cfg.resolution,
            fps=video_cfg.fps,
            bitrate=video_cfg.bitrate,
        )
        result.video = video
        logger.info("Video ready: %s (~%ds)", video.path, video.duration)
        _log_media_info(video)

        metadata = generate_youtube_metadata(
            script,
            config.default_tags,
            category=config.youtube_category,
            privacy=config.youtube_privacy,
            playlist_id=config.youtube_playlist_id,
        )
        write_metadata(output_dir, metadata)

        # 6. Publish
        credentials = config.youtube_credentials
        if not config.upload_to_youtube:
            logger.info("[6/6] publishing: skipped (upload disabled)")
        elif credentials is None:
            logger.info("[6/6] publishing: skipped (YouTube credentials not configured)")
        else:
            _enter(result, Stage.PUBLISHING, f"uploading as {metadata.privacy}")
            upload = upload_to_youtube(video.path, metadata, credentials, http=services.http)
            result.upload = upload
            if config.post_to_github:
                try:
                    post_video_link(
                        config.owner,
                        config.repo,
                        record.number,
                        upload.url,
                        config.github_token,
                        record.kind,
                        http=services.http,
                    )
                    result.link_posted = True
                except LinkPostError as e:
                    logger.warning("Video uploaded but the GitHub comment failed: %s", e)
                    result.warnings.append(str(e))

        result.stage = Stage.DONE
        result.success = True
        logger.info("Done: %s", result.upload.url if result.upload else video.path)

        if not config.keep_intermediate_files:
            try:
                cleanup_intermediate(workdir)
            except OSError as e:
                logger.warning("Could not clean up %s: %s", workdir, e)
    except Exception as e:
        result.failed_stage = result.stage
        result.stage = Stage.FAILED
        result.error = str(e)
        result.traceback = traceback.format_exc()
        logger.error("Failed during %s: %s", result.failed_stage.value, e)
        if result.working_dir:
            logger.error("Working directory preserved for debugging: %s", result.working_dir)

    return result
