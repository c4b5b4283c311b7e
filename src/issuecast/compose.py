"""
Video composition: slides + narration -> MP4 via ffmpeg.
"""

import logging
import os
import shutil
import tempfile

from .config import parse_resolution
from .exceptions import CommandError, CompositionError
from .io_ffmpeg import ensure_dir, run
from .models import AudioSegment, SlideImage, VideoArtifact, VideoScript

logger = logging.getLogger("issuecast")

AUDIO_BITRATE = "192k"


def pair_segments_with_slides(
    audio_segments: list[AudioSegment] | tuple[AudioSegment, ...],
    slides: list[SlideImage] | tuple[SlideImage, ...],
) -> list[tuple[AudioSegment, SlideImage]]:
    """Match each audio segment with the slide of the same section.

    Sections without narration have no audio segment, so list positions of
    the two lists drift apart after a gap; pairing by ``section_index`` keeps
    every slide on screen while its own narration plays.
    """
    by_index = {slide.section_index: slide for slide in slides}
    pairs = []
    for seg in audio_segments:
        slide = by_index.get(seg.section_index)
        if slide is None:
            raise CompositionError(f"No slide for section {seg.section_index}")
        pairs.append((seg, slide))
    return pairs


def build_filter_complex(
    pairs: list[tuple[AudioSegment, SlideImage]], width: int, height: int, fps: int
) -> str:
    """Filter graph for inputs laid out as [slide_0..slide_n-1, audio_0..audio_n-1]."""
    n = len(pairs)
    filters = []
    for i, (seg, _slide) in enumerate(pairs):
        frames = max(1, seg.duration * fps)
        filters.append(
            f"[{i}:v]scale={width}:{height}:force_original_aspect_ratio=decrease,"
            f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2,setsar=1,"
            f"loop=loop={frames - 1}:size=1:start=0,setpts=N/{fps}/TB,fps={fps}[v{i}]"
        )
    video_inputs = "".join(f"[v{i}]" for i in range(n))
    filters.append(f"{video_inputs}concat=n={n}:v=1:a=0[outv]")
    audio_inputs = "".join(f"[{n + i}:a]" for i in range(n))
    filters.append(f"{audio_inputs}concat=n={n}:v=0:a=1[outa]")
    return ";".join(filters)


def build_ffmpeg_command(
    pairs: list[tuple[AudioSegment, SlideImage]],
    output_path: str,
    *,
    resolution: str = "1920x1080",
    fps: int = 30,
    bitrate: str = "5000k",
) -> list[str]:
    """Full ffmpeg argument list for composing the video."""
    width, height = parse_resolution(resolution)
    cmd = ["ffmpeg", "-y", "-hide_banner"]
    for _seg, slide in pairs:
        cmd += ["-i", slide.path]
    for seg, _slide in pairs:
        cmd += ["-i", seg.path]
    cmd += [
        "-filter_complex",
        build_filter_complex(pairs, width, height, fps),
        "-map",
        "[outv]",
        "-map",
        "[outa]",
        "-c:v",
        "libx264",
        "-preset",
        "medium",
        "-b:v",
        bitrate,
        "-r",
        str(fps),
        "-pix_fmt",
        "yuv420p",
        "-c:a",
        "aac",
        "-b:a",
        AUDIO_BITRATE,
        "-shortest",
        "-movflags",
        "+faststart",
        output_path,
    ]
    return cmd


def compose_video(
    script: VideoScript,
    audio_segments: list[AudioSegment] | tuple[AudioSegment, ...],
    slides: list[SlideImage] | tuple[SlideImage, ...],
    output_path: str,
    *,
    resolution: str = "1920x1080",
    fps: int = 30,
    bitrate: str = "5000k",
) -> VideoArtifact:
    """Compose the final video. Its duration is the sum of the audio estimates."""
    if not audio_segments:
        raise CompositionError("No narration audio to compose (all sections are blank)")

    pairs = pair_segments_with_slides(audio_segments, slides)
    ensure_dir(os.path.dirname(output_path))
    cmd = build_ffmpeg_command(
        pairs, output_path, resolution=resolution, fps=fps, bitrate=bitrate
    )
    logger.info(
        "Composing %d sections of '%s' -> %s", len(pairs), script.title, output_path
    )
    try:
        run(cmd)
    except CommandError as e:
        raise CompositionError(
            f"ffmpeg exited with code {e.returncode} while composing video", output=e.output
        ) from e

    return VideoArtifact(
        path=output_path,
        duration=sum(seg.duration for seg in audio_segments),
        resolution=resolution,
    )


def compose_simple_video(
    audio_path: str, image_path: str, output_path: str, duration: float | None = None
) -> None:
    """Single still image over one audio track."""
    cmd = [
        "ffmpeg",
        "-y",
        "-loop",
        "1",
        "-i",
        image_path,
        "-i",
        audio_path,
        "-c:v",
        "libx264",
        "-tune",
        "stillimage",
        "-c:a",
        "aac",
        "-b:a",
        AUDIO_BITRATE,
        "-pix_fmt",
        "yuv420p",
        "-shortest",
    ]
    if duration:
        cmd += ["-t", str(duration)]
    cmd.append(output_path)
    try:
        run(cmd)
    except CommandError as e:
        raise CompositionError("ffmpeg failed to compose simple video", output=e.output) from e


def add_intro_outro(
    main_video: str, intro: str | None, outro: str | None, output_path: str
) -> None:
    """Concatenate optional intro and outro clips around the main video (stream copy)."""
    if not intro and not outro:
        shutil.copyfile(main_video, output_path)
        return

    videos = [p for p in (intro, main_video, outro) if p]
    with tempfile.NamedTemporaryFile(
        "w", suffix=".txt", dir=os.path.dirname(output_path) or ".", delete=False
    ) as f:
        for p in videos:
            escaped = os.path.abspath(p).replace("'", "'\\''")
            f.write(f"file '{escaped}'\n")
        list_path = f.name
    try:
        run(["ffmpeg", "-y", "-f", "concat", "-safe", "0", "-i", list_path, "-c", "copy", output_path])
    except CommandError as e:
        raise CompositionError("ffmpeg failed to add intro/outro", output=e.output) from e
    finally:
        os.remove(list_path)
