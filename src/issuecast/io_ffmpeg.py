"""
Process and media utilities using ffmpeg/ffprobe.
"""

import json
import logging
import shutil
import subprocess
from fractions import Fraction
from pathlib import Path

from .exceptions import CommandError, DependencyMissingError
from .models import MediaInfo

logger = logging.getLogger("issuecast")


def run(cmd: list[str], *, check: bool = True) -> str:
    """Run an external command, wait for it, and return its combined output."""
    logger.debug("Running: %s", " ".join(map(str, cmd)))
    try:
        proc = subprocess.run(
            cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True, check=False
        )
    except FileNotFoundError as e:
        raise CommandError(cmd, 127, str(e)) from e
    if proc.returncode != 0 and check:
        logger.error("Command failed with code %d: %s", proc.returncode, proc.stdout[-2000:])
        raise CommandError(cmd, proc.returncode, proc.stdout)
    return proc.stdout


def ensure_dir(path: str) -> None:
    """Ensure directory exists."""
    if path:
        Path(path).mkdir(parents=True, exist_ok=True)


def check_dependencies() -> dict[str, bool]:
    """Check that ffmpeg and ffprobe can be invoked."""
    checks = {}
    for tool in ("ffmpeg", "ffprobe"):
        ok = False
        if shutil.which(tool):
            try:
                run([tool, "-version"])
                ok = True
            except CommandError:
                pass
        if not ok:
            logger.error("%s not found. Please install FFmpeg.", tool)
        checks[tool] = ok
    checks["all_ok"] = checks["ffmpeg"] and checks["ffprobe"]
    return checks


def require_dependencies() -> None:
    """Raise DependencyMissingError unless ffmpeg and ffprobe are available."""
    checks = check_dependencies()
    if not checks["all_ok"]:
        missing = [tool for tool in ("ffmpeg", "ffprobe") if not checks[tool]]
        raise DependencyMissingError(f"Missing required tools: {', '.join(missing)}")


def probe_video(path: str) -> MediaInfo:
    """Measure duration, resolution, frame rate, and bitrate of a video file."""
    out = run(
        [
            "ffprobe",
            "-v",
            "error",
            "-select_streams",
            "v:0",
            "-show_entries",
            "stream=width,height,r_frame_rate,bit_rate",
            "-show_entries",
            "format=duration",
            "-of",
            "json",
            path,
        ]
    )
    data = json.loads(out)
    stream = (data.get("streams") or [{}])[0]
    fmt = data.get("format") or {}
    try:
        fps = float(Fraction(stream.get("r_frame_rate", "0/1")))
    except (ValueError, ZeroDivisionError):
        fps = 0.0
    return MediaInfo(
        duration=float(fmt.get("duration", 0.0)),
        resolution=f"{stream.get('width', 0)}x{stream.get('height', 0)}",
        fps=fps,
        bitrate=int(stream.get("bit_rate") or 0),
    )
