"""
Tests for the subprocess wrapper and ffprobe parsing.
"""

import json

import pytest

import issuecast.io_ffmpeg as io_ffmpeg
from issuecast.exceptions import CommandError, DependencyMissingError


def test_run_returns_combined_output():
    out = io_ffmpeg.run(["sh", "-c", "echo out; echo err 1>&2"])
    assert "out" in out
    assert "err" in out


def test_run_failure_carries_output():
    with pytest.raises(CommandError) as exc:
        io_ffmpeg.run(["sh", "-c", "echo broken pipe; exit 3"])
    assert exc.value.returncode == 3
    assert "broken pipe" in exc.value.output

    assert "x" in io_ffmpeg.run(["sh", "-c", "echo x; exit 1"], check=False)


def test_run_missing_binary():
    with pytest.raises(CommandError) as exc:
        io_ffmpeg.run(["definitely-not-a-real-binary-xyz"])
    assert exc.value.returncode == 127


def test_probe_video(monkeypatch):
    payload = {
        "streams": [{"width": 1920, "height": 1080, "r_frame_rate": "30000/1001", "bit_rate": "4800000"}],
        "format": {"duration": "42.5"},
    }
    monkeypatch.setattr(io_ffmpeg, "run", lambda cmd: json.dumps(payload))

    info = io_ffmpeg.probe_video("video.mp4")

    assert info.duration == 42.5
    assert info.resolution == "1920x1080"
    assert round(info.fps, 2) == 29.97
    assert info.bitrate == 4800000


def test_require_dependencies(monkeypatch):
    monkeypatch.setattr(io_ffmpeg.shutil, "which", lambda tool: None)
    assert io_ffmpeg.check_dependencies() == {"ffmpeg": False, "ffprobe": False, "all_ok": False}
    with pytest.raises(DependencyMissingError, match="ffmpeg, ffprobe"):
        io_ffmpeg.require_dependencies()
