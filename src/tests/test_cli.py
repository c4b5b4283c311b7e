"""
Tests for the command-line entry point.
"""

import pytest

import issuecast.cli as cli
from issuecast.models import VideoArtifact
from issuecast.pipeline import GenerationResult, Stage

ENV_VARS = (
    "GITHUB_TOKEN",
    "GITHUB_REPO_OWNER",
    "GITHUB_REPO_NAME",
    "GITHUB_REPOSITORY",
    "OPENAI_API_KEY",
    "YOUTUBE_CLIENT_ID",
    "YOUTUBE_CLIENT_SECRET",
    "YOUTUBE_REFRESH_TOKEN",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.setattr(cli, "load_env", lambda: None)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_issue_and_pr_are_exclusive():
    with pytest.raises(SystemExit):
        cli.parse_args(["--issue", "1", "--pr", "2"])


def test_build_config_overrides(monkeypatch):
    monkeypatch.setenv("GITHUB_REPOSITORY", "acme/web")
    args = cli.parse_args(
        ["--pr", "3", "--no-upload", "--voice", "nova", "--resolution", "1280x720", "--keep-files"]
    )
    config = cli.build_config(args)

    assert (config.owner, config.repo) == ("acme", "web")
    assert config.upload_to_youtube is False
    assert config.post_to_github is True
    assert config.keep_intermediate_files is True
    assert config.video.voice == "nova"
    assert config.video.size == (1280, 720)
    assert config.video.fps == 30


def test_check_deps_exit_code(monkeypatch):
    monkeypatch.setattr(cli, "check_dependencies", lambda: {"ffmpeg": True, "ffprobe": False, "all_ok": False})
    assert cli.main(["--check-deps"]) == 1
    monkeypatch.setattr(cli, "check_dependencies", lambda: {"ffmpeg": True, "ffprobe": True, "all_ok": True})
    assert cli.main(["--check-deps"]) == 0


def test_missing_credentials_fail():
    assert cli.main(["--issue", "5", "--owner", "acme", "--repo", "web"]) == 1


def test_requires_a_record():
    assert cli.main([]) == 1


def test_exit_codes_follow_result(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "t")
    monkeypatch.setenv("OPENAI_API_KEY", "k")
    monkeypatch.setattr(cli, "require_dependencies", lambda: None)

    failed = GenerationResult(stage=Stage.FAILED, failed_stage=Stage.EXTRACTING, error="boom")
    monkeypatch.setattr(cli, "generate_video", lambda kind, number, config: failed)
    assert cli.main(["--issue", "5", "--owner", "acme", "--repo", "web"]) == 1

    seen = {}

    def ok(kind, number, config):
        seen.update(kind=kind, number=number)
        return GenerationResult(
            success=True, stage=Stage.DONE, video=VideoArtifact("out.mp4", 12, "1920x1080")
        )

    monkeypatch.setattr(cli, "generate_video", ok)
    assert cli.main(["--pr", "8", "--owner", "acme", "--repo", "web", "--no-upload"]) == 0
    assert seen == {"kind": "pr", "number": 8}
