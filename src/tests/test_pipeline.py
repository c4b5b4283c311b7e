"""
End-to-end pipeline tests with fake GitHub, OpenAI, TTS, and ffmpeg.
"""

import json
import os
from pathlib import Path

import httpx
import pytest

import issuecast.compose as compose
from issuecast.config import GenerationConfig, VideoConfig
from issuecast.exceptions import CommandError
from issuecast.pipeline import PipelineServices, Stage, generate_video
from issuecast.tts import estimate_duration

DEMO_ISSUE = {
    "title": "Demo",
    "body": "",
    "user": {"login": "octocat"},
    "created_at": "2024-05-01T10:00:00Z",
    "labels": [],
    "html_url": "https://github.com/acme/web/issues/6",
}

SESSION_URL = "https://upload.example.test/session/6"


def fake_synth(text, out_path):
    with open(out_path, "wb") as f:
        f.write(b"ID3")


def fake_ffmpeg(cmd):
    with open(cmd[-1], "wb") as f:
        f.write(b"mp4")
    return ""


def _handler(comment_status=201):
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        url = str(request.url)
        if request.method == "GET" and path == "/repos/acme/web/issues/6":
            return httpx.Response(200, json=DEMO_ISSUE)
        if request.method == "GET" and path == "/repos/acme/web/issues/6/comments":
            return httpx.Response(200, json=[])
        if request.method == "POST" and path == "/repos/acme/web/issues/6/comments":
            return httpx.Response(comment_status, json={})
        if url.startswith("https://oauth2.googleapis.com/token"):
            return httpx.Response(200, json={"access_token": "tok"})
        if url.startswith("https://www.googleapis.com/upload/youtube/v3/videos"):
            return httpx.Response(200, headers={"Location": SESSION_URL})
        if url == SESSION_URL:
            return httpx.Response(200, json={"id": "demo6"})
        return httpx.Response(404, json={"message": "Not Found"})

    return handler


@pytest.fixture
def config(tmp_path):
    return GenerationConfig(
        github_token="ghp_test",
        owner="acme",
        repo="web",
        openai_api_key="sk-test",
        working_dir=str(tmp_path / "work"),
        upload_to_youtube=False,
        video=VideoConfig(resolution="320x180", slide_renderer="placeholder"),
    )


@pytest.fixture
def services(fake_openai):
    http = httpx.Client(transport=httpx.MockTransport(_handler()))
    yield PipelineServices(
        http=http,
        openai_client=fake_openai(reply="I'd rather not answer in JSON."),
        synth_func=fake_synth,
    )
    http.close()


def test_demo_issue_end_to_end(config, services, monkeypatch):
    """Fallback script -> 3 audio files, 3 slides, one video, no upload."""
    monkeypatch.setattr(compose, "run", fake_ffmpeg)

    result = generate_video(None, 6, config, services)

    assert result.success, result.error
    assert result.stage == Stage.DONE
    assert result.upload is None
    assert result.record.kind == "issue"
    assert result.record.title == "Demo"
    assert len(result.script.sections) == 3
    assert result.script.estimated_duration == 165
    assert len(result.audio.segments) == 3
    assert len(result.slides.slides) == 3
    assert result.video.duration == sum(estimate_duration(s.narration) for s in result.script.sections)
    assert os.path.exists(result.video.path)

    workdir = result.working_dir
    assert workdir == config.working_dir
    assert json.loads(Path(os.path.join(workdir, "content.json")).read_text())["number"] == 6
    assert json.loads(Path(os.path.join(workdir, "script.json")).read_text())["estimated_duration"] == 165
    assert os.path.exists(os.path.join(workdir, "output", "youtube_metadata.json"))
    assert not os.path.exists(os.path.join(workdir, "audio"))
    assert not os.path.exists(os.path.join(workdir, "slides"))


def test_keep_intermediate_files(config, services, monkeypatch):
    monkeypatch.setattr(compose, "run", fake_ffmpeg)
    config.keep_intermediate_files = True

    result = generate_video("issue", 6, config, services)

    assert result.success
    assert len(os.listdir(os.path.join(result.working_dir, "audio"))) == 3


def test_failure_preserves_working_dir(config, services, monkeypatch):
    """A composition failure stops in FAILED with the stage and traceback captured."""

    def broken(cmd):
        raise CommandError(cmd, 1, "Error initializing complex filters")

    monkeypatch.setattr(compose, "run", broken)

    result = generate_video("issue", 6, config, services)

    assert not result.success
    assert result.stage == Stage.FAILED
    assert result.failed_stage == Stage.COMPOSING
    assert "complex filters" in result.error
    assert "CompositionError" in result.traceback
    assert os.path.isdir(os.path.join(result.working_dir, "audio"))


def test_extract_failure(config, services):
    result = generate_video("issue", 404, config, services)

    assert result.failed_stage == Stage.EXTRACTING
    assert result.script is None


def test_publish_and_link_failure_is_not_fatal(config, fake_openai, monkeypatch):
    """Upload succeeds; the GitHub comment fails but the run is still Done."""
    monkeypatch.setattr(compose, "run", fake_ffmpeg)
    config.upload_to_youtube = True
    config.youtube_client_id = "cid"
    config.youtube_client_secret = "secret"
    config.youtube_refresh_token = "refresh"

    with httpx.Client(transport=httpx.MockTransport(_handler(comment_status=500))) as http:
        services = PipelineServices(
            http=http, openai_client=fake_openai(reply="no json"), synth_func=fake_synth
        )
        result = generate_video("issue", 6, config, services)

    assert result.success
    assert result.upload.url == "https://www.youtube.com/watch?v=demo6"
    assert result.link_posted is False
    assert result.warnings


def test_publishing_skipped_without_credentials(config, services, monkeypatch):
    monkeypatch.setattr(compose, "run", fake_ffmpeg)
    config.upload_to_youtube = True

    result = generate_video("issue", 6, config, services)

    assert result.success
    assert result.upload is None


def test_resume_reuses_snapshots(config, services, monkeypatch):
    """A resumed run reads content.json and script.json instead of calling out."""
    monkeypatch.setattr(compose, "run", fake_ffmpeg)
    first = generate_video("issue", 6, config, services)
    assert first.success

    script_path = os.path.join(first.working_dir, "script.json")
    data = json.loads(Path(script_path).read_text())
    data["title"] = "Edited title"
    Path(script_path).write_text(json.dumps(data))

    config.resume_dir = first.working_dir
    offline = httpx.MockTransport(lambda request: httpx.Response(500))
    with httpx.Client(transport=offline) as http:
        second = generate_video(
            "issue", 6, config, PipelineServices(http=http, synth_func=fake_synth)
        )

    assert second.success, second.error
    assert second.script.title == "Edited title"
    assert second.record.title == "Demo"
