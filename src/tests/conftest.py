"""
Shared fixtures: sample records, scripts, and a fake OpenAI client.
"""

from types import SimpleNamespace

import pytest

from issuecast.models import (
    Comment,
    Commit,
    IssueRecord,
    PullRequestRecord,
    RecordMetadata,
    ScriptMetadata,
    ScriptSection,
    VideoScript,
)


class FakeCompletions:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def make_fake_openai(reply=None, error=None):
    """Object shaped like ``OpenAI`` with only ``chat.completions.create``."""
    completions = FakeCompletions(reply=reply, error=error)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


@pytest.fixture
def fake_openai():
    return make_fake_openai


@pytest.fixture
def issue_record():
    return IssueRecord(
        number=42,
        title="Add dark mode",
        body="Users want a dark theme.\n\n- toggle in settings\n- respect OS preference\n",
        author="octocat",
        created_at="2024-05-01T10:00:00Z",
        labels=("enhancement",),
        comments=(
            Comment(author="alice", body="+1, my eyes hurt at night", created_at="2024-05-02T09:00:00Z"),
            Comment(author="bob", body="Should we use CSS variables?", created_at="2024-05-02T10:00:00Z"),
        ),
        metadata=RecordMetadata(repository="acme/web", url="https://github.com/acme/web/issues/42"),
    )


@pytest.fixture
def pr_record():
    return PullRequestRecord(
        number=7,
        title="Deploy with Docker",
        body="Adds a Dockerfile and CI workflow.",
        author="octocat",
        created_at="2024-05-03T10:00:00Z",
        labels=(),
        comments=(),
        metadata=RecordMetadata(repository="acme/web", url="https://github.com/acme/web/pull/7"),
        additions=120,
        deletions=4,
        changed_files=3,
        commits=(
            Commit(sha="a1", message="Add Dockerfile", author="Octo Cat"),
            Commit(sha="b2", message="Add CI job", author="Octo Cat"),
            Commit(sha="c3", message="Fix healthcheck", author="Octo Cat"),
            Commit(sha="d4", message="Bump base image", author="Octo Cat"),
        ),
    )


@pytest.fixture
def sample_script():
    sections = [
        ScriptSection(type="intro", heading="Welcome", narration="Hello and welcome.", duration=15),
        ScriptSection(
            type="main",
            heading="The problem",
            narration="We use Docker and GraphQL with an API.",
            duration=120,
            bullet_points=("Docker", "GraphQL"),
        ),
        ScriptSection(type="summary", heading="Wrap up", narration="Thanks for watching.", duration=30),
    ]
    return VideoScript.build(
        title="Dark mode",
        description="How dark mode landed.",
        sections=sections,
        metadata=ScriptMetadata(source_type="issue", source_number=42, generated_at="2024-05-04T12:00:00+00:00"),
    )
