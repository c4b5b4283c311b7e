"""
Data models for the video generation pipeline.
"""

from dataclasses import asdict, dataclass, replace
from typing import Any, Literal, Union

SectionType = Literal["intro", "main", "code", "summary", "outro"]
SECTION_TYPES: tuple[str, ...] = ("intro", "main", "code", "summary", "outro")


@dataclass(frozen=True)
class Comment:
    """A single comment on an issue or pull request."""

    author: str
    body: str
    created_at: str


@dataclass(frozen=True)
class Commit:
    """A commit listed on a pull request."""

    sha: str
    message: str
    author: str


@dataclass(frozen=True)
class RecordMetadata:
    """Where a record came from."""

    repository: str  # owner/repo
    url: str


@dataclass(frozen=True)
class IssueRecord:
    """A GitHub issue with its discussion thread."""

    number: int
    title: str
    body: str
    author: str
    created_at: str
    labels: tuple[str, ...]
    comments: tuple[Comment, ...]
    metadata: RecordMetadata
    kind: Literal["issue"] = "issue"


@dataclass(frozen=True)
class PullRequestRecord:
    """A GitHub pull request with change statistics and commits."""

    number: int
    title: str
    body: str
    author: str
    created_at: str
    labels: tuple[str, ...]
    comments: tuple[Comment, ...]
    metadata: RecordMetadata
    additions: int
    deletions: int
    changed_files: int
    commits: tuple[Commit, ...]
    diff: str | None = None
    kind: Literal["pr"] = "pr"


SourceRecord = Union[IssueRecord, PullRequestRecord]


def kind_label(kind: str) -> str:
    """Human-readable name of a record kind."""
    return "Pull Request" if kind == "pr" else "Issue"


@dataclass(frozen=True)
class ScriptSection:
    """One timed, narrated section of the video."""

    type: SectionType
    heading: str
    narration: str
    duration: int  # seconds
    visual_notes: str | None = None
    code_snippet: str | None = None
    bullet_points: tuple[str, ...] | None = None


@dataclass(frozen=True)
class ScriptMetadata:
    source_type: str
    source_number: int
    generated_at: str  # ISO 8601


@dataclass(frozen=True)
class VideoScript:
    """A complete video script.

    ``estimated_duration`` is always the sum of the section durations; build
    scripts with :meth:`build` or :meth:`with_sections` so the two never drift.
    """

    title: str
    description: str
    sections: tuple[ScriptSection, ...]
    estimated_duration: int
    metadata: ScriptMetadata

    @classmethod
    def build(
        cls,
        title: str,
        description: str,
        sections: list[ScriptSection] | tuple[ScriptSection, ...],
        metadata: ScriptMetadata,
    ) -> "VideoScript":
        sections = tuple(sections)
        return cls(
            title=title,
            description=description,
            sections=sections,
            estimated_duration=sum(s.duration for s in sections),
            metadata=metadata,
        )

    def with_sections(self, sections: list[ScriptSection]) -> "VideoScript":
        sections = tuple(sections)
        return replace(
            self, sections=sections, estimated_duration=sum(s.duration for s in sections)
        )


@dataclass(frozen=True)
class AudioSegment:
    """Narration audio for one script section.

    ``duration`` is estimated from the word count, not measured from the file.
    """

    section_index: int
    path: str
    duration: int
    text: str


@dataclass(frozen=True)
class AudioResult:
    segments: tuple[AudioSegment, ...]
    total_duration: int
    output_dir: str


@dataclass(frozen=True)
class SlideImage:
    section_index: int
    path: str
    section: ScriptSection


@dataclass(frozen=True)
class SlideResult:
    slides: tuple[SlideImage, ...]
    output_dir: str


@dataclass(frozen=True)
class VideoArtifact:
    path: str
    duration: int  # sum of audio segment estimates
    resolution: str


@dataclass(frozen=True)
class MediaInfo:
    """Measured properties of an encoded media file (from ffprobe)."""

    duration: float
    resolution: str
    fps: float
    bitrate: int


@dataclass(frozen=True)
class VideoMetadata:
    """YouTube snippet/status metadata."""

    title: str
    description: str
    tags: tuple[str, ...]
    category: str
    privacy: str  # public, unlisted, private
    playlist_id: str | None = None


@dataclass(frozen=True)
class UploadResult:
    video_id: str
    url: str
    title: str
    uploaded_at: str


@dataclass(frozen=True)
class YouTubeCredentials:
    client_id: str
    client_secret: str
    refresh_token: str


@dataclass
class Chapter:
    """A YouTube chapter with timing and title."""

    start_time: str  # M:SS format
    title: str


def to_dict(obj: Any) -> dict[str, Any]:
    """Convert a model to a JSON-friendly dict."""
    return asdict(obj)


def record_from_dict(data: dict[str, Any]) -> SourceRecord:
    """Rebuild a record from a ``content.json`` snapshot."""
    common = dict(
        number=int(data["number"]),
        title=data["title"],
        body=data.get("body") or "",
        author=data.get("author", ""),
        created_at=data.get("created_at", ""),
        labels=tuple(data.get("labels") or ()),
        comments=tuple(Comment(**c) for c in data.get("comments") or ()),
        metadata=RecordMetadata(**data["metadata"]),
    )
    if data.get("kind") == "pr":
        return PullRequestRecord(
            **common,
            additions=int(data.get("additions", 0)),
            deletions=int(data.get("deletions", 0)),
            changed_files=int(data.get("changed_files", 0)),
            commits=tuple(Commit(**c) for c in data.get("commits") or ()),
            diff=data.get("diff"),
        )
    return IssueRecord(**common)


def script_from_dict(data: dict[str, Any]) -> VideoScript:
    """Rebuild a script from a ``script.json`` snapshot.

    The total duration is recomputed from the sections.
    """
    sections = []
    for s in data.get("sections") or ():
        bullets = s.get("bullet_points")
        sections.append(
            ScriptSection(
                type=s.get("type", "main"),
                heading=s.get("heading", ""),
                narration=s.get("narration", ""),
                duration=int(s.get("duration", 0)),
                visual_notes=s.get("visual_notes"),
                code_snippet=s.get("code_snippet"),
                bullet_points=tuple(bullets) if bullets is not None else None,
            )
        )
    meta = data.get("metadata") or {}
    return VideoScript.build(
        title=data.get("title", ""),
        description=data.get("description", ""),
        sections=sections,
        metadata=ScriptMetadata(
            source_type=meta.get("source_type", "issue"),
            source_number=int(meta.get("source_number", 0)),
            generated_at=meta.get("generated_at", ""),
        ),
    )
