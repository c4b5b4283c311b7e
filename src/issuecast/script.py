"""
Video script generation with GPT, fallback scripts, and duration limits.
"""

import json
import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from openai import OpenAI, OpenAIError

from .exceptions import ScriptGenerationError
from .models import (
    SECTION_TYPES,
    PullRequestRecord,
    ScriptMetadata,
    ScriptSection,
    SourceRecord,
    VideoScript,
    kind_label,
    script_from_dict,
)

logger = logging.getLogger("issuecast")

MAX_COMMENTS = 3
COMMENT_CHARS = 200
MAX_COMMITS = 3

SYSTEM_PROMPT = """You are an expert technical content creator specializing in creating engaging video scripts from GitHub Issues and Pull Requests.

Your scripts should:
- Be conversational and engaging, not robotic
- Explain technical concepts clearly for a technical audience
- Include natural transitions between sections
- Suggest relevant visuals (code snippets, diagrams, bullet points)
- Be paced well for voice narration (not too fast or dense)
- Include a strong opening hook and clear conclusion

Return your response as a valid JSON object with this structure:
{
  "title": "Video title",
  "description": "Video description for YouTube",
  "sections": [
    {
      "type": "intro|main|code|summary|outro",
      "heading": "Section heading",
      "narration": "Full narration text",
      "visualNotes": "What to show on screen",
      "duration": 30,
      "codeSnippet": "optional code",
      "bulletPoints": ["optional", "bullet", "points"]
    }
  ]
}"""


@dataclass(frozen=True)
class ScriptParseResult:
    """Outcome of parsing a model reply: a script, or why there is none."""

    script: VideoScript | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.script is not None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _metadata(record: SourceRecord) -> ScriptMetadata:
    return ScriptMetadata(
        source_type=record.kind, source_number=record.number, generated_at=_now_iso()
    )


def build_prompt(record: SourceRecord, max_body_chars: int = 3000) -> str:
    """Build the user prompt for a record."""
    parts = [
        f"Create a technical video script from the following GitHub {kind_label(record.kind)}:",
        "",
        f"Title: {record.title}",
        "",
        "Content:",
        record.body[:max_body_chars],
    ]

    if record.comments:
        parts += ["", "Key Discussion Points:"]
        parts += [
            f"- {c.author}: {c.body[:COMMENT_CHARS]}" for c in record.comments[:MAX_COMMENTS]
        ]

    if isinstance(record, PullRequestRecord):
        commit_messages = ", ".join(c.message for c in record.commits[:MAX_COMMITS])
        parts += [
            "",
            "Changes:",
            f"- {record.additions} additions, {record.deletions} deletions",
            f"- {record.changed_files} files changed",
            f"- Key commits: {commit_messages}",
        ]

    parts += [
        "",
        "Create a video script with the following structure:",
        "1. Intro (15-30 seconds) - Hook and overview",
        "2. Main content (3-8 minutes) - Detailed explanation broken into clear sections",
        "3. Code examples (if applicable) - 1-2 key snippets with explanations",
        "4. Summary (30-45 seconds) - Key takeaways",
        "5. Outro (15 seconds) - Call to action",
        "",
        "For each section, provide:",
        "- Heading",
        "- Natural narration text (as if speaking to viewers)",
        "- Visual notes (what should be shown on screen)",
        "- Estimated duration",
        "",
        "Format the response as structured JSON.",
    ]
    return "\n".join(parts)


def _balanced_block(text: str, start: int) -> str | None:
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _is_json_object(block: str) -> bool:
    try:
        return isinstance(json.loads(block), dict)
    except ValueError:
        return False


def extract_json_block(text: str) -> str | None:
    """Return the first balanced ``{...}`` block in text that is a JSON object.

    Braces inside strings are ignored. Candidates that don't parse (a stray
    ``{name}`` in prose) are skipped. If none parses, the first balanced
    candidate is returned so the caller can report the decode error.
    """
    first = None
    start = text.find("{")
    while start != -1:
        block = _balanced_block(text, start)
        if block is not None:
            if _is_json_object(block):
                return block
            if first is None:
                first = block
        start = text.find("{", start + 1)
    return first


def _as_duration(value: Any) -> int:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(seconds):
        return 0
    return max(0, int(seconds))


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value.strip() else None


def _coerce_section(raw: dict[str, Any], index: int) -> ScriptSection:
    section_type = str(raw.get("type", "main")).strip().lower()
    if section_type not in SECTION_TYPES:
        section_type = "main"
    bullets = raw.get("bulletPoints", raw.get("bullet_points"))
    if isinstance(bullets, list):
        bullets = tuple(str(b) for b in bullets if str(b).strip())
    else:
        bullets = None
    narration = raw.get("narration")
    return ScriptSection(
        type=section_type,
        heading=str(raw.get("heading") or f"Section {index + 1}"),
        narration=narration if isinstance(narration, str) else "",
        duration=_as_duration(raw.get("duration", 0)),
        visual_notes=_optional_str(raw.get("visualNotes", raw.get("visual_notes"))),
        code_snippet=_optional_str(raw.get("codeSnippet", raw.get("code_snippet"))),
        bullet_points=bullets or None,
    )


def parse_script_reply(reply: str, record: SourceRecord) -> ScriptParseResult:
    """Parse the model's reply into a script. Never raises for malformed replies."""
    block = extract_json_block(reply or "")
    if block is None:
        return ScriptParseResult(error="No JSON object found in reply")
    try:
        parsed = json.loads(block)
    except json.JSONDecodeError as e:
        return ScriptParseResult(error=f"Invalid JSON: {e}")

    raw_sections = parsed.get("sections")
    if not isinstance(raw_sections, list):
        return ScriptParseResult(error="Reply has no sections array")
    raw_sections = [s for s in raw_sections if isinstance(s, dict)]
    if not raw_sections:
        return ScriptParseResult(error="Reply has no usable sections")

    sections = [_coerce_section(s, i) for i, s in enumerate(raw_sections)]
    title = parsed.get("title")
    description = parsed.get("description")
    script = VideoScript.build(
        title=title if isinstance(title, str) and title.strip() else record.title,
        description=(
            description
            if isinstance(description, str) and description.strip()
            else f"Video generated from {record.kind} #{record.number}"
        ),
        sections=sections,
        metadata=_metadata(record),
    )
    return ScriptParseResult(script=script)


def create_fallback_script(record: SourceRecord) -> VideoScript:
    """Deterministic three-section script used when the reply can't be parsed."""
    label = kind_label(record.kind)
    body = record.body.strip()
    if body:
        overview = body[:500] + ("..." if len(body) > 500 else "")
    else:
        overview = f"This {label.lower()} does not include a description yet."
    bullets = tuple(line.strip() for line in record.body.split("\n") if line.strip())[:5]

    sections = [
        ScriptSection(
            type="intro",
            heading="Introduction",
            narration=(
                f"Welcome! Today we're looking at {label} number {record.number}: {record.title}"
            ),
            visual_notes=f"Show title slide with {label.lower()} number",
            duration=15,
        ),
        ScriptSection(
            type="main",
            heading="Overview",
            narration=overview,
            visual_notes="Show main content as bullet points",
            duration=120,
            bullet_points=bullets or None,
        ),
        ScriptSection(
            type="summary",
            heading="Summary",
            narration=(
                f"That's a quick overview of {record.title}. "
                "Check out the full details in the description below."
            ),
            visual_notes="Show summary slide",
            duration=30,
        ),
    ]
    return VideoScript.build(
        title=record.title,
        description=f"Video generated from GitHub {record.kind} #{record.number}",
        sections=sections,
        metadata=_metadata(record),
    )


def generate_script(
    record: SourceRecord,
    client: OpenAI,
    *,
    max_body_chars: int = 3000,
    temperature: float = 0.7,
    model: str = "gpt-4o-mini",
    max_tokens: int = 2000,
) -> VideoScript:
    """Generate a video script for a record.

    Raises ScriptGenerationError only if the completion request fails. A reply
    that can't be parsed yields the fallback script.
    """
    if client is None:
        raise ScriptGenerationError("OpenAI client is not initialized (missing OPENAI_API_KEY)")

    try:
        chat = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(record, max_body_chars)},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )
    except OpenAIError as e:
        raise ScriptGenerationError(f"Completion request failed: {e}") from e

    content = chat.choices[0].message.content if chat.choices else None
    result = parse_script_reply(content or "", record)
    if not result.ok:
        logger.warning("Failed to parse script reply (%s), using fallback script", result.error)
        return create_fallback_script(record)
    return result.script


def validate_and_adjust_script(script: VideoScript, max_duration: int = 600) -> VideoScript:
    """Scale section durations down proportionally if the total exceeds max_duration."""
    if script.estimated_duration <= max_duration:
        return script

    ratio = max_duration / script.estimated_duration
    logger.info(
        "Script runs %ds, scaling sections by %.3f to fit %ds",
        script.estimated_duration,
        ratio,
        max_duration,
    )
    return script.with_sections(
        [
            replace(s, duration=s.duration * max_duration // script.estimated_duration)
            for s in script.sections
        ]
    )


def load_script(path: str) -> VideoScript:
    """Load a script from a ``script.json`` snapshot."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    script = script_from_dict(data)
    if not script.sections:
        raise ValueError(f"Script has no sections: {path}")
    return script
