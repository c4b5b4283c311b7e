"""
GitHub issue and pull request extraction, and posting the video link back.
"""

import contextlib
import logging
from collections.abc import Iterator
from typing import Any

import httpx

from .exceptions import LinkPostError, RemoteFetchError
from .models import (
    Comment,
    Commit,
    IssueRecord,
    PullRequestRecord,
    RecordMetadata,
    SourceRecord,
)

logger = logging.getLogger("issuecast")

API_URL = "https://api.github.com"
USER_AGENT = "issuecast/0.1"
HTTP_TIMEOUT = 30.0


def _headers(token: str, accept: str = "application/vnd.github.v3+json") -> dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Accept": accept,
        "User-Agent": USER_AGENT,
    }


@contextlib.contextmanager
def _client(http: httpx.Client | None) -> Iterator[httpx.Client]:
    """Yield the given client, or a short-lived one closed on exit."""
    if http is not None:
        yield http
        return
    with httpx.Client(follow_redirects=True, timeout=HTTP_TIMEOUT) as client:
        yield client


def _fetch_primary(http: httpx.Client, url: str, token: str, what: str) -> dict[str, Any]:
    try:
        r = http.get(url, headers=_headers(token))
    except httpx.HTTPError as e:
        raise RemoteFetchError(f"Failed to fetch {what}: {e}") from e
    if r.status_code != 200:
        raise RemoteFetchError(f"Failed to fetch {what}: {r.status_code} {r.reason_phrase}")
    try:
        data = r.json()
    except ValueError as e:
        raise RemoteFetchError(f"Failed to fetch {what}: response is not JSON ({e})") from e
    if not isinstance(data, dict):
        raise RemoteFetchError(f"Failed to fetch {what}: unexpected response shape")
    return data


def _fetch_optional_list(http: httpx.Client, url: str, token: str, what: str) -> list[Any]:
    """Best-effort list fetch; degrades to [] on any failure."""
    try:
        r = http.get(url, headers=_headers(token))
    except httpx.HTTPError as e:
        logger.warning("Could not fetch %s: %s", what, e)
        return []
    if r.status_code != 200:
        logger.warning("Could not fetch %s (%d)", what, r.status_code)
        return []
    try:
        data = r.json()
    except ValueError as e:
        logger.warning("Could not fetch %s: response is not JSON (%s)", what, e)
        return []
    if not isinstance(data, list):
        logger.warning("Could not fetch %s: expected a list", what)
        return []
    return [item for item in data if isinstance(item, dict)]


def _parse_comments(raw: list[dict[str, Any]]) -> tuple[Comment, ...]:
    return tuple(
        Comment(
            author=(c.get("user") or {}).get("login", ""),
            body=c.get("body") or "",
            created_at=c.get("created_at", ""),
        )
        for c in raw
    )


def _common_fields(data: dict[str, Any], number: int, owner: str, repo: str) -> dict[str, Any]:
    return dict(
        number=number,
        title=data.get("title", ""),
        body=data.get("body") or "",
        author=(data.get("user") or {}).get("login", ""),
        created_at=data.get("created_at", ""),
        labels=tuple(label.get("name", "") for label in data.get("labels") or ()),
        metadata=RecordMetadata(repository=f"{owner}/{repo}", url=data.get("html_url", "")),
    )


def extract_issue(
    owner: str,
    repo: str,
    number: int,
    token: str,
    *,
    http: httpx.Client | None = None,
) -> IssueRecord:
    """Fetch an issue and its comments."""
    base = f"{API_URL}/repos/{owner}/{repo}"
    with _client(http) as client:
        issue = _fetch_primary(client, f"{base}/issues/{number}", token, f"issue #{number}")
        comments = _fetch_optional_list(
            client, f"{base}/issues/{number}/comments", token, f"comments for #{number}"
        )
    return IssueRecord(
        **_common_fields(issue, number, owner, repo),
        comments=_parse_comments(comments),
    )


def extract_pull_request(
    owner: str,
    repo: str,
    number: int,
    token: str,
    *,
    include_diff: bool = False,
    http: httpx.Client | None = None,
) -> PullRequestRecord:
    """Fetch a pull request with comments, commits, and optionally its diff."""
    base = f"{API_URL}/repos/{owner}/{repo}"
    with _client(http) as client:
        pr = _fetch_primary(client, f"{base}/pulls/{number}", token, f"pull request #{number}")
        comments = _fetch_optional_list(
            client, f"{base}/issues/{number}/comments", token, f"comments for #{number}"
        )
        commits = _fetch_optional_list(
            client, f"{base}/pulls/{number}/commits", token, f"commits for #{number}"
        )
        diff = None
        if include_diff:
            try:
                r = client.get(
                    f"{base}/pulls/{number}",
                    headers=_headers(token, accept="application/vnd.github.v3.diff"),
                )
                if r.status_code == 200:
                    diff = r.text
                else:
                    logger.warning("Could not fetch diff for #%d (%d)", number, r.status_code)
            except httpx.HTTPError as e:
                logger.warning("Could not fetch diff for #%d: %s", number, e)

    return PullRequestRecord(
        **_common_fields(pr, number, owner, repo),
        comments=_parse_comments(comments),
        additions=int(pr.get("additions") or 0),
        deletions=int(pr.get("deletions") or 0),
        changed_files=int(pr.get("changed_files") or 0),
        commits=tuple(
            Commit(
                sha=c.get("sha", ""),
                message=(c.get("commit") or {}).get("message", ""),
                author=((c.get("commit") or {}).get("author") or {}).get("name", ""),
            )
            for c in commits
        ),
        diff=diff,
    )


def extract_content(
    owner: str,
    repo: str,
    number: int,
    token: str,
    kind: str | None = None,
    *,
    include_diff: bool = False,
    http: httpx.Client | None = None,
) -> SourceRecord:
    """Fetch a record by number.

    With no ``kind``, try the pull request first and fall back to the issue.
    With a ``kind``, only that path is tried and its failure propagates.
    """
    if kind not in (None, "issue", "pr"):
        raise ValueError(f"Unknown record kind: {kind!r}")

    if kind in (None, "pr"):
        try:
            return extract_pull_request(
                owner, repo, number, token, include_diff=include_diff, http=http
            )
        except RemoteFetchError as e:
            if kind == "pr":
                raise
            logger.debug("Not a pull request (%s), trying issue #%d", e, number)

    return extract_issue(owner, repo, number, token, http=http)


def format_link_comment(video_url: str, kind: str | None = None) -> str:
    """Markdown body of the comment announcing the video."""
    what = {"pr": "pull request", "issue": "issue"}.get(kind or "", "issue/pull request")
    return (
        "🎥 **AI-Generated Video Available!**\n\n"
        f"A video has been automatically generated from this {what}:\n\n"
        f"**Watch here:** {video_url}\n\n"
        "*This video was created using AI (GPT for script generation and OpenAI TTS for narration).*"
    )


def post_video_link(
    owner: str,
    repo: str,
    number: int,
    video_url: str,
    token: str,
    kind: str | None = None,
    *,
    http: httpx.Client | None = None,
) -> None:
    """Post the video URL as a comment on the issue or pull request."""
    url = f"{API_URL}/repos/{owner}/{repo}/issues/{number}/comments"
    with _client(http) as client:
        try:
            r = client.post(
                url,
                headers=_headers(token),
                json={"body": format_link_comment(video_url, kind)},
            )
        except httpx.HTTPError as e:
            raise LinkPostError(f"Failed to post comment to #{number}: {e}") from e
    if r.status_code not in (200, 201):
        raise LinkPostError(f"Failed to post comment to #{number}: {r.status_code} {r.text[:300]}")
    logger.info("Posted video link to %s/%s#%d", owner, repo, number)
