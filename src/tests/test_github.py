"""
Tests for GitHub extraction and link posting.
"""

import json

import httpx
import pytest

from issuecast.exceptions import LinkPostError, RemoteFetchError
from issuecast.github import extract_content, post_video_link

ISSUE = {
    "title": "Crash on save",
    "body": "Steps to reproduce...",
    "user": {"login": "octocat"},
    "created_at": "2024-05-01T10:00:00Z",
    "labels": [{"name": "bug"}],
    "html_url": "https://github.com/acme/web/issues/5",
}

PR = dict(ISSUE, title="Fix crash", additions=10, deletions=2, changed_files=1)

COMMENTS = [
    {"user": {"login": "alice"}, "body": "Same here", "created_at": "2024-05-01T11:00:00Z"},
    {"user": {"login": "bob"}, "body": None, "created_at": "2024-05-01T12:00:00Z"},
]

COMMITS = [{"sha": "abc", "commit": {"message": "Fix null check", "author": {"name": "Octo"}}}]


def _client(routes, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        got_accept = request.headers.get("Accept")
        for (method, path, accept), response in routes.items():
            if method == request.method and path == request.url.path and accept in (None, got_accept):
                return response()
        return httpx.Response(404, json={"message": "Not Found"})

    return httpx.Client(transport=httpx.MockTransport(handler))


def test_issue_fallback_when_not_a_pr():
    """Without a kind, a 404 on the PR path falls back to the issue."""
    routes = {
        ("GET", "/repos/acme/web/issues/5", None): lambda: httpx.Response(200, json=ISSUE),
        ("GET", "/repos/acme/web/issues/5/comments", None): lambda: httpx.Response(200, json=COMMENTS),
    }
    with _client(routes) as http:
        record = extract_content("acme", "web", 5, "tok", http=http)

    assert record.kind == "issue"
    assert record.title == "Crash on save"
    assert record.labels == ("bug",)
    assert [c.author for c in record.comments] == ["alice", "bob"]
    assert record.comments[1].body == ""
    assert record.metadata.repository == "acme/web"


def test_pull_request_with_diff():
    routes = {
        ("GET", "/repos/acme/web/pulls/5", "application/vnd.github.v3.diff"): lambda: httpx.Response(
            200, text="diff --git a/x b/x"
        ),
        ("GET", "/repos/acme/web/pulls/5", "application/vnd.github.v3+json"): lambda: httpx.Response(
            200, json=PR
        ),
        ("GET", "/repos/acme/web/pulls/5/commits", None): lambda: httpx.Response(200, json=COMMITS),
    }
    seen = []
    with _client(routes, seen) as http:
        record = extract_content("acme", "web", 5, "tok", include_diff=True, http=http)

    assert record.kind == "pr"
    assert (record.additions, record.deletions, record.changed_files) == (10, 2, 1)
    assert record.commits[0].message == "Fix null check"
    assert record.commits[0].author == "Octo"
    assert record.comments == ()  # comments 404 degrades to empty
    assert record.diff == "diff --git a/x b/x"
    assert seen[0].headers["Authorization"] == "Bearer tok"


def test_explicit_kind_propagates_failure():
    routes = {("GET", "/repos/acme/web/issues/5", None): lambda: httpx.Response(200, json=ISSUE)}
    with _client(routes) as http:
        with pytest.raises(RemoteFetchError):
            extract_content("acme", "web", 5, "tok", "pr", http=http)


def test_primary_fetch_failure():
    with _client({}) as http:
        with pytest.raises(RemoteFetchError, match="404"):
            extract_content("acme", "web", 99, "tok", "issue", http=http)
    with pytest.raises(ValueError):
        extract_content("acme", "web", 5, "tok", "discussion")


def test_non_json_sub_fetch_degrades_to_empty():
    """An HTML page with status 200 on comments or commits leaves them empty."""
    html = lambda: httpx.Response(200, text="<html>rate limited</html>")
    routes = {
        ("GET", "/repos/acme/web/pulls/5", None): lambda: httpx.Response(200, json=PR),
        ("GET", "/repos/acme/web/issues/5/comments", None): html,
        ("GET", "/repos/acme/web/pulls/5/commits", None): html,
    }
    with _client(routes) as http:
        record = extract_content("acme", "web", 5, "tok", "pr", http=http)

    assert record.title == "Fix crash"
    assert record.comments == ()
    assert record.commits == ()


def test_non_json_primary_fetch_falls_back_to_issue():
    """A non-JSON pull request body is a fetch error, so the issue path is tried."""
    routes = {
        ("GET", "/repos/acme/web/pulls/5", None): lambda: httpx.Response(200, text="<html>proxy</html>"),
        ("GET", "/repos/acme/web/issues/5", None): lambda: httpx.Response(200, json=ISSUE),
        ("GET", "/repos/acme/web/issues/5/comments", None): lambda: httpx.Response(200, json=COMMENTS),
    }
    with _client(routes) as http:
        record = extract_content("acme", "web", 5, "tok", http=http)
    assert record.kind == "issue"

    with _client({("GET", "/repos/acme/web/issues/5", None): lambda: httpx.Response(200, text="oops")}) as http:
        with pytest.raises(RemoteFetchError, match="not JSON"):
            extract_content("acme", "web", 5, "tok", "issue", http=http)


def test_post_video_link():
    seen = []
    routes = {("POST", "/repos/acme/web/issues/5/comments", None): lambda: httpx.Response(201, json={})}
    with _client(routes, seen) as http:
        post_video_link("acme", "web", 5, "https://youtu.be/x", "tok", "pr", http=http)

    body = json.loads(seen[0].content)["body"]
    assert "https://youtu.be/x" in body
    assert "pull request" in body


def test_post_video_link_failure():
    routes = {("POST", "/repos/acme/web/issues/5/comments", None): lambda: httpx.Response(403, text="nope")}
    with _client(routes) as http:
        with pytest.raises(LinkPostError):
            post_video_link("acme", "web", 5, "https://youtu.be/x", "tok", http=http)
