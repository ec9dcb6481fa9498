"""Tests for the GitHub REST client using a recorded-response session."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest
import requests

from ghafreeze.errors import RateLimitError, RefNotFoundError, ResolutionError
from ghafreeze.github import GitHubClient, is_rate_limit_error
from ghafreeze.github.ratelimit import (
    is_rate_limit_message,
    is_rate_limited_response,
    rate_limit_details,
)

API = "https://api.github.com"


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, headers=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.text = text if text is not None else json.dumps(payload or {})

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload


class FakeSession:
    """Maps URLs to responses and records every request."""

    def __init__(self, routes: dict[str, object]):
        self.routes = routes
        self.requests: list[tuple[str, dict[str, str]]] = []

    def get(self, url, headers=None, timeout=None):
        self.requests.append((url, headers or {}))
        route = self.routes.get(url)
        if isinstance(route, Exception):
            raise route
        if route is None:
            return FakeResponse(404, {"message": "Not Found"})
        return route


def _client(routes, token=None) -> tuple[GitHubClient, FakeSession]:
    session = FakeSession(routes)
    return GitHubClient(token, session=session), session


class TestGetTagCommit:
    def test_lightweight_tag(self, shas):
        client, session = _client({
            f"{API}/repos/actions/checkout/git/ref/tags/v4": FakeResponse(
                payload={"object": {"sha": shas.checkout, "type": "commit"}}
            ),
        })
        assert client.get_tag_commit("actions", "checkout", "v4") == shas.checkout
        assert len(session.requests) == 1

    def test_annotated_tag_is_peeled(self, shas):
        tag_object = "f" * 40
        client, session = _client({
            f"{API}/repos/actions/cache/git/ref/tags/v3": FakeResponse(
                payload={"object": {"sha": tag_object, "type": "tag"}}
            ),
            f"{API}/repos/actions/cache/git/tags/{tag_object}": FakeResponse(
                payload={"object": {"sha": shas.cache, "type": "commit"}}
            ),
        })
        assert client.get_tag_commit("actions", "cache", "v3") == shas.cache
        assert [url for url, _ in session.requests][-1].endswith(f"/git/tags/{tag_object}")

    def test_missing_tag(self):
        client, _ = _client({})
        with pytest.raises(RefNotFoundError):
            client.get_tag_commit("owner", "repo", "v1")

    def test_malformed_payload(self):
        client, _ = _client({
            f"{API}/repos/o/r/git/ref/tags/v1": FakeResponse(payload={"object": None}),
        })
        with pytest.raises(ResolutionError, match="unable to resolve tag"):
            client.get_tag_commit("o", "r", "v1")


class TestGetCommit:
    def test_branch(self, shas):
        client, _ = _client({
            f"{API}/repos/owner/repo/commits/main": FakeResponse(payload={"sha": shas.branch}),
        })
        assert client.get_commit("owner", "repo", "main") == shas.branch

    def test_ref_is_url_quoted(self, shas):
        client, session = _client({
            f"{API}/repos/owner/repo/commits/release%2F1.x": FakeResponse(payload={"sha": shas.branch}),
        })
        assert client.get_commit("owner", "repo", "release/1.x") == shas.branch
        assert session.requests[0][0].endswith("/commits/release%2F1.x")

    def test_server_error(self):
        client, _ = _client({
            f"{API}/repos/o/r/commits/main": FakeResponse(500, {"message": "Server Error"}),
        })
        with pytest.raises(ResolutionError, match="500: Server Error") as info:
            client.get_commit("o", "r", "main")
        assert not isinstance(info.value, RateLimitError)

    def test_network_failure(self):
        client, _ = _client({
            f"{API}/repos/o/r/commits/main": requests.ConnectionError("connection refused"),
        })
        with pytest.raises(ResolutionError, match="connection refused"):
            client.get_commit("o", "r", "main")

    def test_network_failure_with_403_in_url_is_not_rate_limited(self):
        url = f"{API}/repos/acme/tools/commits/release-403"
        client, _ = _client({
            url: requests.ConnectionError(f"Max retries exceeded with url: {url}"),
        })
        with pytest.raises(ResolutionError) as info:
            client.get_commit("acme", "tools", "release-403")
        assert not isinstance(info.value, RateLimitError)

    def test_network_failure_mentioning_rate_limit(self):
        client, _ = _client({
            f"{API}/repos/o/r/commits/main": requests.exceptions.RetryError("secondary rate limit"),
        })
        with pytest.raises(RateLimitError):
            client.get_commit("o", "r", "main")


class TestRateLimitHandling:
    def test_403_with_exhausted_budget(self):
        client, _ = _client({
            f"{API}/repos/o/r/commits/main": FakeResponse(
                403,
                {"message": "API rate limit exceeded for 127.0.0.1."},
                headers={
                    "X-RateLimit-Limit": "60",
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": "1700000000",
                },
            ),
        })
        with pytest.raises(RateLimitError) as info:
            client.get_commit("o", "r", "main")
        assert info.value.limit == 60
        assert info.value.remaining == 0
        assert info.value.reset == 1700000000

    def test_429(self):
        client, _ = _client({
            f"{API}/repos/o/r/git/ref/tags/v1": FakeResponse(429, {"message": "slow down"}),
        })
        with pytest.raises(RateLimitError):
            client.get_tag_commit("o", "r", "v1")

    def test_plain_403_counts_as_rate_limit(self):
        client, _ = _client({
            f"{API}/repos/o/r/commits/main": FakeResponse(403, {"message": "Forbidden"}),
        })
        with pytest.raises(RateLimitError):
            client.get_commit("o", "r", "main")

    def test_rate_limit_is_not_a_not_found(self):
        client, _ = _client({
            f"{API}/repos/o/r/git/ref/tags/v1": FakeResponse(429, {"message": "slow down"}),
        })
        with pytest.raises(RateLimitError) as info:
            client.get_tag_commit("o", "r", "v1")
        assert not isinstance(info.value, RefNotFoundError)


class TestHeadersAndTokens:
    def test_unauthenticated(self, shas):
        client, session = _client({
            f"{API}/repos/o/r/commits/main": FakeResponse(payload={"sha": shas.branch}),
        })
        client.get_commit("o", "r", "main")
        headers = session.requests[0][1]
        assert "Authorization" not in headers
        assert headers["Accept"] == "application/vnd.github+json"
        assert client.authenticated is False

    def test_bearer_token(self, shas):
        client, session = _client(
            {f"{API}/repos/o/r/commits/main": FakeResponse(payload={"sha": shas.branch})},
            token="ghp_abc",
        )
        client.get_commit("o", "r", "main")
        assert session.requests[0][1]["Authorization"] == "Bearer ghp_abc"

    def test_with_token_keeps_session(self, shas):
        client, session = _client(
            {f"{API}/repos/o/r/commits/main": FakeResponse(payload={"sha": shas.branch})}
        )
        authed = client.with_token("ghp_new")
        authed.get_commit("o", "r", "main")
        assert authed.token == "ghp_new"
        assert client.token is None
        assert session.requests[0][1]["Authorization"] == "Bearer ghp_new"

    def test_empty_token_is_anonymous(self):
        assert GitHubClient("", session=FakeSession({})).authenticated is False

    def test_custom_api_url(self, shas):
        session = FakeSession({
            "https://ghe.example.com/api/v3/repos/o/r/commits/main": FakeResponse(
                payload={"sha": shas.branch}
            ),
        })
        client = GitHubClient(api_url="https://ghe.example.com/api/v3/", session=session)
        assert client.get_commit("o", "r", "main") == shas.branch


class TestCheckRateLimit:
    def test_parses_core_budget(self):
        client, _ = _client({
            f"{API}/rate_limit": FakeResponse(payload={
                "resources": {"core": {"limit": 5000, "remaining": 4999, "reset": 1700000000}},
            }),
        })
        status = client.check_rate_limit()
        assert status.limit == 5000
        assert status.remaining == 4999
        assert status.reset == datetime.fromtimestamp(1700000000, tz=timezone.utc)
        assert status.exhausted is False


class TestClassification:
    @pytest.mark.parametrize(
        "message, expected",
        [
            ("API rate limit exceeded", True),
            ("Secondary Rate Limit hit", True),
            ("failed with 403", True),
            ("failed with 500", False),
            ("not found", False),
        ],
    )
    def test_messages(self, message: str, expected: bool):
        assert is_rate_limit_message(message) is expected

    def test_error_objects(self):
        assert is_rate_limit_error(RuntimeError("rate limit")) is True
        assert is_rate_limit_error(RuntimeError("boom")) is False
        assert is_rate_limit_error(None) is False
        assert is_rate_limit_error(RuntimeError("GET /repos/o/r/commits/fix-403 failed")) is False

    def test_error_with_attached_response(self):
        forbidden = requests.HTTPError("boom", response=FakeResponse(403, {"message": "Forbidden"}))
        server = requests.HTTPError("boom 403", response=FakeResponse(500, {"message": "oops"}))
        assert is_rate_limit_error(forbidden) is True
        assert is_rate_limit_error(server) is False

    @pytest.mark.parametrize(
        "status, headers, body, expected",
        [
            (429, {}, "", True),
            (403, {"X-RateLimit-Remaining": "0"}, "", True),
            (403, {}, "You have exceeded a secondary rate limit", True),
            (403, {}, "Resource not accessible", False),
            (200, {"X-RateLimit-Remaining": "0"}, "", False),
            (404, {}, "", False),
        ],
    )
    def test_responses(self, status, headers, body, expected):
        assert is_rate_limited_response(status, headers, body) is expected

    def test_details_tolerate_garbage(self):
        details = rate_limit_details({"X-RateLimit-Limit": "60", "X-RateLimit-Remaining": "x"})
        assert details == {"limit": 60, "remaining": None, "reset": None}
