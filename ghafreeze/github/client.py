"""GitHub REST client — the resolution capability behind VersionResolver.

Built on ``requests``. Exposes exactly what the pipeline needs:

- ``get_tag_commit``   : tag name -> commit SHA (annotated tags are peeled)
- ``get_commit``       : branch / commit-ish -> commit SHA
- ``check_rate_limit`` : current core API budget
- ``with_token``       : a new client carrying a different credential

HTTP failures are translated here: 404 -> RefNotFoundError, exhausted
budget -> RateLimitError, anything else -> ResolutionError.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import requests

from ghafreeze.errors import RateLimitError, RefNotFoundError, ResolutionError
from ghafreeze.github.ratelimit import (
    is_rate_limit_error,
    is_rate_limit_message,
    is_rate_limited_response,
    rate_limit_details,
)
from ghafreeze.models.ratelimit import RateLimitStatus

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"


class GitHubClient:
    """Thin GitHub API client.

    Parameters
    ----------
    token:
        Personal access token. Unauthenticated when None.
    api_url:
        API root, e.g. ``https://api.github.com``.
    session:
        A ``requests.Session`` (or compatible object). Created if omitted.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        user_agent: str = "gha-freeze",
        session: Any = None,
    ) -> None:
        self._token = token or None
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._user_agent = user_agent
        self._session = session if session is not None else requests.Session()

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def authenticated(self) -> bool:
        return self._token is not None

    def with_token(self, token: str | None) -> GitHubClient:
        """Return a client identical to this one but using ``token``."""
        return GitHubClient(
            token,
            api_url=self._api_url,
            timeout=self._timeout,
            user_agent=self._user_agent,
            session=self._session,
        )

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": self._user_agent,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _get(self, path: str) -> Any:
        url = f"{self._api_url}{path}"
        logger.debug("GET %s", url)
        try:
            response = self._session.get(url, headers=self._headers(), timeout=self._timeout)
        except requests.RequestException as exc:
            if is_rate_limit_error(exc):
                raise RateLimitError(str(exc)) from exc
            raise ResolutionError(f"request to {url} failed: {exc}") from exc

        status = response.status_code
        if status == 200:
            try:
                return response.json()
            except ValueError as exc:
                raise ResolutionError(f"invalid JSON from {url}: {exc}") from exc

        body = response.text or ""
        headers = response.headers or {}
        if is_rate_limited_response(status, headers, body):
            details = rate_limit_details(headers)
            raise RateLimitError(
                f"GitHub API rate limit exceeded ({status}): "
                f"{details['remaining']}/{details['limit']} remaining",
                **details,
            )
        if status == 404:
            raise RefNotFoundError(f"not found: {url}")

        detail = f"{status}: {_error_message(body)}"
        if is_rate_limit_message(detail):
            raise RateLimitError(f"GET {url} failed with {detail}", **rate_limit_details(headers))
        raise ResolutionError(f"GET {url} failed with {detail}")

    # ------------------------------------------------------------------
    # Resolution capability
    # ------------------------------------------------------------------

    def get_tag_commit(self, owner: str, repo: str, tag: str) -> str:
        """Resolve tag ``tag`` to the commit it points at."""
        data = self._get(f"/repos/{owner}/{repo}/git/ref/tags/{quote(tag, safe='')}")
        obj = data.get("object") if isinstance(data, dict) else None
        if not isinstance(obj, dict) or not isinstance(obj.get("sha"), str):
            raise ResolutionError(f"unable to resolve tag {owner}/{repo}@{tag}")

        sha = obj["sha"]
        if obj.get("type") == "tag":
            # Annotated tag: the ref points at a tag object, peel it.
            tag_obj = self._get(f"/repos/{owner}/{repo}/git/tags/{sha}")
            target = tag_obj.get("object") if isinstance(tag_obj, dict) else None
            if not isinstance(target, dict) or not isinstance(target.get("sha"), str):
                raise ResolutionError(f"unable to peel annotated tag {owner}/{repo}@{tag}")
            sha = target["sha"]
        return sha

    def get_commit(self, owner: str, repo: str, ref: str) -> str:
        """Resolve a branch name or commit-ish to a full commit SHA."""
        data = self._get(f"/repos/{owner}/{repo}/commits/{quote(ref, safe='')}")
        sha = data.get("sha") if isinstance(data, dict) else None
        if not isinstance(sha, str):
            raise ResolutionError(f"unable to resolve reference {owner}/{repo}@{ref}")
        return sha

    def check_rate_limit(self) -> RateLimitStatus:
        data = self._get("/rate_limit")
        core = data.get("resources", {}).get("core", {}) if isinstance(data, dict) else {}
        reset = core.get("reset")
        return RateLimitStatus(
            limit=int(core.get("limit", 0)),
            remaining=int(core.get("remaining", 0)),
            reset=datetime.fromtimestamp(reset, tz=timezone.utc) if reset else None,
        )


def _error_message(body: str) -> str:
    """Best-effort extraction of GitHub's ``message`` field."""
    try:
        data = json.loads(body)
    except ValueError:
        return body[:200]
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        return data["message"]
    return body[:200]
