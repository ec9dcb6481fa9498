"""GitHub API boundary — the only place that talks to the network."""

from ghafreeze.github.client import GitHubClient
from ghafreeze.github.ratelimit import is_rate_limit_error

__all__ = ["GitHubClient", "is_rate_limit_error"]
