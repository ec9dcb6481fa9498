"""API budget model reported by the resolution capability."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class RateLimitStatus(BaseModel):
    """Core API budget: requests allowed, left, and when the window resets."""

    model_config = ConfigDict(frozen=True)

    limit: int
    remaining: int
    reset: datetime | None = None

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0
