"""
Rate limit schemas.

Dependencies: pydantic
System role: Quota decisions and admin stats
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RateLimitDecision(BaseModel):
    """
    Outcome of a quota check.

    Attributes:
        allowed: Whether the request may proceed
        limit: Limit of the counter that decided (the tightest one when allowed)
        remaining: Requests left on that counter after this one
        reset_at: Next window boundary for that counter
        reason: "daily" or "session" when denied
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: datetime | None = None
    reason: str | None = None

    def headers(self) -> dict[str, str]:
        """HTTP quota headers, Retry-After included only on denial."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(max(0, self.remaining)),
        }
        if self.reset_at is not None:
            headers["X-RateLimit-Reset"] = str(int(self.reset_at.timestamp()))
            if not self.allowed:
                now = datetime.now(self.reset_at.tzinfo)
                retry_after = max(1, int((self.reset_at - now).total_seconds()))
                headers["Retry-After"] = str(retry_after)
        return headers


class RateLimitStats(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    workspace_id: str
    unique_visitors: int
    total_requests: int
    window_hours: int = 24
