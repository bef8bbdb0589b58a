"""
Embed-mode quota enforcement.
"""

from workspace_chat.core.rate_limit.rate_limiter import RateLimiter, hash_visitor

__all__ = ["RateLimiter", "hash_visitor"]
