"""Common infrastructure utilities."""

from __future__ import annotations

from .rate_limiter import SlidingWindowRateLimiter

__all__ = ["SlidingWindowRateLimiter"]
