from __future__ import annotations


class JobFeedError(Exception):
    """Base class for pipeline errors."""


class QuotaExceeded(JobFeedError):
    """The request budget refused another provider call."""

    def __init__(self, daily: int, hourly: int) -> None:
        super().__init__(f"request budget exhausted (daily={daily}, hourly={hourly})")
        self.daily = daily
        self.hourly = hourly


class ProviderError(JobFeedError):
    """A provider call failed (network, HTTP status or payload parsing)."""

    def __init__(self, provider: str, message: str, *, status: int | None = None) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status = status


class RateLimited(ProviderError):
    """The provider answered with a rate-limit response (HTTP 429 or equivalent)."""

    def __init__(self, provider: str, *, retry_after: float | None = None) -> None:
        super().__init__(provider, "rate limited", status=429)
        self.retry_after = retry_after


class StoreUnavailable(JobFeedError):
    """The persistent job/profile store cannot be reached."""


class ProfileNotFound(JobFeedError):
    def __init__(self, subscriber_id: int) -> None:
        super().__init__(f"subscriber {subscriber_id} not found")
        self.subscriber_id = subscriber_id


__all__ = [
    "JobFeedError",
    "QuotaExceeded",
    "ProviderError",
    "RateLimited",
    "StoreUnavailable",
    "ProfileNotFound",
]
