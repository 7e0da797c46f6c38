"""Typed exception hierarchy for aggregator errors.

Every failed call to the open-banking aggregator surfaces as one of these,
so callers can tell credential problems from rate limits, upstream outages
and missing resources without parsing messages.
"""


class AggregatorError(Exception):
    """Base exception for all aggregator-related errors.

    Carries the upstream HTTP status (when there was a response) and the
    provider name so callers can report which integration failed.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        provider_name: str = "GoCardless",
    ):
        self.status_code = status_code
        self.provider_name = provider_name
        super().__init__(message)

    @property
    def retriable(self) -> bool:
        return False


class AuthenticationFailed(AggregatorError):
    """Credentials rejected, or the token endpoint failed (HTTP 401/403)."""

    pass


class RateLimitExceeded(AggregatorError):
    """Per-account daily budget exhausted, locally or upstream (HTTP 429)."""

    def __init__(
        self,
        message: str,
        account_id: str | None = None,
        status_code: int | None = 429,
        provider_name: str = "GoCardless",
    ):
        self.account_id = account_id
        super().__init__(message, status_code=status_code, provider_name=provider_name)


class AggregatorUnavailable(AggregatorError):
    """Upstream 5xx, timeout or connection failure. Retriable."""

    @property
    def retriable(self) -> bool:
        return True


class AggregatorNotFound(AggregatorError):
    """The requested requisition/account does not exist upstream (HTTP 404)."""

    pass


class InvalidCountryCode(AggregatorError, ValueError):
    """Country code is not exactly two letters."""

    def __init__(self, country_code: str):
        self.country_code = country_code
        super().__init__(
            f"Invalid country code {country_code!r}. Must be 2 letters.",
            status_code=None,
        )
