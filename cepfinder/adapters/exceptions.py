"""Custom exceptions for provider adapters.

These never leave an adapter's lookup(): each one carries the FailureReason
it is reported as once converted into a ProviderFailure.
"""

from cepfinder.domain.models import FailureReason


class AdapterError(Exception):
    """Base exception for all adapter errors.

    Catching this exception will catch any adapter-related error that should
    be turned into a failure outcome for the race.
    """

    reason = FailureReason.UNEXPECTED


class AdapterTransportError(AdapterError):
    """The request could not be delivered (connection refused, DNS failure)."""

    reason = FailureReason.TRANSPORT

    def __init__(self, message: str, url: str) -> None:
        """Initialize transport error with URL.

        Args:
            message: Human-readable error message
            url: URL that could not be reached
        """
        super().__init__(message)
        self.url = url


class AdapterTimeoutError(AdapterTransportError):
    """HTTP request timed out.

    Indicates the per-request timeout of a single adapter fired. This is a
    failure of that adapter only, never a race-level timeout.
    """

    reason = FailureReason.TIMEOUT


class AdapterHTTPError(AdapterError):
    """The provider answered with a non-success HTTP status."""

    reason = FailureReason.HTTP_STATUS

    def __init__(self, message: str, status_code: int, url: str) -> None:
        """Initialize HTTP error with status code and URL.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (e.g., 404, 500)
            url: URL that failed
        """
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class AdapterBodyReadError(AdapterError):
    """The response stream could not be fully read."""

    reason = FailureReason.BODY_READ


class AdapterDecodeError(AdapterError):
    """Response body is not valid JSON or does not match the provider schema."""

    reason = FailureReason.DECODE


class AdapterNotFoundError(AdapterError):
    """The provider explicitly reported that the postal code does not exist."""

    reason = FailureReason.NOT_FOUND


class AdapterCancelledError(AdapterError):
    """The race was decided and asked this adapter to stop."""

    reason = FailureReason.CANCELLED


class AdapterConfigurationError(AdapterError):
    """Invalid adapter configuration.

    Raised at construction time (unknown provider, bad timeout), so it never
    shows up as a race outcome.
    """

    pass
