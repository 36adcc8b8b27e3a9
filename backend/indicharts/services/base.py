"""
Base Service Interface

Services that take a validated request and produce a result inherit from
this base class. Also defines the service exception hierarchy.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseService(ABC, Generic[InputT, OutputT]):
    """
    Base class for request/response services.

    Each service:
    - Has a defined input type
    - Has a defined output type
    - Can validate its inputs
    - Can check its health
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Service name for logging."""
        pass

    @abstractmethod
    async def execute(self, input_data: InputT) -> OutputT:
        """
        Execute the service's main function.

        Args:
            input_data: Validated input conforming to InputT schema

        Returns:
            Output conforming to OutputT schema

        Raises:
            ServiceError: If execution fails
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if service is healthy and can process requests."""
        pass

    async def validate_input(self, input_data: InputT) -> InputT:
        """
        Validate input data.
        Default implementation returns input as-is (Pydantic handles validation).
        Override for custom validation logic.
        """
        return input_data


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, service_name: str, message: str, details: dict = None):
        self.service_name = service_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{service_name}] {message}")


class ValidationError(ServiceError):
    """Input validation error."""
    pass


class ExternalAPIError(ServiceError):
    """External API call failed."""
    pass


class TransientUpstreamError(ExternalAPIError):
    """Upstream failure worth retrying (server error, dropped connection)."""
    pass


class RateLimitError(TransientUpstreamError):
    """Rate limit exceeded."""
    pass


class PermanentUpstreamError(ExternalAPIError):
    """Upstream rejected the request (unknown symbol, bad parameters)."""
    pass


class WatchlistFullError(ServiceError):
    """Watchlist already holds the maximum number of symbols."""
    pass


class DuplicateSymbolError(ServiceError):
    """Symbol is already in the watchlist."""
    pass


# Substrings in upstream failure text that mark a retryable condition
RATE_LIMIT_MARKERS = ("rate limit", "too many requests", "429")
TRANSIENT_MARKERS = (
    "server error",
    "failed to fetch",
    "error getting data",
    "timed out",
    "500",
    "502",
    "503",
    "504",
)


def classify_upstream_message(service_name: str, message: str, details: dict = None) -> ExternalAPIError:
    """Build the matching upstream error for a failure reason text."""
    text = message.lower()
    if any(marker in text for marker in RATE_LIMIT_MARKERS):
        return RateLimitError(service_name, message, details)
    if any(marker in text for marker in TRANSIENT_MARKERS):
        return TransientUpstreamError(service_name, message, details)
    return PermanentUpstreamError(service_name, message, details)
