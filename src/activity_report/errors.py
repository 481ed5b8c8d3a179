"""Custom exception types for the GitHub activity report."""


class ActivityReportError(Exception):
    """Base exception for all recoverable activity report errors."""


class ConfigError(ActivityReportError):
    """Raised when runtime configuration values are missing or invalid."""


class AuthenticationError(ConfigError):
    """Raised when GitHub API credentials are unavailable."""


class FetchError(ActivityReportError):
    """Raised when a GitHub API request fails or returns an unexpected response."""


class PermissionDeniedError(FetchError):
    """Raised when the token is not allowed to read a repository or organization."""


class AggregationError(ActivityReportError):
    """Raised when an intermediate count fails validation before it is combined."""


class DomainError(ActivityReportError):
    """Raised when a progress computation receives an out-of-domain value."""


class DeliveryError(ActivityReportError):
    """Raised when the webhook notification is not accepted."""
