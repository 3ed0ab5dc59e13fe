"""
Exceptions for the Splits SDK.
"""
from typing import Any, Optional


class SplitsError(Exception):
    """Base exception for all Splits SDK errors."""
    pass


class ConfigurationError(SplitsError):
    """Raised when the SDK is missing credentials or is misconfigured."""
    pass


class InvalidAddressError(ConfigurationError, ValueError):
    """Raised when an address is not 20 bytes of hex."""
    pass


class UnsupportedChainError(ConfigurationError):
    """Raised when a chain has no known Splits deployment."""
    pass


class SplitConfigError(SplitsError):
    """Raised when a split configuration fails validation."""
    pass


class BundlerError(SplitsError):
    """Raised when the bundler or paymaster returns an error response."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        data: Any = None,
        method: Optional[str] = None,
    ):
        self.code = code
        self.data = data
        self.method = method
        super().__init__(message)


class ResponseDecodingError(BundlerError):
    """Raised when an upstream response does not match the expected shape."""
    pass


class CreationError(SplitsError):
    """Raised when a split contract could not be created."""
    pass


class DistributionError(SplitsError):
    """Raised when a split distribution fails."""
    pass
