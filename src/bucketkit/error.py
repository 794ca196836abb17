"""
Exception classes for bucketkit
"""

from typing import Optional


class BucketKitException(Exception):
    """
    Base exception for all bucketkit errors.
    """

    def __init__(self, message: str, status_code: int = None, error_code: str = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class ConfigurationError(BucketKitException, ValueError):
    """Raised for invalid options or an unknown provider, before any network call."""

    def __init__(self, message: str):
        super().__init__(message, error_code="InvalidConfiguration")


class ProviderError(BucketKitException):
    """Raised when the storage service reports a failure."""

    def __init__(
        self,
        message: str,
        status_code: int = None,
        error_code: str = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(message, status_code, error_code)
        self.request_id = request_id

    def __str__(self) -> str:
        text = super().__str__()
        if self.error_code:
            return f"{self.error_code}: {text}"
        return text


class NotFoundError(ProviderError):
    """Thrown when a bucket, object or bucket sub-resource does not exist."""


class AccessDeniedError(ProviderError):
    """Thrown when access is denied."""


class PermanentRedirectError(ProviderError):
    """Thrown when a request was sent to the wrong regional endpoint."""

    def __init__(
        self,
        message: str,
        status_code: int = 301,
        error_code: str = "PermanentRedirect",
        request_id: Optional[str] = None,
        endpoint: Optional[str] = None,
        region: Optional[str] = None,
    ):
        super().__init__(message, status_code, error_code, request_id)
        self.endpoint = endpoint
        self.region = region


class StreamReadError(ProviderError):
    """Thrown when a response or upload body cannot be read completely."""

    def __init__(self, message: str):
        super().__init__(message, error_code="StreamReadError")
