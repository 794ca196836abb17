"""
Client configuration for bucketkit.

Values come from ``CreateBucketsOptions`` first, then from the standard AWS
environment variables.
"""

import os
from dataclasses import dataclass, replace
from typing import Optional
from urllib.parse import urlparse

from .error import ConfigurationError
from .options import CreateBucketsOptions, DEFAULT_REGION

_INVALID = (None, "", "None")


def _first(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value not in _INVALID:
            return value
    return None


@dataclass(frozen=True)
class S3ClientConfig:
    """Settings shared by every regional S3 client of one Buckets instance."""
    region: str = DEFAULT_REGION
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    # S3-compatible endpoint; switches to path-style addressing
    endpoint_url: Optional[str] = None
    request_timeout: float = 30
    max_attempts: int = 3

    @classmethod
    def from_options(cls, options: Optional[CreateBucketsOptions] = None) -> "S3ClientConfig":
        """
        Build a config from Buckets options with environment fallbacks.

        Recognized ``provider_options`` keys: ``access_key_id``,
        ``secret_access_key``, ``session_token``, ``endpoint_url``,
        ``request_timeout``, ``max_attempts``.

        Raises:
            ConfigurationError: If no credentials can be found or a value is invalid.
        """
        options = options or CreateBucketsOptions()
        extra = options.provider_options or {}

        access_key_id = _first(extra.get("access_key_id"), os.getenv("AWS_ACCESS_KEY_ID"))
        secret_access_key = _first(extra.get("secret_access_key"), os.getenv("AWS_SECRET_ACCESS_KEY"))
        if not access_key_id or not secret_access_key:
            raise ConfigurationError(
                "AWS credentials required: set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY, "
                "or pass access_key_id and secret_access_key in provider_options."
            )

        endpoint_url = _first(
            extra.get("endpoint_url"),
            os.getenv("AWS_ENDPOINT_URL_S3"),
            os.getenv("AWS_ENDPOINT_URL"),
        )
        if endpoint_url:
            parsed = urlparse(endpoint_url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ConfigurationError(f"Invalid endpoint_url '{endpoint_url}'.")
            endpoint_url = endpoint_url.rstrip("/")

        try:
            request_timeout = float(extra.get("request_timeout", cls.request_timeout))
            max_attempts = int(extra.get("max_attempts", cls.max_attempts))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid client limits: {exc}") from exc
        if request_timeout <= 0 or max_attempts < 1:
            raise ConfigurationError("request_timeout must be positive and max_attempts at least 1.")

        return cls(
            region=options.region or DEFAULT_REGION,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=_first(extra.get("session_token"), os.getenv("AWS_SESSION_TOKEN")),
            endpoint_url=endpoint_url,
            request_timeout=request_timeout,
            max_attempts=max_attempts,
        )

    def for_region(self, region: str) -> "S3ClientConfig":
        """Same settings bound to another region."""
        return replace(self, region=region)
