"""Factory for creating Buckets instances by provider name."""

import logging
from typing import Callable, Dict, Optional

from .buckets import Buckets
from .error import ConfigurationError
from .options import CreateBucketsOptions

logger = logging.getLogger(__name__)

BucketsConstructor = Callable[..., Buckets]


def _create_aws(options: Optional[CreateBucketsOptions] = None, **kwargs) -> Buckets:
    from .providers.aws import AWSBuckets

    return AWSBuckets(options, **kwargs)


_PROVIDERS: Dict[str, BucketsConstructor] = {
    "aws": _create_aws,
}


def register_provider(name: str, constructor: BucketsConstructor) -> None:
    """Register a constructor under a provider name, replacing any existing one."""
    if not name:
        raise ConfigurationError("Provider name must not be empty.")
    _PROVIDERS[name.lower()] = constructor


def supported_providers() -> list[str]:
    return sorted(_PROVIDERS)


def create_buckets(
    provider: str,
    options: Optional[CreateBucketsOptions] = None,
    **kwargs,
) -> Buckets:
    """Create the Buckets implementation for a cloud provider.

    Args:
        provider: Provider name, e.g. "aws". Case-insensitive.
        options: Provider construction options (region, credentials).
        **kwargs: Passed through to the provider constructor.

    Raises:
        ConfigurationError: If the provider is unknown or its options are invalid.
    """
    constructor = _PROVIDERS.get((provider or "").lower())
    if constructor is None:
        raise ConfigurationError(
            f"Unsupported storage provider: {provider!r}. Supported: {', '.join(supported_providers())}"
        )
    logger.debug("[bucketkit][Factory] provider=%s", provider)
    return constructor(options, **kwargs)
