"""
Option bundles accepted by Buckets operations
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

ACCESS_PRIVATE = "private"
ACCESS_PUBLIC_READ = "public-read"

DEFAULT_REGION = "us-east-1"
NO_LIMIT = -1


@dataclass(frozen=True)
class Options:
    """Base of all option bundles; ``provider_options`` passes provider-specific settings."""
    provider_options: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ListOptions(Options):
    """Options for any operation returning a paginated list."""
    # Continuation token of the page to start from
    offset: Optional[str] = None
    limit: int = NO_LIMIT


@dataclass(frozen=True)
class CreateBucketsOptions(Options):
    """Options used to build a Buckets instance."""
    region: str = DEFAULT_REGION


@dataclass(frozen=True)
class CreateBucketOptions(Options):
    """Options applied when a bucket is created."""
    # Bucket region if different than the default one
    location: Optional[str] = None
    access: str = ACCESS_PRIVATE


@dataclass(frozen=True)
class PutFileOptions(Options):
    """Options applied when a file is uploaded."""
    content_type: Optional[str] = None
    redirect: Optional[str] = None
    access: str = ACCESS_PRIVATE
    storage_class: Optional[str] = None
    expires: Optional[datetime] = None


@dataclass(frozen=True)
class ListFilesOptions(ListOptions):
    """
    Options for listing files.

    ``recursive`` lists every key regardless of depth; otherwise only the
    top level of ``folder`` is listed and subfolders are reported separately.
    """
    recursive: bool = False
    folder: Optional[str] = None


@dataclass(frozen=True)
class ListFileVersionsOptions(ListOptions):
    """Options for listing file versions."""


@dataclass(frozen=True)
class SetEncryptionOptions(Options):
    """Default encryption settings of a bucket."""
    algorithm: Optional[str] = None
    # Key ID or ARN in the provider's key management service
    key_id: Optional[str] = None


@dataclass(frozen=True)
class GetFileOptions(Options):
    """Options applied when a file is downloaded."""
    version_id: Optional[str] = None
