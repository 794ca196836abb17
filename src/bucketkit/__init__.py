"""
bucketkit - provider-agnostic async client for cloud buckets and files
"""

__version__ = "1.0.0"

from ._streams import ByteStream, as_stream, read_all
from .buckets import Buckets
from .error import (
    BucketKitException,
    ConfigurationError,
    ProviderError,
    NotFoundError,
    AccessDeniedError,
    PermanentRedirectError,
    StreamReadError,
)
from .factory import create_buckets, register_provider, supported_providers
from .models import (
    Bucket,
    BucketFile,
    BucketFileList,
    BucketFileMetadata,
    BucketList,
    BucketWebsiteConfiguration,
    FileVersion,
    FileVersionList,
    ResultList,
)
from .options import (
    ACCESS_PRIVATE,
    ACCESS_PUBLIC_READ,
    CreateBucketOptions,
    CreateBucketsOptions,
    GetFileOptions,
    ListFileVersionsOptions,
    ListFilesOptions,
    ListOptions,
    Options,
    PutFileOptions,
    SetEncryptionOptions,
)

__all__ = [
    "Buckets",
    "ByteStream",
    "as_stream",
    "read_all",
    "create_buckets",
    "register_provider",
    "supported_providers",
    "Bucket",
    "BucketFile",
    "BucketFileList",
    "BucketFileMetadata",
    "BucketList",
    "BucketWebsiteConfiguration",
    "FileVersion",
    "FileVersionList",
    "ResultList",
    "ACCESS_PRIVATE",
    "ACCESS_PUBLIC_READ",
    "Options",
    "ListOptions",
    "CreateBucketOptions",
    "CreateBucketsOptions",
    "GetFileOptions",
    "ListFileVersionsOptions",
    "ListFilesOptions",
    "PutFileOptions",
    "SetEncryptionOptions",
    "BucketKitException",
    "ConfigurationError",
    "ProviderError",
    "NotFoundError",
    "AccessDeniedError",
    "PermanentRedirectError",
    "StreamReadError",
]
