"""Provider-independent bucket and file operations."""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterable, BinaryIO, Optional, Union

from ._streams import ByteStream
from .models import (
    BucketFile,
    BucketFileList,
    BucketFileMetadata,
    BucketList,
    BucketWebsiteConfiguration,
    FileVersionList,
)
from .options import (
    CreateBucketOptions,
    GetFileOptions,
    ListFilesOptions,
    ListFileVersionsOptions,
    ListOptions,
    PutFileOptions,
    SetEncryptionOptions,
)

FileBody = Union[bytes, bytearray, memoryview, BinaryIO, AsyncIterable[bytes]]


class Buckets(ABC):
    """
    Operations every storage provider implements.

    All methods are coroutines and raise ``ProviderError`` (or a subclass)
    when the provider reports a failure, and ``ConfigurationError`` for
    invalid options before anything is sent.
    """

    # Buckets

    @abstractmethod
    async def list_buckets(self, options: Optional[ListOptions] = None) -> BucketList:
        """List buckets visible to the caller."""

    @abstractmethod
    async def create_bucket(self, bucket_name: str, options: Optional[CreateBucketOptions] = None) -> None:
        """Create a bucket."""

    @abstractmethod
    async def delete_bucket(self, bucket_name: str) -> None:
        """Delete an empty bucket."""

    @abstractmethod
    async def bucket_exists(self, bucket_name: str) -> bool:
        """Return False when the bucket does not exist."""

    # Website hosting

    @abstractmethod
    async def get_website_configuration(self, bucket_name: str) -> BucketWebsiteConfiguration:
        """Return the website settings of a bucket."""

    @abstractmethod
    async def set_website_configuration(
        self, bucket_name: str, config: BucketWebsiteConfiguration
    ) -> BucketWebsiteConfiguration:
        """Write website settings; returns the settings written."""

    @abstractmethod
    async def get_website_domain(self, bucket_name: str) -> str:
        """Return the host name the bucket's website is served from."""

    # Access policy

    @abstractmethod
    async def get_policy(self, bucket_name: str) -> Optional[Any]:
        """Return the bucket policy as a JSON-compatible object."""

    @abstractmethod
    async def set_policy(self, bucket_name: str, policy: Any) -> None:
        """Replace the bucket policy."""

    @abstractmethod
    async def delete_policy(self, bucket_name: str) -> None:
        """Remove the bucket policy."""

    # Versioning

    @abstractmethod
    async def set_versioning(self, bucket_name: str, flag: bool) -> None:
        """Turn file versioning on or off."""

    @abstractmethod
    async def get_versioning(self, bucket_name: str) -> bool:
        """Return True if file versioning is enabled."""

    @abstractmethod
    async def list_file_versions(
        self, bucket_name: str, file_path: str, options: Optional[ListFileVersionsOptions] = None
    ) -> FileVersionList:
        """Return a page of versions of a file, or of every file under a folder path ending in '/'."""

    # Default encryption

    @abstractmethod
    async def set_encryption(
        self, bucket_name: str, flag: bool, options: Optional[SetEncryptionOptions] = None
    ) -> None:
        """Turn default server-side encryption on or off."""

    @abstractmethod
    async def get_encryption(self, bucket_name: str) -> Optional[SetEncryptionOptions]:
        """Return the default encryption settings, or None when there are none."""

    # Files

    @abstractmethod
    async def list_files(self, bucket_name: str, options: Optional[ListFilesOptions] = None) -> BucketFileList:
        """Return a page of files in a bucket or folder."""

    @abstractmethod
    async def put_file(
        self, bucket_name: str, file_path: str, file: FileBody, options: Optional[PutFileOptions] = None
    ) -> None:
        """Upload a file from a buffer or a stream."""

    @abstractmethod
    async def get_file_as_buffer(
        self, bucket_name: str, file_path: str, options: Optional[GetFileOptions] = None
    ) -> BucketFile:
        """Download a whole file into memory."""

    @abstractmethod
    async def get_file_as_stream(
        self, bucket_name: str, file_path: str, options: Optional[GetFileOptions] = None
    ) -> ByteStream:
        """Open a file for streaming download."""

    @abstractmethod
    async def delete_file(self, bucket_name: str, file_path: str) -> None:
        """Delete a file."""

    @abstractmethod
    async def get_file_metadata(self, bucket_name: str, file_path: str) -> Optional[BucketFileMetadata]:
        """Return file metadata, or None when the file does not exist."""

    # Lifecycle

    async def close(self) -> None:
        """Release network resources."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
