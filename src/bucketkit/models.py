"""
Data models for bucketkit
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, List, Dict


@dataclass(frozen=True)
class Bucket:
    """Represents a bucket."""
    name: str
    creation_date: Optional[datetime] = None


@dataclass(frozen=True)
class BucketFileMetadata:
    """Metadata describing a file stored in a bucket."""
    path: str
    last_modified: Optional[datetime] = None
    storage_class: Optional[str] = None
    expires: Optional[datetime] = None
    content_type: Optional[str] = None
    content_encoding: Optional[str] = None
    size: Optional[int] = None
    # Provider specific values such as the ETag, version id and user metadata
    other: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BucketFile(BucketFileMetadata):
    """A file downloaded in full, metadata plus content."""
    data: bytes = b""


@dataclass(frozen=True)
class FileVersion:
    """One version of a file, or a delete marker, in a versioned bucket."""
    path: str
    version_id: str
    is_latest: bool = False
    last_modified: Optional[datetime] = None
    size: Optional[int] = None
    storage_class: Optional[str] = None
    etag: Optional[str] = None
    is_delete_marker: bool = False


@dataclass
class ResultList:
    """Root of all paginated results. An empty ``next`` means no further pages."""
    next: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return bool(self.next)


@dataclass
class BucketList(ResultList):
    """Buckets returned by a list query."""
    buckets: List[Bucket] = field(default_factory=list)


@dataclass
class BucketFileList(ResultList):
    """Files returned by a list query, plus subfolders for delimiter listings."""
    files: List[BucketFileMetadata] = field(default_factory=list)
    folders: List[str] = field(default_factory=list)


@dataclass
class FileVersionList(ResultList):
    """Versions of a file."""
    versions: List[FileVersion] = field(default_factory=list)


@dataclass
class BucketWebsiteConfiguration:
    """
    Static website settings of a bucket.

    Either ``index_page``/``error_page`` (the bucket serves pages) or
    ``redirect_host_name``/``redirect_protocol`` (every request is redirected
    to another host). The two modes are mutually exclusive.
    """
    index_page: Optional[str] = None
    error_page: Optional[str] = None
    redirect_host_name: Optional[str] = None
    redirect_protocol: Optional[str] = None

    @property
    def is_redirect(self) -> bool:
        return bool(self.redirect_host_name) and not (self.index_page or self.error_page)
