"""
AWSBuckets - Buckets implementation for Amazon S3
"""

import base64
import binascii
import json
import logging
from datetime import datetime, UTC
from email.utils import format_datetime, parsedate_to_datetime
from typing import Any, Dict, Optional

import httpx

from .. import _xml
from .._streams import ByteStream, as_stream, read_all
from ..buckets import Buckets, FileBody
from ..client import S3Client, S3Request
from ..config import S3ClientConfig
from ..error import (
    ConfigurationError,
    NotFoundError,
    PermanentRedirectError,
    ProviderError,
    StreamReadError,
)
from ..models import (
    Bucket,
    BucketFile,
    BucketFileList,
    BucketFileMetadata,
    BucketList,
    BucketWebsiteConfiguration,
    FileVersion,
    FileVersionList,
)
from ..options import (
    ACCESS_PRIVATE,
    ACCESS_PUBLIC_READ,
    DEFAULT_REGION,
    CreateBucketOptions,
    CreateBucketsOptions,
    GetFileOptions,
    ListFilesOptions,
    ListFileVersionsOptions,
    ListOptions,
    PutFileOptions,
    SetEncryptionOptions,
)

BUCKET_NAME_PLACEHOLDER = "__bucketName__"

PUBLIC_READ_POLICY = """{
  "Version": "2012-10-17",
  "Statement": [
    {
      "Sid": "PublicRead",
      "Effect": "Allow",
      "Principal": "*",
      "Action": ["s3:GetObject", "s3:GetObjectVersion"],
      "Resource": ["arn:aws:s3:::__bucketName__/*"]
    }
  ]
}"""

# Regions whose website endpoint is s3-website-<region> rather than s3-website.<region>
DASH_REGIONS = frozenset({
    "us-east-1",
    "us-west-1",
    "us-west-2",
    "ap-southeast-1",
    "ap-southeast-2",
    "ap-northeast-1",
    "sa-east-1",
    "eu-west-1",
})

SSE_S3 = "AES256"
SSE_KMS = "aws:kms"
ENCRYPTION_NOT_FOUND = "ServerSideEncryptionConfigurationNotFoundError"

_AMAZONAWS_SUFFIX = ".amazonaws.com"
_USER_METADATA_PREFIX = "x-amz-meta-"


def region_from_endpoint(endpoint: Optional[str]) -> Optional[str]:
    """
    Extract the region from an S3 endpoint host name.

    ``bucket.s3.eu-west-1.amazonaws.com`` and the legacy
    ``bucket.s3-eu-west-1.amazonaws.com`` both give ``eu-west-1``; the global
    ``s3.amazonaws.com`` gives ``us-east-1``.
    """
    if not endpoint:
        return None
    host = endpoint.split("://")[-1].split("/")[0].split(":")[0].rstrip(".").lower()
    if not host.endswith(_AMAZONAWS_SUFFIX):
        return None
    token = host[: -len(_AMAZONAWS_SUFFIX)].rsplit(".", 1)[-1]
    if token in ("s3", "s3-external-1"):
        return DEFAULT_REGION
    if token.startswith("s3-"):
        token = token[len("s3-"):]
    return token or None


def folder_prefix(folder: Optional[str]) -> Optional[str]:
    """Key prefix for a folder: no leading slash, exactly one trailing slash."""
    if not folder:
        return None
    path = folder.strip("/")
    if not path:
        return None
    return path + "/"


def _parse_timestamp(text: Optional[str]) -> Optional[datetime]:
    if not text:
        return None
    try:
        value = datetime.fromisoformat(text)
    except ValueError:
        return None
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _parse_http_date(text: Optional[str]) -> Optional[datetime]:
    if not text:
        return None
    try:
        value = parsedate_to_datetime(text)
    except (TypeError, ValueError):
        return None
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _parse_int(text: Optional[str]) -> Optional[int]:
    if text is None:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def _strip_etag(etag: Optional[str]) -> Optional[str]:
    return etag.strip('"') if etag else None


def _encode_version_token(key_marker: str, version_marker: Optional[str]) -> str:
    raw = json.dumps([key_marker, version_marker]).encode()
    return base64.urlsafe_b64encode(raw).decode()


def _decode_version_token(token: str):
    try:
        key_marker, version_marker = json.loads(base64.urlsafe_b64decode(token.encode()))
    except (binascii.Error, ValueError, TypeError) as exc:
        raise ConfigurationError(f"Malformed version list offset '{token}'.") from exc
    return key_marker, version_marker


def _metadata_fields(path: str, headers: httpx.Headers) -> Dict[str, Any]:
    """Common metadata from HEAD/GET object response headers."""
    other: Dict[str, Any] = {}
    etag = _strip_etag(headers.get("ETag"))
    if etag:
        other["etag"] = etag
    for header, name in (
        ("x-amz-version-id", "version_id"),
        ("x-amz-server-side-encryption", "server_side_encryption"),
        ("x-amz-website-redirect-location", "redirect"),
        ("Cache-Control", "cache_control"),
    ):
        if headers.get(header):
            other[name] = headers[header]
    user_metadata = {
        key[len(_USER_METADATA_PREFIX):]: value
        for key, value in headers.items()
        if key.lower().startswith(_USER_METADATA_PREFIX)
    }
    if user_metadata:
        other["metadata"] = user_metadata

    return {
        "path": path,
        "last_modified": _parse_http_date(headers.get("Last-Modified")),
        # S3 omits the header for STANDARD objects
        "storage_class": headers.get("x-amz-storage-class", "STANDARD"),
        "expires": _parse_http_date(headers.get("Expires")),
        "content_type": headers.get("Content-Type"),
        "content_encoding": headers.get("Content-Encoding"),
        "size": _parse_int(headers.get("Content-Length")),
        "other": other,
    }


class AWSBuckets(Buckets):
    """
    Buckets implementation for Amazon S3.

    One S3Client is kept per region. Requests go to the default region's
    client first; when S3 answers with a permanent redirect the client for
    the bucket's region is looked up (or created) and the request is sent
    again, once.

    Example:
        async with AWSBuckets(CreateBucketsOptions(region="eu-west-1")) as buckets:
            await buckets.put_file("photos", "2024/cat.jpg", data, PutFileOptions(content_type="image/jpeg"))
    """

    def __init__(
        self,
        options: Optional[CreateBucketsOptions] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._logger = logging.getLogger(__name__)
        self._config = S3ClientConfig.from_options(options)
        self._transport = transport
        self.region = self._config.region
        self._regional_clients: Dict[str, S3Client] = {}
        self.client = self._client_for_region(self.region)

    def _client_for_region(self, region: str) -> S3Client:
        # No await between lookup and insert: one client per region per event loop
        client = self._regional_clients.get(region)
        if client is None:
            client = S3Client(self._config.for_region(region), transport=self._transport)
            self._regional_clients[region] = client
            self._logger.info("[bucketkit][RegionalClient] region=%s created", region)
        return client

    def _client_for_redirect(self, error: PermanentRedirectError) -> Optional[S3Client]:
        region = region_from_endpoint(error.endpoint) or error.region
        if not region or region == self.client.region:
            return None
        return self._client_for_region(region)

    async def _invoke(self, request: S3Request) -> httpx.Response:
        """Send through the default client, retrying once against the bucket's region on redirect."""
        try:
            return await self.client.send(request)
        except PermanentRedirectError as exc:
            client = self._client_for_redirect(exc)
            if client is None:
                raise
            self._logger.info(
                "[bucketkit][Redirect] bucket=%s region=%s endpoint=%s",
                request.bucket,
                client.region,
                exc.endpoint,
            )
            return await client.send(request)

    async def _invoke_xml(self, request: S3Request):
        response = await self._invoke(request)
        return _xml.parse(response.content)

    # Buckets

    async def list_buckets(self, options: Optional[ListOptions] = None) -> BucketList:
        """
        List buckets visible to the current credentials.

        S3 returns every bucket in one response, so ``offset`` and ``limit``
        are accepted for interface compatibility and ignored.
        """
        response = await self.client.send(S3Request("GET"))
        doc = _xml.parse(response.content)
        result = BucketList()
        for node in _xml.children(_xml.child(doc, "Buckets"), "Bucket"):
            result.buckets.append(
                Bucket(
                    name=_xml.child_text(node, "Name"),
                    creation_date=_parse_timestamp(_xml.child_text(node, "CreationDate")),
                )
            )
        return result

    async def create_bucket(self, bucket_name: str, options: Optional[CreateBucketOptions] = None) -> None:
        """
        Create a bucket with object ownership enforced at the bucket owner.

        With ``access="public-read"`` a public-read policy is applied in a
        second call. The two calls are not atomic: if the policy call fails
        the bucket exists without the policy and is left in place.
        """
        options = options or CreateBucketOptions()
        policy = None
        if options.access and options.access != ACCESS_PRIVATE:
            if options.access != ACCESS_PUBLIC_READ:
                raise ConfigurationError(
                    f"Unrecognized access '{options.access}'. "
                    f"Must be one of: {ACCESS_PRIVATE}, {ACCESS_PUBLIC_READ}"
                )
            policy = PUBLIC_READ_POLICY.replace(BUCKET_NAME_PLACEHOLDER, bucket_name)

        location = options.location or self.region
        client = self._client_for_region(location)
        body = None
        if location != DEFAULT_REGION:
            body = _xml.build("CreateBucketConfiguration", {"LocationConstraint": location})

        await client.send(
            S3Request(
                "PUT",
                bucket=bucket_name,
                headers={"x-amz-object-ownership": "BucketOwnerEnforced"},
                body=body,
            )
        )
        self._logger.info("[bucketkit][CreateBucket] bucket=%s region=%s access=%s", bucket_name, location, options.access)

        if policy:
            await client.send(S3Request("PUT", bucket=bucket_name, query={"policy": ""}, body=policy.encode()))

    async def delete_bucket(self, bucket_name: str) -> None:
        await self._invoke(S3Request("DELETE", bucket=bucket_name))

    async def bucket_exists(self, bucket_name: str) -> bool:
        """Check if a bucket exists."""
        try:
            await self._invoke(S3Request("HEAD", bucket=bucket_name))
            return True
        except NotFoundError:
            return False

    # Website hosting

    async def get_website_configuration(self, bucket_name: str) -> BucketWebsiteConfiguration:
        doc = await self._invoke_xml(S3Request("GET", bucket=bucket_name, query={"website": ""}))
        redirect = _xml.child(doc, "RedirectAllRequestsTo")
        return BucketWebsiteConfiguration(
            index_page=_xml.child_text(_xml.child(doc, "IndexDocument"), "Suffix"),
            error_page=_xml.child_text(_xml.child(doc, "ErrorDocument"), "Key"),
            redirect_host_name=_xml.child_text(redirect, "HostName"),
            redirect_protocol=_xml.child_text(redirect, "Protocol"),
        )

    async def set_website_configuration(
        self, bucket_name: str, config: BucketWebsiteConfiguration
    ) -> BucketWebsiteConfiguration:
        """
        Write the website settings of a bucket.

        Index/error document mode is sent when ``index_page`` or
        ``error_page`` is set, whole-bucket redirect mode when
        ``redirect_host_name`` is set. Setting both, or neither, is rejected.
        """
        pages = bool(config.index_page or config.error_page)
        if pages and config.redirect_host_name:
            raise ConfigurationError("Website configuration cannot combine pages with a redirect.")

        if pages:
            website = {
                "IndexDocument": {"Suffix": config.index_page} if config.index_page else None,
                "ErrorDocument": {"Key": config.error_page} if config.error_page else None,
            }
        elif config.redirect_host_name:
            website = {
                "RedirectAllRequestsTo": {
                    "HostName": config.redirect_host_name,
                    "Protocol": config.redirect_protocol,
                }
            }
        else:
            raise ConfigurationError("Website configuration needs an index/error page or a redirect host name.")

        await self._invoke(
            S3Request(
                "PUT",
                bucket=bucket_name,
                query={"website": ""},
                body=_xml.build("WebsiteConfiguration", website),
            )
        )
        return config

    async def get_website_domain(self, bucket_name: str) -> str:
        """Return the website endpoint host of a bucket, based on the bucket's own region."""
        doc = await self._invoke_xml(S3Request("GET", bucket=bucket_name, query={"location": ""}))
        region = (doc.text or "").strip() if doc is not None else ""
        if not region:
            region = DEFAULT_REGION
        elif region == "EU":
            region = "eu-west-1"
        if region in DASH_REGIONS:
            return f"{bucket_name}.s3-website-{region}.amazonaws.com"
        return f"{bucket_name}.s3-website.{region}.amazonaws.com"

    # Access policy

    async def get_policy(self, bucket_name: str) -> Optional[Any]:
        response = await self._invoke(S3Request("GET", bucket=bucket_name, query={"policy": ""}))
        if not response.text.strip():
            return None
        try:
            return json.loads(response.text)
        except ValueError as exc:
            raise ProviderError(f"Bucket '{bucket_name}' returned a malformed policy: {exc}") from exc

    async def set_policy(self, bucket_name: str, policy: Any) -> None:
        document = policy if isinstance(policy, str) else json.dumps(policy)
        await self._invoke(S3Request("PUT", bucket=bucket_name, query={"policy": ""}, body=document.encode()))

    async def delete_policy(self, bucket_name: str) -> None:
        await self._invoke(S3Request("DELETE", bucket=bucket_name, query={"policy": ""}))

    # Versioning

    async def set_versioning(self, bucket_name: str, flag: bool) -> None:
        """Enable versioning, or suspend it (S3 cannot turn it off once enabled)."""
        body = _xml.build("VersioningConfiguration", {"Status": "Enabled" if flag else "Suspended"})
        await self._invoke(S3Request("PUT", bucket=bucket_name, query={"versioning": ""}, body=body))

    async def get_versioning(self, bucket_name: str) -> bool:
        doc = await self._invoke_xml(S3Request("GET", bucket=bucket_name, query={"versioning": ""}))
        return _xml.child_text(doc, "Status") == "Enabled"

    async def list_file_versions(
        self, bucket_name: str, file_path: str, options: Optional[ListFileVersionsOptions] = None
    ) -> FileVersionList:
        """
        Return a page of versions of a file.

        A path ending in '/' lists the versions of every file under that
        folder. Delete markers are included with ``is_delete_marker`` set.
        """
        options = options or ListFileVersionsOptions()
        prefix = (file_path or "").lstrip("/")
        exact = bool(prefix) and not prefix.endswith("/")

        query = {"versions": ""}
        if prefix:
            query["prefix"] = prefix
        if options.offset:
            key_marker, version_marker = _decode_version_token(options.offset)
            query["key-marker"] = key_marker
            if version_marker:
                query["version-id-marker"] = version_marker
        if options.limit and options.limit > 0:
            query["max-keys"] = str(options.limit)

        doc = await self._invoke_xml(S3Request("GET", bucket=bucket_name, query=query))
        result = FileVersionList()
        for node in doc if doc is not None else ():
            kind = _xml.local_name(node.tag)
            if kind not in ("Version", "DeleteMarker"):
                continue
            key = _xml.child_text(node, "Key")
            if exact and key != prefix:
                continue
            result.versions.append(
                FileVersion(
                    path=key,
                    version_id=_xml.child_text(node, "VersionId"),
                    is_latest=_xml.child_text(node, "IsLatest") == "true",
                    last_modified=_parse_timestamp(_xml.child_text(node, "LastModified")),
                    size=_parse_int(_xml.child_text(node, "Size")),
                    storage_class=_xml.child_text(node, "StorageClass"),
                    etag=_strip_etag(_xml.child_text(node, "ETag")),
                    is_delete_marker=kind == "DeleteMarker",
                )
            )

        if _xml.child_text(doc, "IsTruncated") == "true":
            result.next = _encode_version_token(
                _xml.child_text(doc, "NextKeyMarker"),
                _xml.child_text(doc, "NextVersionIdMarker"),
            )
        return result

    # Default encryption

    async def set_encryption(
        self, bucket_name: str, flag: bool, options: Optional[SetEncryptionOptions] = None
    ) -> None:
        """
        Turn default server-side encryption of bucket files on or off.

        Without options, or with ``algorithm="AES256"``, files are encrypted
        with an S3-managed key. With ``algorithm="aws:kms"`` a KMS key is
        used: ``key_id`` selects the key (AWS manages one when omitted) and
        the S3 bucket key is enabled unless
        ``provider_options["disable_bucket_key"]`` is true.

        Turning encryption off removes the default encryption configuration.
        """
        if not flag:
            await self._invoke(S3Request("DELETE", bucket=bucket_name, query={"encryption": ""}))
            return

        algorithm = (options.algorithm if options else None) or SSE_S3
        if algorithm == SSE_S3:
            rule = {"ApplyServerSideEncryptionByDefault": {"SSEAlgorithm": SSE_S3}}
        elif algorithm == SSE_KMS:
            disable_bucket_key = bool(options.provider_options.get("disable_bucket_key"))
            rule = {
                "ApplyServerSideEncryptionByDefault": {
                    "SSEAlgorithm": SSE_KMS,
                    "KMSMasterKeyID": options.key_id,
                },
                "BucketKeyEnabled": not disable_bucket_key,
            }
        else:
            raise ConfigurationError(
                f"Unrecognized encryption algorithm '{algorithm}'. Must be one of: {SSE_S3}, {SSE_KMS}"
            )

        body = _xml.build("ServerSideEncryptionConfiguration", {"Rule": rule})
        await self._invoke(S3Request("PUT", bucket=bucket_name, query={"encryption": ""}, body=body))

    async def get_encryption(self, bucket_name: str) -> Optional[SetEncryptionOptions]:
        """Return the default encryption settings, or None if the bucket has none."""
        try:
            doc = await self._invoke_xml(S3Request("GET", bucket=bucket_name, query={"encryption": ""}))
        except NotFoundError as exc:
            if exc.error_code == ENCRYPTION_NOT_FOUND:
                return None
            raise

        rule = _xml.child(doc, "Rule")
        default = _xml.child(rule, "ApplyServerSideEncryptionByDefault")
        algorithm = _xml.child_text(default, "SSEAlgorithm")
        if not algorithm:
            return None
        return SetEncryptionOptions(
            provider_options={"bucket_key_enabled": _xml.child_text(rule, "BucketKeyEnabled") == "true"},
            algorithm=algorithm,
            key_id=_xml.child_text(default, "KMSMasterKeyID"),
        )

    # Files

    async def list_files(self, bucket_name: str, options: Optional[ListFilesOptions] = None) -> BucketFileList:
        """
        Return a page of files in a bucket or folder.

        Non-recursive listings stop at '/' and report the subfolders in
        ``folders``. Pass the previous result's ``next`` as ``offset`` to get
        the following page.
        """
        options = options or ListFilesOptions()
        query = {"list-type": "2"}
        if options.offset:
            query["continuation-token"] = options.offset
        if options.limit and options.limit > 0:
            query["max-keys"] = str(options.limit)
        if not options.recursive:
            query["delimiter"] = "/"
        prefix = folder_prefix(options.folder)
        if prefix:
            query["prefix"] = prefix

        doc = await self._invoke_xml(S3Request("GET", bucket=bucket_name, query=query))
        result = BucketFileList()
        for node in _xml.children(doc, "Contents"):
            etag = _strip_etag(_xml.child_text(node, "ETag"))
            result.files.append(
                BucketFileMetadata(
                    path=_xml.child_text(node, "Key"),
                    last_modified=_parse_timestamp(_xml.child_text(node, "LastModified")),
                    storage_class=_xml.child_text(node, "StorageClass"),
                    size=_parse_int(_xml.child_text(node, "Size")),
                    other={"etag": etag} if etag else {},
                )
            )
        for node in _xml.children(doc, "CommonPrefixes"):
            result.folders.append(_xml.child_text(node, "Prefix"))

        if _xml.child_text(doc, "IsTruncated") == "true":
            result.next = _xml.child_text(doc, "NextContinuationToken")
        return result

    async def put_file(
        self, bucket_name: str, file_path: str, file: FileBody, options: Optional[PutFileOptions] = None
    ) -> None:
        """
        Upload a file in a single request.

        ``file`` may be bytes, a readable file object (sync or async) or an
        async iterable of chunks; streams are read to the end first because
        S3 needs the length and checksum up front.

        Storage classes: STANDARD | REDUCED_REDUNDANCY | STANDARD_IA |
        ONEZONE_IA | INTELLIGENT_TIERING | GLACIER | DEEP_ARCHIVE | GLACIER_IR
        """
        options = options or PutFileOptions()
        data = await read_all(file)

        headers: Dict[str, str] = {}
        # private is the S3 default and the only ACL allowed on owner-enforced buckets
        if options.access and options.access != ACCESS_PRIVATE:
            headers["x-amz-acl"] = options.access
        if options.content_type:
            headers["Content-Type"] = options.content_type
        if options.storage_class:
            headers["x-amz-storage-class"] = options.storage_class
        if options.redirect:
            headers["x-amz-website-redirect-location"] = options.redirect
        if options.expires:
            expires = options.expires
            expires = expires.replace(tzinfo=UTC) if expires.tzinfo is None else expires.astimezone(UTC)
            headers["Expires"] = format_datetime(expires, usegmt=True)

        await self._invoke(S3Request("PUT", bucket=bucket_name, key=file_path, headers=headers, body=data))
        self._logger.debug("[bucketkit][PutFile] bucket=%s path=%s size=%s", bucket_name, file_path, len(data))

    def _get_object_request(self, bucket_name: str, file_path: str, options: Optional[GetFileOptions]) -> S3Request:
        query = {}
        if options and options.version_id:
            query["versionId"] = options.version_id
        return S3Request("GET", bucket=bucket_name, key=file_path, query=query, stream=True)

    async def get_file_as_buffer(
        self, bucket_name: str, file_path: str, options: Optional[GetFileOptions] = None
    ) -> BucketFile:
        response = await self._invoke(self._get_object_request(bucket_name, file_path, options))
        try:
            data = await read_all(response.aiter_raw())
        finally:
            await response.aclose()

        fields = _metadata_fields(file_path, response.headers)
        expected = fields["size"]
        if expected is not None and expected != len(data):
            self._logger.warning(
                "[bucketkit][GetFile] bucket=%s path=%s expected=%s received=%s",
                bucket_name, file_path, expected, len(data),
            )
            raise StreamReadError(
                f"Short read of '{file_path}' in bucket '{bucket_name}': "
                f"expected {expected} bytes, received {len(data)}"
            )
        fields["size"] = len(data)
        return BucketFile(data=data, **fields)

    async def get_file_as_stream(
        self, bucket_name: str, file_path: str, options: Optional[GetFileOptions] = None
    ) -> ByteStream:
        """Open a file for streaming; close the returned stream if it is not read to the end."""
        response = await self._invoke(self._get_object_request(bucket_name, file_path, options))
        return as_stream(
            response.aiter_raw(),
            on_close=response.aclose,
            length=_parse_int(response.headers.get("Content-Length")),
        )

    async def delete_file(self, bucket_name: str, file_path: str) -> None:
        await self._invoke(S3Request("DELETE", bucket=bucket_name, key=file_path))

    async def get_file_metadata(self, bucket_name: str, file_path: str) -> Optional[BucketFileMetadata]:
        """Get file metadata, or None if the file does not exist."""
        try:
            response = await self._invoke(S3Request("HEAD", bucket=bucket_name, key=file_path))
        except NotFoundError:
            return None
        return BucketFileMetadata(**_metadata_fields(file_path, response.headers))

    # Lifecycle

    async def close(self) -> None:
        """Close every regional client."""
        for client in list(self._regional_clients.values()):
            await client.close()
        self._regional_clients.clear()
