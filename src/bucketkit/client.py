"""
S3Client - signed S3 REST client bound to one region
"""

import base64
import hashlib
import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Dict, Tuple
from urllib.parse import quote, urlencode, urlparse

import httpx

from . import _xml
from ._http import HttpClient
from ._signer import AwsSignatureV4Signer, hash_payload
from .config import S3ClientConfig
from .error import (
    AccessDeniedError,
    NotFoundError,
    PermanentRedirectError,
    ProviderError,
)

NOT_FOUND_CODES = frozenset({
    "NotFound",
    "NoSuchBucket",
    "NoSuchKey",
    "NoSuchVersion",
    "NoSuchBucketPolicy",
    "NoSuchWebsiteConfiguration",
    "ServerSideEncryptionConfigurationNotFoundError",
})

# Bucket names usable as a single DNS label under the S3 wildcard certificate
_VIRTUAL_HOST_BUCKET = re.compile(r"^[a-z0-9][a-z0-9-]{1,61}[a-z0-9]$")

_DOT_SEGMENTS = {".": "%2E", "..": "%2E%2E"}


def encode_key(key: str) -> str:
    """
    URI-encode an object key for the request path.

    Dot segments are percent-encoded so the HTTP layer sends them verbatim
    instead of resolving them.
    """
    segments = quote(key, safe="/~").split("/")
    return "/".join(_DOT_SEGMENTS.get(segment, segment) for segment in segments)


def is_virtual_host_bucket(bucket: str) -> bool:
    return bool(_VIRTUAL_HOST_BUCKET.match(bucket))


@dataclass
class S3Request:
    """One S3 REST call. Requests are replayable: the body is always bytes."""
    method: str
    bucket: Optional[str] = None
    key: Optional[str] = None
    query: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    stream: bool = False

    def describe(self) -> str:
        target = self.bucket or ""
        if self.key:
            target = f"{target}/{self.key}"
        sub = "&".join(sorted(self.query))
        return f"{self.method} {target}{'?' + sub if sub else ''}"


class S3Client:
    """
    S3 REST client for one region.

    Example:
        client = S3Client(S3ClientConfig(
            region="eu-west-1",
            access_key_id="AKIA...",
            secret_access_key="...",
        ))
        response = await client.send(S3Request("GET", bucket="photos", query={"location": ""}))
    """

    def __init__(
        self,
        config: S3ClientConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize S3Client.

        Args:
            config: Credentials, region, endpoint and client limits
            transport: Optional httpx transport, used by tests
        """
        self.config = config
        self.region = config.region
        self._http = HttpClient(
            timeout=config.request_timeout,
            max_retries=config.max_attempts,
            transport=transport,
        )
        self._signer = AwsSignatureV4Signer(
            config.access_key_id,
            config.secret_access_key,
            config.region,
            session_token=config.session_token,
        )
        self._logger = logging.getLogger(__name__)

    def _address(self, bucket: Optional[str], key: Optional[str]) -> Tuple[str, str, str]:
        """Return (scheme, host, encoded path) for a bucket/key."""
        encoded_key = encode_key(key) if key else ""
        if self.config.endpoint_url:
            parsed = urlparse(self.config.endpoint_url)
            base = parsed.path.rstrip("/")
            path = base
            if bucket:
                path += f"/{quote(bucket, safe='')}"
                if key:
                    path += f"/{encoded_key}"
            return parsed.scheme, parsed.netloc, path or "/"

        host = f"s3.{self.region}.amazonaws.com"
        if bucket and is_virtual_host_bucket(bucket):
            return "https", f"{bucket}.{host}", f"/{encoded_key}"
        if bucket:
            # Dotted or non-DNS names fail the wildcard certificate; use path-style
            path = f"/{quote(bucket, safe='')}"
            return "https", host, f"{path}/{encoded_key}" if key else path
        return "https", host, "/"

    def url_for(self, request: S3Request) -> str:
        scheme, host, path = self._address(request.bucket, request.key)
        url = f"{scheme}://{host}{path}"
        if request.query:
            url += "?" + urlencode(sorted(request.query.items()), quote_via=quote, safe="~")
        return url

    async def send(self, request: S3Request) -> httpx.Response:
        """
        Sign and send a request.

        With ``request.stream`` set the successful response body is left
        unread and must be read or closed by the caller.

        Raises:
            PermanentRedirectError: If the bucket lives in another region.
            NotFoundError: If the bucket, key or sub-resource does not exist.
            AccessDeniedError: If the credentials lack permission.
            ProviderError: For every other failure, including transport errors.
        """
        scheme, host, path = self._address(request.bucket, request.key)
        headers = dict(request.headers)
        if request.body:
            headers["Content-MD5"] = base64.b64encode(hashlib.md5(request.body).digest()).decode()
        headers = self._signer.sign_request(
            method=request.method,
            host=host,
            path=path,
            query_params=request.query,
            headers=headers,
            payload_hash=hash_payload(request.body),
        )

        self._logger.debug("[bucketkit][S3] region=%s request=%s", self.region, request.describe())
        try:
            response = await self._http.request(
                request.method,
                self.url_for(request),
                headers=headers,
                content=request.body,
                stream=request.stream,
            )
        except httpx.HTTPError as exc:
            raise ProviderError(
                f"Request {request.describe()} failed: {exc}",
                error_code="NetworkError",
            ) from exc

        if response.status_code >= 300:
            if request.stream:
                try:
                    await response.aread()
                finally:
                    await response.aclose()
            raise self._error_from_response(response, request)

        return response

    def _error_from_response(self, response: httpx.Response, request: S3Request) -> ProviderError:
        """Map an S3 error response to a typed exception."""
        doc = _xml.parse(response.content) if request.method != "HEAD" else None
        code = _xml.child_text(doc, "Code")
        message = _xml.child_text(doc, "Message") or f"Request {request.describe()} failed with status {response.status_code}"
        request_id = _xml.child_text(doc, "RequestId") or response.headers.get("x-amz-request-id")
        status = response.status_code

        if status == 301 or code == "PermanentRedirect":
            return PermanentRedirectError(
                message,
                status_code=status,
                request_id=request_id,
                endpoint=_xml.child_text(doc, "Endpoint"),
                region=response.headers.get("x-amz-bucket-region"),
            )
        if status == 404 or code in NOT_FOUND_CODES:
            return NotFoundError(message, status, code or "NotFound", request_id)
        if status == 403:
            return AccessDeniedError(message, status, code or "AccessDenied", request_id)
        return ProviderError(message, status, code, request_id)

    async def close(self) -> None:
        """Close the client and cleanup resources."""
        await self._http.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
