"""
AWS Signature V4 signer for bucketkit
"""

import hashlib
import hmac
import re
from datetime import datetime, UTC
from typing import Dict, Optional
from urllib.parse import quote

EMPTY_PAYLOAD_HASH = hashlib.sha256(b"").hexdigest()

_WHITESPACE = re.compile(r"\s+")


def hash_payload(body: Optional[bytes]) -> str:
    """Hex SHA-256 of a request payload."""
    if not body:
        return EMPTY_PAYLOAD_HASH
    return hashlib.sha256(body).hexdigest()


class AwsSignatureV4Signer:
    """
    Signs requests using AWS Signature Version 4.

    A signature is scoped to one region, so every regional client owns its
    own signer.
    """

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        region: str,
        service: str = "s3",
        session_token: Optional[str] = None,
    ):
        self.access_key = access_key
        self.secret_key = secret_key
        self.region = region
        self.service = service
        self.session_token = session_token

    def sign_request(
        self,
        method: str,
        host: str,
        path: str,
        query_params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        payload_hash: str = EMPTY_PAYLOAD_HASH,
        timestamp: Optional[datetime] = None,
    ) -> Dict[str, str]:
        """
        Sign a request and return the complete set of headers to send,
        including ``Authorization``.

        ``path`` must already be URI-encoded the way it goes on the wire.
        """
        if timestamp is None:
            timestamp = datetime.now(UTC)

        amz_date = timestamp.strftime("%Y%m%dT%H%M%SZ")
        datestamp = timestamp.strftime("%Y%m%d")

        signed = dict(headers or {})
        signed["host"] = host
        signed["x-amz-date"] = amz_date
        signed["x-amz-content-sha256"] = payload_hash
        if self.session_token:
            signed["x-amz-security-token"] = self.session_token

        # Canonical request
        canonical_headers_dict = self._build_canonical_headers(signed)
        canonical_headers_str = "\n".join(
            f"{k}:{v}" for k, v in sorted(canonical_headers_dict.items())
        ) + "\n"
        signed_headers = ";".join(sorted(canonical_headers_dict.keys()))

        canonical_querystring = self._build_canonical_querystring(query_params or {})

        canonical_request = "\n".join([
            method,
            path or "/",
            canonical_querystring,
            canonical_headers_str.rstrip(),
            "",
            signed_headers,
            payload_hash,
        ])

        # String to sign
        credential_scope = f"{datestamp}/{self.region}/{self.service}/aws4_request"
        canonical_request_hash = hashlib.sha256(
            canonical_request.encode()
        ).hexdigest()

        string_to_sign = "\n".join([
            "AWS4-HMAC-SHA256",
            amz_date,
            credential_scope,
            canonical_request_hash,
        ])

        # Signature
        signing_key = self._derive_signing_key(datestamp)
        signature = hmac.new(
            signing_key,
            string_to_sign.encode(),
            hashlib.sha256
        ).hexdigest()

        signed["Authorization"] = (
            f"AWS4-HMAC-SHA256 Credential={self.access_key}/{credential_scope}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        )
        return signed

    def _build_canonical_headers(self, headers: Dict[str, str]) -> Dict[str, str]:
        """Build canonical headers for signing."""
        canonical = {}
        for key, value in headers.items():
            canonical[key.lower()] = _WHITESPACE.sub(" ", str(value).strip())
        return canonical

    def _build_canonical_querystring(self, params: Dict[str, str]) -> str:
        """Build canonical query string for signing."""
        if not params:
            return ""
        sorted_params = sorted(params.items())
        return "&".join(
            f"{quote(k, safe='')}={quote(str(v), safe='')}"
            for k, v in sorted_params
        )

    def _derive_signing_key(self, datestamp: str) -> bytes:
        """Derive the signing key for AWS Signature V4."""
        k_date = hmac.new(
            f"AWS4{self.secret_key}".encode(),
            datestamp.encode(),
            hashlib.sha256
        ).digest()

        k_region = hmac.new(k_date, self.region.encode(), hashlib.sha256).digest()
        k_service = hmac.new(k_region, self.service.encode(), hashlib.sha256).digest()
        k_signing = hmac.new(k_service, "aws4_request".encode(), hashlib.sha256).digest()

        return k_signing
