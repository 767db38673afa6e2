"""
Request signing.

One RequestSigner covers both signing targets of the client:

- the API: every POST is signed with the AWS3 HMAC-SHA256 scheme over a
  canonical string built from the host, date, session token, target and the
  raw JSON payload, keyed by the session secret;
- the session token endpoint: its GET URL is presigned with the long-term
  keys using SigV4 query authentication from botocore.

Signatures embed the current time, so a signed request is single-use.
"""

import base64
import hashlib
import hmac
import logging
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Dict, Optional

from botocore.auth import SigV4QueryAuth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

from ..models.credentials import SessionCredentials

logger = logging.getLogger(__name__)

API_VERSION = "DynamoDB_20111205"
CONTENT_TYPE = "application/x-amz-json-1.0"
ALGORITHM = "HmacSHA256"
SIGNED_HEADERS = ("host", "x-amz-date", "x-amz-security-token", "x-amz-target")

TOKEN_SERVICE = "sts"
TOKEN_URL_EXPIRES_SECONDS = 300


def pad_base64(value: str) -> str:
    """Pad base64 text with ``=`` until its length is a multiple of four."""
    while len(value) % 4 != 0:
        value += "="
    return value


def http_date(now: Optional[datetime] = None) -> str:
    """RFC 1123 date as used in the ``x-amz-date`` header."""
    now = now or datetime.now(timezone.utc)
    return format_datetime(now.astimezone(timezone.utc), usegmt=True)


class RequestSigner:
    """Signs API requests and token endpoint URLs."""

    def __init__(self, host: str, region_name: str = "us-east-1", api_version: str = API_VERSION):
        self.host = host
        self.region_name = region_name
        self.api_version = api_version

    def target(self, operation: str) -> str:
        return f"{self.api_version}.{operation}"

    def canonical_string(self, operation: str, payload: str, session_token: str, date: str) -> str:
        """Build the string the API signature is computed over."""
        return "\n".join([
            "POST",
            "/",
            "",
            f"host:{self.host}",
            f"x-amz-date:{date}",
            f"x-amz-security-token:{session_token}",
            f"x-amz-target:{self.target(operation)}",
            "",
            payload,
        ])

    @staticmethod
    def signature(canonical: str, secret: str) -> str:
        """base64(HMAC-SHA256(secret, SHA256(canonical))), padded."""
        digest = hashlib.sha256(canonical.encode('utf-8')).digest()
        mac = hmac.new(secret.encode('utf-8'), digest, hashlib.sha256).digest()
        return pad_base64(base64.b64encode(mac).decode('ascii').rstrip("="))

    def sign(self, operation: str, payload: str, credentials: SessionCredentials, now: Optional[datetime] = None) -> Dict[str, str]:
        """Produce the headers of a signed API request.

        Args:
            operation: API operation name, e.g. ``PutItem``
            payload: JSON body exactly as it will be sent
            credentials: Valid session credentials
            now: Signing time (defaults to the current time)

        Returns:
            Header mapping for the HTTP POST
        """
        date = http_date(now)
        canonical = self.canonical_string(operation, payload, credentials.session_token, date)
        signature = self.signature(canonical, credentials.secret_access_key)

        authorization = ",".join([
            f"AWS3 AWSAccessKeyId={credentials.access_key_id}",
            f"Algorithm={ALGORITHM}",
            f"SignedHeaders={';'.join(SIGNED_HEADERS)}",
            f"Signature={signature}",
        ])
        return {
            "host": self.host,
            "x-amz-date": date,
            "x-amz-target": self.target(operation),
            "x-amz-security-token": credentials.session_token,
            "x-amzn-authorization": authorization,
            "content-type": CONTENT_TYPE,
        }

    def presign_url(self, url: str, access_key_id: str, secret_access_key: str, expires: int = TOKEN_URL_EXPIRES_SECONDS) -> str:
        """Presign a GET to the session token endpoint with the long-term keys."""
        request = AWSRequest(method="GET", url=url)
        auth = SigV4QueryAuth(
            Credentials(access_key_id, secret_access_key),
            TOKEN_SERVICE,
            self.region_name,
            expires=expires,
        )
        auth.add_auth(request)
        signed_url = request.prepare().url
        logger.debug(f"Presigned token endpoint URL for {access_key_id}")
        return signed_url
