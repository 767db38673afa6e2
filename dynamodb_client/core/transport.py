"""
Retrying transport.

Every API call of the client passes through RetryingTransport.send(): it makes
sure session credentials exist, signs the JSON payload, POSTs it and decodes
the answer. Throughput-exceeded answers are retried with a fixed delay; any
other failure is classified into an exception and returned, not raised.
"""

import json
import logging
import time
from typing import Any, Dict, NamedTuple, Optional

import requests

from ..exceptions import (
    DynamoDBClientError,
    RemoteError,
    ThroughputExceededError,
    TransportError,
)
from .credentials import CredentialManager
from .signer import RequestSigner

logger = logging.getLogger(__name__)

THROUGHPUT_EXCEEDED = "ProvisionedThroughputExceededException"

NO_RESPONSE_MESSAGE = "Failed to get result"
INVALID_JSON_MESSAGE = "Failed to parse JSON result"


class TransportResponse(NamedTuple):
    """Outcome of one API call.

    Attributes:
        ok: True when the store accepted the request
        status_code: HTTP status, or None if no response arrived
        data: Decoded JSON body, or a synthesized ``{"error": ...}`` payload
        error: Classified failure, None on success
        attempts: Number of HTTP attempts made
    """

    ok: bool
    status_code: Optional[int]
    data: Dict[str, Any]
    error: Optional[DynamoDBClientError] = None
    attempts: int = 1


def error_type_of(data: Dict[str, Any]) -> Optional[str]:
    """Short exception name from an ``__type`` field like ``com.amazonaws...#Name``."""
    raw = data.get("__type")
    if not raw:
        return None
    return str(raw).split("#")[-1]


def map_response_error(operation: str, status_code: Optional[int], data: Dict[str, Any]) -> Optional[DynamoDBClientError]:
    """Map a decoded response to an exception, or None if it is a success.

    Args:
        operation: The API operation that was called
        status_code: HTTP status code (None if no response was received)
        data: Decoded response body

    Returns:
        TransportError for locally synthesized failures, ThroughputExceededError
        or RemoteError for store-side exceptions, None otherwise
    """
    error_type = error_type_of(data)
    message = data.get("message") or data.get("Message") or ""

    if error_type == THROUGHPUT_EXCEEDED:
        return ThroughputExceededError(message or "Provisioned throughput exceeded", operation, status_code=status_code, payload=data)

    if error_type:
        return RemoteError(error_type, message or error_type, operation, status_code, data)

    if "error" in data:
        return TransportError(f"{operation}: {data['error']}", operation)

    if status_code is not None and status_code >= 400:
        logger.warning(f"{operation} failed with status {status_code} but no error type")
        return RemoteError("UnknownError", f"HTTP status {status_code}", operation, status_code, data)

    return None


class RetryingTransport:
    """Signs, sends and decodes API calls with bounded throughput retries."""

    def __init__(
        self,
        credential_manager: CredentialManager,
        signer: RequestSigner,
        endpoint_url: str,
        session: Optional[requests.Session] = None,
        max_retries: int = 1,
        retry_delay_seconds: float = 0.1,
        timeout_seconds: float = 30.0,
    ):
        self.credential_manager = credential_manager
        self.signer = signer
        self.endpoint_url = endpoint_url
        self.session = session or requests.Session()
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds
        self.timeout_seconds = timeout_seconds

    def send(self, operation: str, payload: Dict[str, Any]) -> TransportResponse:
        """Send one API call, retrying while throughput is exceeded.

        Args:
            operation: API operation name, e.g. ``Query``
            payload: Request body

        Returns:
            TransportResponse of the last attempt

        Raises:
            MissingCredentialsError: If session credentials cannot be obtained
        """
        body = json.dumps(payload)
        max_attempts = self.max_retries + 1

        attempt = 0
        while True:
            attempt += 1
            status_code, data = self._post(operation, body)
            error = map_response_error(operation, status_code, data)

            if error is None:
                return TransportResponse(True, status_code, data, None, attempt)

            if isinstance(error, ThroughputExceededError):
                if attempt < max_attempts:
                    logger.warning(f"{operation}: provisioned throughput exceeded, retry {attempt}/{self.max_retries} in {self.retry_delay_seconds}s")
                    time.sleep(self.retry_delay_seconds)
                    continue
                error.attempts = attempt
                error.context['attempts'] = attempt

            logger.debug(f"{operation} failed after {attempt} attempt(s): {error}")
            return TransportResponse(False, status_code, data, error, attempt)

    def _post(self, operation: str, body: str):
        # signatures are time-bound, so every attempt is signed anew
        self.credential_manager.ensure_credentials()
        headers = self.signer.sign(operation, body, self.credential_manager.credentials)

        logger.debug(f"POST {operation} to {self.endpoint_url}: {body}")
        try:
            response = self.session.post(
                self.endpoint_url,
                data=body.encode('utf-8'),
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.error(f"{operation}: no response from {self.endpoint_url}: {e}")
            return None, {"error": NO_RESPONSE_MESSAGE}

        try:
            data = response.json()
        except ValueError:
            logger.error(f"{operation}: response is not valid JSON (status {response.status_code})")
            return response.status_code, {"error": INVALID_JSON_MESSAGE}

        if not isinstance(data, dict):
            return response.status_code, {"error": INVALID_JSON_MESSAGE}

        logger.debug(f"{operation} response ({response.status_code}): {data}")
        return response.status_code, data
