"""
Session credential management.

The manager holds at most one SessionCredentials object. It is fetched from
the session token endpoint on first use and again once it has expired; while
it is valid no network call is made.
"""

import logging
import threading
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from typing import Callable, Optional

import requests
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import MissingCredentialsError
from ..models.credentials import SessionCredentials
from .signer import RequestSigner

logger = logging.getLogger(__name__)

# path of the credentials record inside the GetSessionToken envelope
_CREDENTIALS_PATH = "{*}GetSessionTokenResult/{*}Credentials"


def parse_session_token_response(body: str) -> Optional[SessionCredentials]:
    """Extract credentials from a GetSessionToken XML envelope.

    Returns:
        SessionCredentials, or None if the envelope lacks the nested record
    """
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        logger.error(f"Session token response is not valid XML: {e}")
        return None

    record = root.find(_CREDENTIALS_PATH)
    if record is None:
        logger.error("Session token response lacks GetSessionTokenResult/Credentials")
        return None

    def field(name: str) -> Optional[str]:
        element = record.find(f"{{*}}{name}")
        return element.text.strip() if element is not None and element.text else None

    try:
        return SessionCredentials(
            access_key_id=field("AccessKeyId"),
            secret_access_key=field("SecretAccessKey"),
            session_token=field("SessionToken"),
            expiration=field("Expiration"),
        )
    except PydanticValidationError as e:
        logger.error(f"Incomplete credentials record in session token response: {e}")
        return None


class CredentialManager:
    """Lazily fetched, expiring session credentials.

    States:
        Unset: nothing held, or the held credentials expired
        Valid: credentials held and expiration strictly in the future
    """

    def __init__(
        self,
        signer: RequestSigner,
        access_key_id: Optional[str],
        secret_access_key: Optional[str],
        token_url: str,
        session: Optional[requests.Session] = None,
        timeout_seconds: float = 30.0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.signer = signer
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.token_url = token_url
        self.session = session or requests.Session()
        self.timeout_seconds = timeout_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._credentials: Optional[SessionCredentials] = None
        self._lock = threading.Lock()

    @property
    def is_valid(self) -> bool:
        current = self._credentials
        return current is not None and current.is_valid(self._clock())

    @property
    def credentials(self) -> SessionCredentials:
        """The held credentials.

        Raises:
            MissingCredentialsError: If no valid credentials are held
        """
        current = self._credentials
        if current is None or not current.is_valid(self._clock()):
            raise MissingCredentialsError(token_url=self.token_url)
        return current

    def ensure_credentials(self) -> bool:
        """Fetch session credentials unless valid ones are already held.

        Returns:
            True if valid credentials are held afterwards
        """
        if self.is_valid:
            return True

        with self._lock:
            # another thread may have refreshed while we waited
            if self.is_valid:
                return True
            fetched = self._fetch()
            if fetched is None:
                return False
            self._credentials = fetched

        logger.info(f"Obtained session credentials valid until {fetched.expiration.isoformat()}")
        return True

    def invalidate(self) -> None:
        """Drop the held credentials so the next call fetches new ones."""
        with self._lock:
            self._credentials = None

    def _fetch(self) -> Optional[SessionCredentials]:
        if not self.access_key_id or not self.secret_access_key:
            logger.error("Cannot request session credentials: long-term access keys are not configured")
            return None

        url = self.signer.presign_url(self.token_url, self.access_key_id, self.secret_access_key)
        try:
            response = self.session.get(url, timeout=self.timeout_seconds)
        except requests.RequestException as e:
            logger.error(f"Session token request failed: {e}")
            return None

        if not response.ok:
            logger.error(f"Session token request failed with status {response.status_code}")
            return None
        return parse_session_token_response(response.text)
