"""
Cloud Director API client used for authentication.

Covers the session endpoints of the CloudAPI and the persistence of the
resulting profiles.
"""

import logging
import ssl
from pathlib import Path
from typing import Any, List, Optional, Union
from urllib.parse import urlsplit

import httpx

from ..common.exceptions import AuthenticationError
from .profiles import AuthProfile, ProfileStore, UnauthorizedReason

logger = logging.getLogger(__name__)

ACCESS_TOKEN_HEADER = "X-VMWARE-VCLOUD-ACCESS-TOKEN"
SESSIONS_PATH = "/cloudapi/1.0.0/sessions"
DEFAULT_API_VERSION = "37.0"


def _is_certificate_error(error: BaseException) -> bool:
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ssl.SSLCertVerificationError) or "CERTIFICATE_VERIFY_FAILED" in str(current):
            return True
        current = current.__cause__ or current.__context__
    return False


class CloudDirectorClient:
    """Logs into Cloud Director and keeps the resulting profiles."""

    def __init__(self, api_version: str = DEFAULT_API_VERSION, timeout: float = 30.0,
                 transport: Optional[httpx.BaseTransport] = None, token_store: Optional[Any] = None):
        self.api_version = api_version
        self.timeout = timeout
        self._transport = transport
        self._token_store = token_store

    def _store(self, file: Optional[Union[str, Path]]) -> ProfileStore:
        return ProfileStore(file, token_store=self._token_store)

    def _http(self, certificate: Optional[str] = None) -> httpx.Client:
        verify: Union[bool, ssl.SSLContext] = True
        if certificate:
            verify = ssl.create_default_context(cadata=certificate)
        return httpx.Client(
            verify=verify,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Accept": f"application/json;version={self.api_version}"}
        )

    def fetch_certificate(self, base_path: str) -> Optional[str]:
        """PEM certificate presented by the cell, without verifying it."""
        parts = urlsplit(base_path)
        try:
            return ssl.get_server_certificate((parts.hostname, parts.port or 443))
        except OSError as e:
            logger.warning(f"Could not retrieve certificate from {base_path}: {e}")
            return None

    def get_configurations(self, file: Optional[Union[str, Path]] = None) -> List[AuthProfile]:
        return self._store(file).list_profiles()

    def use(self, alias: str, file: Optional[Union[str, Path]] = None) -> None:
        self._store(file).set_current(alias)

    def save_config(self, profile: AuthProfile, alias: str, file: Optional[Union[str, Path]] = None) -> None:
        self._store(file).save(profile, alias)

    def from_file(self, file: Optional[Union[str, Path]] = None) -> Optional[AuthProfile]:
        """Current profile, with ``authorized``/``reason`` reflecting whether its session still works."""
        profile = self._store(file).current()
        if profile is None:
            return None

        if not profile.session_token:
            profile.authorized = False
            profile.reason = UnauthorizedReason.NOT_LOGGED_IN
            return profile

        url = f"{profile.base_path.rstrip('/')}{SESSIONS_PATH}/current"
        try:
            with self._http(profile.certificate) as http:
                response = http.get(url, headers={"Authorization": f"Bearer {profile.session_token}"})
        except httpx.HTTPError as e:
            if _is_certificate_error(e):
                profile.authorized = False
                profile.reason = UnauthorizedReason.CERTIFICATE_UNTRUSTED
                return profile
            raise AuthenticationError(
                f"Could not reach {profile.base_path}: {e}", alias=profile.alias, host=profile.base_path, cause=e
            ) from e

        if response.status_code in (401, 403):
            profile.authorized = False
            profile.reason = UnauthorizedReason.TOKEN_EXPIRED
        elif response.is_success:
            profile.authorized = True
            profile.reason = None
        else:
            raise AuthenticationError(
                f"Unexpected status {response.status_code} checking session",
                alias=profile.alias, host=profile.base_path
            )
        return profile

    def with_username_and_password(self, base_path: str, username: str, org: str, password: str,
                                   certificate: Optional[str] = None) -> AuthProfile:
        """
        Open a new session.

        Returns an unauthorized profile, rather than raising, when the
        credentials are rejected or the cell's certificate is not trusted; in
        the latter case the offered certificate is attached.
        """
        profile = AuthProfile(alias="", username=username, org=org, base_path=base_path, certificate=certificate)
        url = f"{base_path.rstrip('/')}{SESSIONS_PATH}"
        try:
            with self._http(certificate) as http:
                response = http.post(url, auth=(f"{username}@{org}", password))
        except httpx.HTTPError as e:
            if _is_certificate_error(e):
                logger.warning(f"Certificate of {base_path} is not trusted")
                profile.reason = UnauthorizedReason.CERTIFICATE_UNTRUSTED
                profile.certificate = self.fetch_certificate(base_path)
                return profile
            raise AuthenticationError(f"Could not reach {base_path}: {e}", host=base_path, cause=e) from e

        if response.status_code == 401:
            profile.reason = UnauthorizedReason.INVALID_CREDENTIALS
            return profile
        if not response.is_success:
            raise AuthenticationError(
                f"Login to {base_path} failed with status {response.status_code}", host=base_path
            )

        token = response.headers.get(ACCESS_TOKEN_HEADER)
        if not token:
            raise AuthenticationError(f"No access token returned by {base_path}", host=base_path)

        profile.session_token = token
        profile.authorized = True
        logger.info(f"Logged in to {base_path} as {username}@{org}")
        return profile
