"""
Cloud Director authentication profiles and their persistence.

Profiles live in a JSON file (``~/.vcd/config.json`` by default). Session
tokens are kept in the system keyring when one is available and fall back to
the profile file otherwise.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import keyring

from ..common.config import get_config
from ..common.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_FILE = Path.home() / ".vcd" / "config.json"
KEYRING_SERVICE = "vcd-emulators"


class UnauthorizedReason(str, Enum):
    """Why a profile holds no usable session."""
    NOT_LOGGED_IN = "not_logged_in"
    TOKEN_EXPIRED = "token_expired"
    INVALID_CREDENTIALS = "invalid_credentials"
    CERTIFICATE_UNTRUSTED = "certificate_untrusted"


@dataclass
class AuthProfile:
    """A named session against a Cloud Director cell."""
    alias: str
    username: str
    org: str
    base_path: str
    session_token: Optional[str] = None
    authorized: bool = False
    certificate: Optional[str] = None
    reason: Optional[UnauthorizedReason] = None
    current: bool = False

    def to_dict(self, include_token: bool = False) -> Dict[str, Any]:
        data = {
            "username": self.username,
            "org": self.org,
            "basePath": self.base_path,
            "authorized": self.authorized,
        }
        # only certificates the user trusted are pinned for later sessions
        if self.certificate and self.reason != UnauthorizedReason.CERTIFICATE_UNTRUSTED:
            data["certificate"] = self.certificate
        if include_token and self.session_token:
            data["sessionToken"] = self.session_token
        return data

    @classmethod
    def from_dict(cls, alias: str, data: Dict[str, Any]) -> "AuthProfile":
        return cls(
            alias=alias,
            username=data.get("username", ""),
            org=data.get("org", ""),
            base_path=data.get("basePath", ""),
            session_token=data.get("sessionToken"),
            authorized=bool(data.get("authorized", False)),
            certificate=data.get("certificate"),
        )


class KeyringTokenStore:
    """Keeps session tokens in the system keyring."""

    def __init__(self, service: str = KEYRING_SERVICE):
        self.service = service

    def save(self, key: str, token: str) -> bool:
        try:
            keyring.set_password(self.service, key, token)
            return True
        except Exception as e:
            logger.debug(f"Failed to save to keyring: {e}")
            return False

    def load(self, key: str) -> Optional[str]:
        try:
            return keyring.get_password(self.service, key)
        except Exception as e:
            logger.debug(f"Failed to load from keyring: {e}")
            return None

    def delete(self, key: str) -> None:
        try:
            keyring.delete_password(self.service, key)
        except Exception as e:
            logger.debug(f"Failed to delete from keyring: {e}")


def resolve_profile_file(file: Optional[Union[str, Path]] = None) -> Path:
    """Explicit file, then VCD_EMULATORS_PROFILE_FILE, then ~/.vcd/config.json."""
    if file:
        return Path(file).expanduser()
    configured = get_config("VCD_EMULATORS_PROFILE_FILE")
    return Path(configured).expanduser() if configured else DEFAULT_PROFILE_FILE


class ProfileStore:
    """Reads and writes the profile file for one location."""

    def __init__(self, file: Optional[Union[str, Path]] = None, token_store: Optional[Any] = None):
        self.path = resolve_profile_file(file)
        self.token_store = token_store or KeyringTokenStore()

    def _token_key(self, alias: str) -> str:
        return f"{alias}@{self.path}"

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {"current": None, "profiles": {}}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f) or {}
        data.setdefault("current", None)
        data.setdefault("profiles", {})
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def _profile(self, alias: str, entry: Dict[str, Any], current: Optional[str]) -> AuthProfile:
        profile = AuthProfile.from_dict(alias, entry)
        if profile.session_token is None:
            profile.session_token = self.token_store.load(self._token_key(alias))
        profile.current = alias == current
        return profile

    def list_profiles(self) -> List[AuthProfile]:
        data = self._read()
        return [self._profile(alias, entry, data["current"]) for alias, entry in data["profiles"].items()]

    def get(self, alias: str) -> Optional[AuthProfile]:
        data = self._read()
        entry = data["profiles"].get(alias)
        return self._profile(alias, entry, data["current"]) if entry is not None else None

    def current(self) -> Optional[AuthProfile]:
        data = self._read()
        alias = data["current"]
        if alias is None or alias not in data["profiles"]:
            return None
        return self._profile(alias, data["profiles"][alias], alias)

    def set_current(self, alias: str) -> None:
        data = self._read()
        if alias not in data["profiles"]:
            raise AuthenticationError(f"Unknown profile: {alias}", alias=alias)
        data["current"] = alias
        self._write(data)

    def save(self, profile: AuthProfile, alias: str) -> None:
        """Store ``profile`` under ``alias`` and make it the current one."""
        data = self._read()
        include_token = False
        if profile.session_token:
            if not self.token_store.save(self._token_key(alias), profile.session_token):
                logger.warning(f"Keyring unavailable, keeping session token for {alias} in {self.path}")
                include_token = True
        else:
            self.token_store.delete(self._token_key(alias))

        data["profiles"][alias] = profile.to_dict(include_token=include_token)
        data["current"] = alias
        self._write(data)
        profile.alias = alias
        profile.current = True
        logger.info(f"Saved profile {alias} to {self.path}")
