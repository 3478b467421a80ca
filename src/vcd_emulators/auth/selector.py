"""
Authentication configuration selector.

Lets the user pick one of the stored Cloud Director profiles, refreshes an
expired session by asking for the password again, and stores new logins,
asking the user whether to trust an unknown certificate.
"""

import logging
from pathlib import Path
from typing import Any, Optional, Union

from .client import CloudDirectorClient
from .profiles import AuthProfile, UnauthorizedReason
from .prompts import ConsolePrompter

logger = logging.getLogger(__name__)

FileArg = Optional[Union[str, Path]]


class AuthConfigSelector:
    """Interactive front end over the Cloud Director client and its profile store."""

    def __init__(self, client: Optional[Any] = None, prompter: Optional[Any] = None,
                 output_func=print):
        self.client = client or CloudDirectorClient()
        self.prompter = prompter or ConsolePrompter()
        self._print = output_func

    def use(self, file: FileArg = None) -> Optional[AuthProfile]:
        """Ask which stored profile to make current and return it."""
        configs = self.client.get_configurations(file)
        if not configs:
            logger.info("No stored configurations found, log in first")
            return None

        current = next((config.alias for config in configs if config.current), None)
        answers = self.prompter.prompt([{
            "type": "list",
            "name": "alias",
            "message": "Select configuration",
            "choices": [config.alias for config in configs],
            "default": current,
        }])
        self.client.use(answers["alias"], file)
        logger.info(f"Using configuration {answers['alias']}")
        return self.get_cloud_director_config(file)

    def get_cloud_director_config(self, file: FileArg = None) -> Optional[AuthProfile]:
        """
        Current profile; an expired session is renewed after asking for the password.

        Profiles unauthorized for any other reason are returned as they are.
        """
        config = self.client.from_file(file)
        if config is None:
            logger.info("No current configuration found")
            return None
        if config.authorized or config.reason != UnauthorizedReason.TOKEN_EXPIRED:
            return config

        logger.info(f"Session of {config.alias} expired")
        answers = self.prompter.prompt([{
            "type": "password",
            "name": "password",
            "message": f"Password for {config.username}@{config.org} on {config.base_path}:",
        }])
        refreshed = self.client.with_username_and_password(
            config.base_path, config.username, config.org, answers["password"],
            certificate=config.certificate
        )
        refreshed.alias = config.alias
        self.client.save_config(refreshed, config.alias, file)
        return refreshed

    def login_and_store(self, alias: str, host: str, user: str, org: str, password: str,
                        file: FileArg = None) -> AuthProfile:
        """Log in and store the session as ``alias``, whatever the outcome."""
        connection = self.client.with_username_and_password(host, user, org, password)
        if not connection.authorized and connection.reason == UnauthorizedReason.CERTIFICATE_UNTRUSTED:
            self._print(f"The certificate presented by {host} is not trusted:")
            self._print(connection.certificate or "<certificate unavailable>")
            answers = self.prompter.prompt([{
                "type": "confirm",
                "name": "trust",
                "message": "Do you trust this certificate?",
                "default": False,
            }])
            trusted = bool(answers["trust"])
            if trusted and connection.certificate:
                connection = self.client.with_username_and_password(
                    host, user, org, password, certificate=connection.certificate
                )
            connection.authorized = trusted
            if trusted:
                connection.reason = None

        self.client.save_config(connection, alias, file)
        if connection.authorized:
            logger.info(f"Stored configuration {alias}")
        else:
            logger.warning(f"Stored configuration {alias} without an authorized session")
        return connection


def use(file: FileArg = None) -> Optional[AuthProfile]:
    return AuthConfigSelector().use(file)


def get_cloud_director_config(file: FileArg = None) -> Optional[AuthProfile]:
    return AuthConfigSelector().get_cloud_director_config(file)


def login_and_store(alias: str, host: str, user: str, org: str, password: str,
                    file: FileArg = None) -> AuthProfile:
    return AuthConfigSelector().login_and_store(alias, host, user, org, password, file)
