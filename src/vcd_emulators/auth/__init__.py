"""Cloud Director authentication profiles and the interactive selector over them."""

from .client import CloudDirectorClient
from .profiles import AuthProfile, KeyringTokenStore, ProfileStore, UnauthorizedReason
from .prompts import ConsolePrompter
from .selector import AuthConfigSelector, get_cloud_director_config, login_and_store, use

__all__ = [
    'CloudDirectorClient',
    'AuthProfile',
    'KeyringTokenStore',
    'ProfileStore',
    'UnauthorizedReason',
    'ConsolePrompter',
    'AuthConfigSelector',
    'get_cloud_director_config',
    'login_and_store',
    'use',
]
