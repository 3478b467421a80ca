"""
Configuration management for the emulator tooling.

Loads key/value settings from .env, YAML and JSON files into the process
environment, and describes the well-known file layout of the ui-emulator host
application.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator
import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAMES = [".env", "vcd-emulators.yaml", "vcd-emulators.json"]


def _flatten_dict(d: Dict[str, Any], parent_key: str = "", sep: str = "_") -> Dict[str, str]:
    """
    Recursively flattens a nested dictionary into environment-style
    keys (uppercase, underscore separated) and string values.
    Example:
        {"vcd_emulators": {"log": {"level": "DEBUG"}}}
        -> {"VCD_EMULATORS_LOG_LEVEL": "DEBUG"}
    """
    items = {}
    for k, v in d.items():
        new_key = f"{parent_key}{sep}{k}" if parent_key else k
        if isinstance(v, dict):
            items.update(_flatten_dict(v, new_key, sep=sep))
        else:
            items[new_key.upper()] = str(v)
    return items


def _set_env_vars(config: Dict[str, Any], overwrite: bool = False):
    """Set environment variables from dictionary."""
    for key, value in config.items():
        if not overwrite and key in os.environ:
            continue
        os.environ[key] = str(value)
        logger.debug(f"Set environment variable: {key}")


def _load_from_env_file(env_path: Path, overwrite: bool = True) -> bool:
    """Load variables from a .env file."""
    if env_path.is_file():
        load_dotenv(dotenv_path=env_path, override=overwrite)
        logger.info(f"Loaded environment variables from {env_path}")
        return True
    return False


def _load_from_yaml(yaml_path: Path, overwrite: bool = True) -> bool:
    """
    Load environment variables from a YAML file.
    Supports both flat and grouped YAML structures.
    Example grouped YAML:
        vcd_emulators:
          log:
            level: DEBUG
    Will produce env vars:
        VCD_EMULATORS_LOG_LEVEL=DEBUG
    """
    if not yaml_path.exists():
        logger.debug(f"YAML config file not found: {yaml_path}")
        return False

    try:
        with open(yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            logger.error(f"YAML file {yaml_path} is not a mapping at root level.")
            return False

        _set_env_vars(_flatten_dict(data), overwrite=overwrite)
        logger.info(f"Loaded environment variables from {yaml_path}")
        return True

    except yaml.YAMLError as e:
        logger.exception(f"Failed to parse YAML config {yaml_path}: {e}")

    return False


def _load_from_json(json_path: Path, overwrite: bool = True) -> bool:
    """Load variables from a JSON config file."""
    if json_path.exists():
        with open(json_path, "r", encoding="utf-8") as f:
            data = json.load(f) or {}
        _set_env_vars(_flatten_dict(data), overwrite=overwrite)
        logger.info(f"Loaded environment variables from {json_path}")
        return True
    return False


def load_config(
    search_paths: Optional[list] = None,
    overwrite: bool = True,
    required_keys: Optional[list] = None
):
    """
    Load configuration variables into os.environ.

    Args:
        search_paths (list): Optional list of file paths to check.
        overwrite (bool): Whether to overwrite existing env vars.
        required_keys (list): List of keys that must be present after load.

    Raises:
        ConfigurationError: If required keys are missing.
    """
    search_paths = search_paths or [Path.cwd() / name for name in DEFAULT_CONFIG_NAMES]

    loaded = False
    for path in search_paths:
        path = Path(path)
        if path.name == ".env" or path.suffix == ".env":
            loaded = _load_from_env_file(path, overwrite) or loaded
        elif path.suffix in [".yaml", ".yml"]:
            loaded = _load_from_yaml(path, overwrite) or loaded
        elif path.suffix == ".json":
            loaded = _load_from_json(path, overwrite) or loaded

    if not loaded:
        logger.debug("No configuration file found, relying on system env vars only.")

    if required_keys:
        missing = [key for key in required_keys if key not in os.environ]
        if missing:
            raise ConfigurationError(
                f"Missing required config keys: {missing}",
                validation_errors=missing
            )

    return loaded


def get_config(key: str, default: Any = None, cast_type: type = str):
    """
    Get a configuration value from the environment.

    Args:
        key (str): Environment variable name.
        default (Any): Default value if not found.
        cast_type (type): Type to cast the value into.

    Returns:
        Any: The configuration value.
    """
    value = os.environ.get(key, default)
    try:
        return cast_type(value) if value is not None else None
    except (TypeError, ValueError):
        logger.warning(f"Failed to cast config value for key '{key}' to {cast_type.__name__}")
        return default


class EmulatorLayout(BaseModel):
    """Well-known file names and fixed entries of the ui-emulator host application."""
    build_descriptor: str = "angular.json"
    ts_descriptor: str = "tsconfig.emulator.json"
    env_dir: str = ".env"
    environment_descriptor: str = "environment.json"
    proxy_descriptor: str = "proxy.conf.json"
    environment_runtime: str = "environment.runtime.json"
    proxy_runtime: str = "proxy.conf.runtime.json"
    plugins_file: str = "plugins.json"
    build_project: str = "emulator"
    favicon: str = "node_modules/@vcd/ui-emulator/src/favicon.ico"
    runtime_config_glob: str = ".env/*.json"
    host_source_glob: str = "node_modules/@vcd/ui-emulator/src/**/*.ts"
    dev_server_command: List[str] = Field(default=["ng", "serve"], min_length=1)

    @field_validator(
        'build_descriptor', 'ts_descriptor', 'env_dir', 'environment_descriptor',
        'proxy_descriptor', 'environment_runtime', 'proxy_runtime', 'plugins_file',
        'build_project'
    )
    @classmethod
    def validate_name(cls, v):
        """File and project names must not be blank."""
        if not v.strip():
            raise ValueError("layout names must not be empty")
        return v


def load_emulator_layout(path: Optional[Union[str, Path]] = None) -> EmulatorLayout:
    """
    Build the emulator layout, applying overrides from a YAML file when given.

    The file may hold the fields at the root or under an ``emulator`` key.
    """
    if path is None:
        return EmulatorLayout()

    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Layout file not found: {path}", config_path=str(path))

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in layout file: {path}", config_path=str(path), cause=e
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Layout file {path} is not a mapping", config_path=str(path))

    try:
        return EmulatorLayout(**data.get("emulator", data))
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid layout in {path}",
            config_path=str(path),
            validation_errors=[err["msg"] for err in e.errors()],
            cause=e
        ) from e
