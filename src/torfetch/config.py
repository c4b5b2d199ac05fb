"""
Configuration loading for torfetch.

Settings come from a YAML file (by default ``torfetch.yaml`` in the
platformdirs user config directory) using upper-case keys::

    REPOSITORY_URL: https://dist.torproject.org/torbrowser/
    LOCALE: en-US
    REQUEST_TIMEOUT: 300
    REQUIRE_SIGNATURE: false

``TORFETCH_REPOSITORY_URL`` overrides the repository URL from the file.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs
import yaml

from torfetch.constants import (
    APP_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_LOCALE,
    DEFAULT_MAX_CONCURRENT,
    DEFAULT_REPOSITORY_URL,
    DEFAULT_REQUEST_TIMEOUT,
    OPENPGP_KEYS_ENDPOINT,
    REPOSITORY_URL_ENV_VAR,
    TOR_BROWSER_KEY_FINGERPRINT,
)
from torfetch.exceptions import ConfigFileError, ConfigurationError
from torfetch.log_utils import logger
from torfetch.utils import Pathish


@dataclass(frozen=True)
class TorfetchConfig:
    """Settings shared by the repository client, HTTP client and downloader."""

    repository_url: str = DEFAULT_REPOSITORY_URL
    locale: str = DEFAULT_LOCALE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    require_signature: bool = False
    key_fingerprint: str = TOR_BROWSER_KEY_FINGERPRINT
    keys_endpoint: str = OPENPGP_KEYS_ENDPOINT
    scratch_dir: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.repository_url:
            raise ConfigurationError("REPOSITORY_URL must not be empty")
        if self.request_timeout <= 0:
            raise ConfigurationError(
                "REQUEST_TIMEOUT must be positive", details=str(self.request_timeout)
            )
        if self.chunk_size < 1:
            raise ConfigurationError(
                "CHUNK_SIZE must be >= 1", details=str(self.chunk_size)
            )
        if self.max_concurrent < 1:
            raise ConfigurationError(
                "MAX_CONCURRENT must be >= 1", details=str(self.max_concurrent)
            )


def default_config_path() -> Path:
    return Path(platformdirs.user_config_dir(APP_NAME)) / CONFIG_FILE_NAME


_CONVERTERS = {
    "request_timeout": float,
    "chunk_size": int,
    "max_concurrent": int,
}


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "yes", "1"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "no", "0"):
        return False
    raise ConfigurationError(f"Invalid boolean for {key.upper()}", details=repr(value))


def config_from_mapping(data: Dict[str, Any]) -> TorfetchConfig:
    """
    Build a TorfetchConfig from a mapping of upper-case keys.

    Unknown keys are ignored with a warning.

    Raises:
        ConfigurationError: If a value has the wrong type or is out of range.
    """
    known = {field.name for field in fields(TorfetchConfig)}
    kwargs: Dict[str, Any] = {}

    for raw_key, value in data.items():
        key = str(raw_key).lower()
        if key not in known:
            logger.warning(f"Ignoring unknown configuration key: {raw_key}")
            continue
        if value is None:
            continue
        if key == "require_signature":
            kwargs[key] = _coerce_bool(key, value)
        elif key in _CONVERTERS:
            try:
                kwargs[key] = _CONVERTERS[key](value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Invalid value for {key.upper()}", details=repr(value)
                ) from e
        else:
            kwargs[key] = str(value)

    env_repository_url = os.environ.get(REPOSITORY_URL_ENV_VAR)
    if env_repository_url:
        kwargs["repository_url"] = env_repository_url

    return TorfetchConfig(**kwargs)


def load_config(path: Optional[Pathish] = None) -> TorfetchConfig:
    """
    Load configuration from a YAML file.

    Parameters:
        path: File to read. When omitted the platformdirs location is used, and a
            missing file there yields the defaults.

    Returns:
        TorfetchConfig: The loaded configuration.

    Raises:
        ConfigFileError: If an explicitly given file is missing, or any file cannot be read or parsed.
        ConfigurationError: If a value is invalid.
    """
    explicit = path is not None
    config_path = Path(path) if explicit else default_config_path()

    if not config_path.exists():
        if explicit:
            raise ConfigFileError(f"Configuration file not found: {config_path}")
        logger.debug(f"No configuration file at {config_path}; using defaults")
        return config_from_mapping({})

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigFileError(
            f"Could not read configuration file {config_path}", details=str(e)
        ) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigFileError(
            f"Configuration file {config_path} must contain a mapping",
            details=type(data).__name__,
        )

    logger.debug(f"Loaded configuration from {config_path}")
    return config_from_mapping(data)
