"""Configuration loading utilities."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..constants import DEFAULT_CONFIG_FILE
from ..errors.internal import ConfigError
from .model import ClientConfig

# Environment variable -> config field
ENV_OVERRIDES = {
    "TWITCH_USERNAME": "username",
    "TWITCH_ACCESS_TOKEN": "access_token",
    "TWITCH_CLIENT_ID": "client_id",
    "TWITCH_CHANNELS": "channels",
    "TWITCH_IRC_WS_URL": "server_url",
}


class ConfigLoader:
    """Loads the client configuration from a JSON file plus environment.

    The file is optional; environment variables override file values.
    """

    def __init__(
        self,
        config_file: str | os.PathLike[str] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.environ = environ if environ is not None else os.environ
        self.config_file = Path(
            config_file or self.environ.get("TWITCH_IRC_CONF_FILE", DEFAULT_CONFIG_FILE)
        )

    def load_raw(self) -> dict[str, Any]:
        """Read the JSON file.

        Returns:
            The decoded object, or an empty dict when the file does not exist.

        Raises:
            ConfigError: If the file is unreadable or not a JSON object.
        """
        try:
            with self.config_file.open(encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logging.debug(f"📁 No configuration file at {self.config_file}")
            return {}
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(
                f"Cannot read configuration file {self.config_file}: {str(e)}"
            ) from e
        if not isinstance(data, dict):
            raise ConfigError(
                f"Configuration file {self.config_file} must contain a JSON object"
            )
        return data

    def apply_environment(self, data: dict[str, Any]) -> dict[str, Any]:
        merged = dict(data)
        for env_name, field_name in ENV_OVERRIDES.items():
            value = self.environ.get(env_name)
            if value:
                merged[field_name] = value
        return merged

    def load(self) -> ClientConfig:
        """Load and validate the configuration.

        Raises:
            ConfigError: If the file is unreadable or validation fails.
        """
        data = self.apply_environment(self.load_raw())
        try:
            config = ClientConfig.from_dict(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {str(e)}") from e
        logging.info(
            f"✅ Configuration loaded user={config.username or '-'} channels={len(config.channels)}"
        )
        return config


def load_config(
    config_file: str | os.PathLike[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> ClientConfig:
    return ConfigLoader(config_file, environ).load()
