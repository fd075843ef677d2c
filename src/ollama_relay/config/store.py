"""JSON config file kept in the per-user config directory."""
from __future__ import annotations
import json
import logging
import os
from pathlib import Path

from platformdirs import user_config_dir
from pydantic import ValidationError

from ollama_relay.common.errors import AppDirError, ConfigIOError, ConfigParseError
from ollama_relay.common.schema import AppConfig

LOGGER = logging.getLogger("ollama_relay.config")

APP_NAME = "ollama-relay"
CONFIG_FILENAME = "config.json"

def default_config_dir() -> Path:
    """
    Resolve the directory holding ``config.json``.

    $RELAY_CONFIG_DIR wins; otherwise the platform's per-user config dir.
    """
    override = os.getenv("RELAY_CONFIG_DIR")
    if override:
        return Path(override).expanduser()
    try:
        return Path(user_config_dir(APP_NAME))
    except (OSError, KeyError) as e:
        LOGGER.error("Could not resolve user config dir: %s", e)
        raise AppDirError() from e


class ConfigStore:
    """Load and save ``AppConfig`` under an explicitly given directory."""

    def __init__(self, config_dir: Path | str) -> None:
        self.config_dir = Path(config_dir)

    @property
    def path(self) -> Path:
        return self.config_dir / CONFIG_FILENAME

    def load(self) -> AppConfig:
        """Read the config, writing the defaults first if the file is missing."""
        path = self.path
        if not path.exists():
            LOGGER.info("No config at %s; writing defaults", path)
            config = AppConfig()
            self.save(config)
            return config

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigIOError(e) from e
        try:
            return AppConfig.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigParseError(e) from e

    def save(self, config: AppConfig) -> None:
        path = self.path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            raise ConfigIOError(e) from e
        LOGGER.debug("Saved config to %s", path)

    def set_openai_api_key(self, api_key: str) -> AppConfig:
        config = self.load()
        config.openai_api_key = api_key
        self.save(config)
        return config
