"""
Relay core settings provider
"""

import os
import sys
import functools
from typing import Any, Callable, List, Optional, Tuple, Type

try:
    import ujson as json
except ImportError:
    import json

from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict
)

from .schemas import config


SETTINGS_LOG_ERROR_FUNCTION: Optional[Callable[[str], Any]] = functools.partial(print, file=sys.stderr)
"""
optional function to accept log messages on failure
"""

SETTINGS_LOG_INFO_FUNCTION: Optional[Callable[[str], Any]] = None
"""
optional function to accept log messages when creating a new configuration file
"""

CONFIG_PATHS: List[str] = ["config.json", os.path.join("..", "config.json")]
"""
list of search paths for the config file, can be overwritten by the env variable ``CONFIG_PATH``
"""

if os.environ.get("CONFIG_PATH"):
    CONFIG_PATHS = [os.environ.get("CONFIG_PATH")]


def find_config_file() -> Optional[str]:
    """
    Return the first existing config file of the search paths (or None)
    """

    for path in CONFIG_PATHS:
        if os.path.isfile(path):
            return path
    return None


class Settings(BaseSettings, config.CoreConfig):
    """
    Relay core settings

    Settings are read once per process and handed to the API and its upstream
    clients explicitly; the core never reads the environment itself. Values
    from environment variables (nested with ``__``, e.g. ``GITHUB__TOKEN``)
    take precedence over the ``.env`` file, the secrets directory and the
    JSON config file, which in turn override constructor arguments.
    """

    model_config = SettingsConfigDict(env_nested_delimiter="__", env_file=".env", extra="ignore")

    @classmethod
    def settings_customise_sources(
            cls,
            settings_cls: Type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,
            file_secret_settings: PydanticBaseSettingsSource
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            env_settings,
            dotenv_settings,
            file_secret_settings,
            JsonConfigSettingsSource(settings_cls, json_file=find_config_file()),
            init_settings
        )


def get_default_config() -> config.CoreConfig:
    return config.CoreConfig()


def store_configuration(conf: Optional[config.CoreConfig] = None, path: Optional[str] = None) -> config.CoreConfig:
    """
    Write the given (or the default) configuration to the config file
    """

    p = path or os.path.abspath(CONFIG_PATHS[0])
    conf = conf or get_default_config()
    with open(p, "w", encoding="UTF-8") as f:
        json.dump(conf.model_dump(mode="json"), f, indent=4)
    SETTINGS_LOG_INFO_FUNCTION and SETTINGS_LOG_INFO_FUNCTION(f"A new config file has been created as {p!r}.")
    return conf


def load_settings(**overrides) -> Settings:
    """
    Load the settings, reporting invalid config files via the error log function
    """

    try:
        return Settings(**overrides)
    except ValueError:
        if SETTINGS_LOG_ERROR_FUNCTION:
            SETTINGS_LOG_ERROR_FUNCTION(
                f"Loading the configuration failed. Ensure that the config "
                f"file {find_config_file()!r} and the environment are valid."
            )
        raise
