"""
Special schemas for the configuration file and its properties
"""

from typing import Dict, List, Optional, Union

import pydantic


class ServerConfig(pydantic.BaseModel):
    host: str = "127.0.0.1"
    port: pydantic.conint(gt=0, lt=65536) = 8000
    api_key: Optional[pydantic.constr(min_length=1)] = None


class GitHubConfig(pydantic.BaseModel):
    token: Optional[str] = None
    owner: Optional[str] = None
    repo: Optional[str] = None
    base_url: str = "https://api.github.com"
    user_agent: str = "relay-core"
    default_branch: pydantic.constr(min_length=1) = "main"
    max_attempts: pydantic.PositiveInt = 3
    base_delay: pydantic.confloat(ge=0) = 0.1
    strict_lookup: bool = False
    timeout: pydantic.PositiveFloat = 30.0

    @pydantic.field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class TelegramConfig(pydantic.BaseModel):
    bot_token: Optional[str] = None
    base_url: str = "https://api.telegram.org"
    timeout: pydantic.PositiveFloat = 30.0

    @pydantic.field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class CloudinaryConfig(pydantic.BaseModel):
    cloud_name: Optional[str] = None
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    folder: str = "relay-uploads"
    allowed_types: List[str] = ["image/jpeg", "image/png", "image/gif", "image/webp"]
    base_url: str = "https://api.cloudinary.com"
    timeout: pydantic.PositiveFloat = 60.0

    @pydantic.field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class LoggingConfig(pydantic.BaseModel):
    version: pydantic.conint(ge=1, le=1) = 1
    disable_existing_loggers: bool = False
    incremental: bool = False
    filters: Dict[str, Dict[str, Union[str, list]]] = {
        "multipart_no_debug": {
            "()": "relay_core.misc.logger.NoDebugFilter",
            "name": "multipart.multipart"
        }
    }
    formatters: Dict[str, Dict[str, str]] = {
        "default": {
            "style": "{",
            "format": "{asctime}: Relay {process}: [{levelname}] {name}: {message}",
            "datefmt": "%d.%m.%Y %H:%M:%S"
        },
        "file": {
            "style": "{",
            "format": "{asctime} ({process}): [{levelname}] {name}: {message}",
            "datefmt": "%d.%m.%Y %H:%M"
        },
        "access": {
            "()": "uvicorn.logging.AccessFormatter",
            "fmt": "%(asctime)s %(client_addr)s - \"%(request_line)s\" %(status_code)s"
        }
    }
    loggers: Dict[str, dict] = {
        "uvicorn.access": {
            "level": "INFO",
            "handlers": ["access"],
            "propagate": False
        }
    }
    handlers: Dict[str, Dict[str, Union[str, list]]] = {
        "default": {
            "level": "INFO",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "default",
            "filters": ["multipart_no_debug"]
        },
        "file": {
            "level": "DEBUG",
            "class": "logging.FileHandler",
            "filename": "./relay.log",
            "formatter": "file",
            "filters": ["multipart_no_debug"]
        },
        "access": {
            "level": "INFO",
            "class": "logging.FileHandler",
            "filename": "./access.log",
            "formatter": "access"
        }
    }
    root: dict = {
        "level": "INFO",
        "handlers": ["default", "file"]
    }


class CoreConfig(pydantic.BaseModel):
    server: ServerConfig = pydantic.Field(default_factory=ServerConfig)
    github: GitHubConfig = pydantic.Field(default_factory=GitHubConfig)
    telegram: TelegramConfig = pydantic.Field(default_factory=TelegramConfig)
    cloudinary: CloudinaryConfig = pydantic.Field(default_factory=CloudinaryConfig)
    logging: LoggingConfig = pydantic.Field(default_factory=LoggingConfig)
