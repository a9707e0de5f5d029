from dataclasses import dataclass, field
import logging
import os
from typing import Any

import yaml

from locres.classes import JsonFormatConfiguration
from locres.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.yml"


@dataclass(frozen=True)
class LoggingConfiguration:
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class ProjectConfiguration:
    logging: LoggingConfiguration = field(default_factory=LoggingConfiguration)
    backend: str | None = None
    default_language: str | None = None
    android_base_name: str = "strings"
    ios_base_name: str = "Localizable"
    # None lets the format detector decide between the JSON dialects
    json: JsonFormatConfiguration | None = None


def config_file_path(config_folder: str) -> str:
    return os.path.abspath(os.path.join(config_folder, CONFIG_FILE_NAME))


def load_config(path: str) -> ProjectConfiguration:
    """Read the YAML configuration at ``path``.

    A missing file is logged and yields the defaults; a file that is not
    valid YAML, or holds values of the wrong shape, raises ``ConfigurationError``.
    """
    try:
        with open(path, "r", encoding="utf-8") as file:
            data = yaml.safe_load(file)
    except FileNotFoundError:
        logger.error(f"Configuration file not found: {path}")
        return ProjectConfiguration()
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid configuration file {path}: {exc}") from exc

    return parse_config(data or {})


def _block(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{name}' must be a mapping, got {type(value).__name__}")
    return value


def _optional_str(data: dict[str, Any], name: str) -> str | None:
    value = data.get(name)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"'{name}' must be a string")
    return value


def parse_config(data: Any) -> ProjectConfiguration:
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration root must be a mapping")

    try:
        logging_config = LoggingConfiguration(**_block(data, "logging"))
    except TypeError as exc:
        raise ConfigurationError(f"Invalid logging configuration: {exc}") from exc

    resources = _block(data, "resources")
    json_config = None
    if resources.get("json") is not None:
        try:
            json_config = JsonFormatConfiguration(**_block(resources, "json"))
        except TypeError as exc:
            raise ConfigurationError(f"Invalid json configuration: {exc}") from exc

    backend = _optional_str(resources, "backend")
    return ProjectConfiguration(
        logging=logging_config,
        backend=backend.lower() if backend else None,
        default_language=_optional_str(resources, "default_language"),
        android_base_name=_optional_str(resources, "android_base_name") or "strings",
        ios_base_name=_optional_str(resources, "ios_base_name") or "Localizable",
        json=json_config,
    )
