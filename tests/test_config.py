import pathlib

import pytest

from locres.classes import JsonFormatConfiguration
from locres.config import ProjectConfiguration, load_config
from locres.errors import ConfigurationError

CONFIG_FOLDER = pathlib.Path(__file__).parent.parent / "config"


def test_load_config(tmp_path, write_file):
    path = write_file(
        tmp_path / "config.yml",
        """logging:
  level: DEBUG
  format: "%(message)s"
  datefmt: "%H:%M"
resources:
  backend: Android
  default_language: en
  android_base_name: app
  json:
    use_nested_keys: false
    base_name: messages
""",
    )

    config = load_config(str(path))

    assert config.logging.level == "DEBUG"
    assert config.logging.format == "%(message)s"
    assert config.backend == "android"
    assert config.default_language == "en"
    assert config.android_base_name == "app"
    assert config.ios_base_name == "Localizable"
    assert config.json == JsonFormatConfiguration(use_nested_keys=False, base_name="messages")


def test_missing_config_uses_defaults(tmp_path):
    assert load_config(str(tmp_path / "config.yml")) == ProjectConfiguration()


def test_empty_config_uses_defaults(tmp_path, write_file):
    path = write_file(tmp_path / "config.yml", "")

    config = load_config(str(path))

    assert config == ProjectConfiguration()
    assert config.json is None


@pytest.mark.parametrize(
    "content",
    [
        "logging: [unclosed",
        "- just\n- a list\n",
        "logging: nope\n",
        "resources:\n  json:\n    unknown_option: true\n",
        "resources:\n  backend: 3\n",
    ],
)
def test_invalid_config(tmp_path, write_file, content):
    path = write_file(tmp_path / "config.yml", content)

    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_shipped_config_loads():
    config = load_config(str(CONFIG_FOLDER / "config.yml"))

    assert config.logging.level == "INFO"
    assert config.backend is None
    assert config.json is None
