import asyncio
import json

import pytest

from locres.backend import BackendFactory, ResourceBackend
from locres.classes import JsonFormatConfiguration
from locres.config import ProjectConfiguration
from locres.errors import BackendNotSupportedError


@pytest.mark.parametrize(
    "name, expected",
    [
        ("resx", "resx"),
        ("RESX", "resx"),
        ("json", "json"),
        ("JsonLocalization", "json"),
        ("i18next", "i18next"),
        ("android", "android"),
        ("ios", "ios"),
        ("Apple", "ios"),
    ],
)
def test_get_backend_by_name(name, expected):
    factory = BackendFactory()

    assert factory.is_backend_available(name)
    assert factory.get_backend(name).name == expected


def test_unknown_backend():
    factory = BackendFactory()

    assert not factory.is_backend_available("po")
    with pytest.raises(BackendNotSupportedError) as info:
        factory.get_backend("po")
    assert info.value.available == factory.available_backends()
    assert factory.available_backends() == ["resx", "json", "i18next", "android", "ios"]


def test_backends_follow_configuration():
    config = ProjectConfiguration(android_base_name="app", ios_base_name="Main")
    factory = BackendFactory(config)

    assert factory.get_backend("android").discovery.resource_file_name == "app.xml"
    assert factory.get_backend("ios").writer.strings_file_name == "Main.strings"
    assert factory.get_backend("i18next").reader.config.i18next_compatible
    assert not factory.get_backend("json").reader.config.i18next_compatible


def test_resolve_prefers_json(tmp_path, write_file, resx_file):
    resx_file(tmp_path / "Resources.resx", [])
    write_file(tmp_path / "strings.json", json.dumps({"Title": "Hi {0}"}))
    write_file(tmp_path / "strings.fr.json", json.dumps({"Title": "Salut {0}"}))

    assert BackendFactory().resolve_from_path(str(tmp_path)).name == "json"


def test_resolve_detects_i18next(tmp_path, write_file):
    content = json.dumps({"item_one": "{{count}} item", "item_other": "{{count}} items"})
    write_file(tmp_path / "en.json", content)
    write_file(tmp_path / "de.json", content)

    assert BackendFactory().resolve_from_path(str(tmp_path)).name == "i18next"


def test_resolve_uses_configured_json_format(tmp_path, write_file):
    write_file(tmp_path / "en.json", json.dumps({"item_one": "x", "item_other": "y"}))
    config = ProjectConfiguration(json=JsonFormatConfiguration(use_nested_keys=False))

    backend = BackendFactory(config).resolve_from_path(str(tmp_path))

    assert backend.name == "json"
    assert backend.writer.config.use_nested_keys is False


def test_resolve_falls_back_to_resx(tmp_path, write_file, resx_file):
    assert BackendFactory().resolve_from_path(str(tmp_path)).name == "resx"

    write_file(tmp_path / "package.json", "{}")
    resx_file(tmp_path / "Resources.resx", [])
    assert BackendFactory().resolve_from_path(str(tmp_path)).name == "resx"


def test_facade_reads_and_writes(tmp_path, resx_file):
    resx_file(tmp_path / "Resources.resx", [("Title", "Hello", None)])
    backend: ResourceBackend = BackendFactory().get_backend("resx")

    files = backend.read_all(str(tmp_path))
    assert [x.get("Title").value for x in files] == ["Hello"]

    files[0].get("Title").value = "Bonjour"
    asyncio.run(backend.write_async(files[0]))
    languages = asyncio.run(backend.discover_languages_async(str(tmp_path)))
    file = asyncio.run(backend.read_async(languages[0]))
    assert file.get("Title").value == "Bonjour"

    french = backend.create_language_file("Resources", "fr", str(tmp_path), file)
    assert [x.code for x in backend.discover_languages(str(tmp_path))] == ["", "fr"]
    backend.delete_language_file(french)
    assert [x.code for x in backend.discover_languages(str(tmp_path))] == [""]
