import pytest

from locres.classes import LanguageInfo, ResourceEntry, ResourceFile, plural_entry
from locres.errors import (
    DefaultLanguageError,
    InvalidCultureError,
    LanguageExistsError,
    ResourceNotFoundError,
    ResourceParseError,
)
from locres.resx import ResxResourceDiscovery, ResxResourceReader, ResxResourceWriter


def language_for(path, code="", is_default=True):
    return LanguageInfo("Resources", code, "Default" if is_default else code, is_default, str(path))


def read_pairs(path):
    file = ResxResourceReader().read(language_for(path))
    return [(x.key, x.value) for x in file.entries]


def test_discovery_groups_by_base_name(tmp_path, resx_file):
    resx_file(tmp_path / "Resources.resx", [])
    resx_file(tmp_path / "Resources.fr.resx", [])
    resx_file(tmp_path / "Resources.de-DE.resx", [])
    resx_file(tmp_path / "Errors.resx", [])

    languages = ResxResourceDiscovery().discover_languages(str(tmp_path))

    assert [(x.base_name, x.code) for x in languages] == [
        ("Errors", ""),
        ("Resources", ""),
        ("Resources", "de-DE"),
        ("Resources", "fr"),
    ]
    assert languages[1].is_default
    assert languages[1].name == "Default"
    assert not languages[2].is_default


def test_discovery_without_neutral_file_prefers_english(tmp_path, resx_file):
    resx_file(tmp_path / "Resources.fr.resx", [])
    resx_file(tmp_path / "Resources.en.resx", [])

    languages = ResxResourceDiscovery().discover_languages(str(tmp_path))

    assert languages[0].is_default
    assert languages[0].code == ""
    assert languages[0].file_path.endswith("Resources.en.resx")
    assert [x.code for x in languages[1:]] == ["fr"]


def test_discovery_missing_directory(tmp_path):
    with pytest.raises(ResourceNotFoundError):
        ResxResourceDiscovery().discover_languages(str(tmp_path / "missing"))


def test_reader_reads_values_and_comments(tmp_path, write_file):
    path = write_file(
        tmp_path / "Resources.resx",
        """<?xml version="1.0" encoding="utf-8"?>
<root>
  <resheader name="resmimetype"><value>text/microsoft-resx</value></resheader>
  <data name="Title" xml:space="preserve">
    <value>Hello &amp; welcome</value>
    <comment>Window title</comment>
  </data>
  <data><value>nameless</value></data>
  <data name="Empty" />
</root>
""",
    )

    entries = ResxResourceReader().read(language_for(path)).entries

    assert entries == [
        ResourceEntry("Title", "Hello & welcome", "Window title"),
        ResourceEntry("Empty", ""),
    ]


def test_reader_reports_parse_position(tmp_path, write_file):
    path = write_file(tmp_path / "Resources.resx", "<root>\n  <data name='a'>\n</root>\n")

    with pytest.raises(ResourceParseError) as info:
        ResxResourceReader().read(language_for(path))
    assert info.value.line is not None
    assert "line" in str(info.value)


def test_reader_missing_file(tmp_path):
    with pytest.raises(ResourceNotFoundError):
        ResxResourceReader().read(language_for(tmp_path / "Resources.resx"))


def test_writer_keeps_order_removes_and_appends(tmp_path, resx_file):
    path = resx_file(
        tmp_path / "Resources.resx",
        [("A", "1", None), ("B", "2", None), ("C", "3", "keep me")],
    )
    entries = [
        ResourceEntry("C", "33", "keep me"),
        ResourceEntry("A", "11"),
        ResourceEntry("D", "4"),
    ]

    ResxResourceWriter().write(ResourceFile(language_for(path), entries))

    assert read_pairs(path) == [("A", "11"), ("C", "33"), ("D", "4")]
    text = path.read_text(encoding="utf-8")
    assert text.startswith('<?xml version="1.0" encoding="utf-8"?>')
    assert '\n  <data name="D"' in text
    assert "<resheader" in text
    assert "keep me" in text


def test_writer_matches_duplicates_by_occurrence(tmp_path, resx_file):
    path = resx_file(
        tmp_path / "Resources.resx",
        [("A", "first", None), ("B", "b", None), ("A", "second", None)],
    )
    entries = [ResourceEntry("A", "x"), ResourceEntry("B", "y"), ResourceEntry("A", "z")]

    ResxResourceWriter().write(ResourceFile(language_for(path), entries))

    assert read_pairs(path) == [("A", "x"), ("B", "y"), ("A", "z")]


def test_writer_drops_extra_duplicate_occurrences(tmp_path, resx_file):
    path = resx_file(
        tmp_path / "Resources.resx",
        [("A", "first", None), ("B", "b", None), ("A", "second", None)],
    )

    ResxResourceWriter().write(
        ResourceFile(language_for(path), [ResourceEntry("A", "x"), ResourceEntry("B", "y")])
    )

    assert read_pairs(path) == [("A", "x"), ("B", "y")]


def test_writer_appends_surplus_duplicates(tmp_path, resx_file):
    path = resx_file(tmp_path / "Resources.resx", [("A", "1", None)])
    entries = [ResourceEntry("A", "x"), ResourceEntry("A", "y"), ResourceEntry("B", "z")]

    ResxResourceWriter().write(ResourceFile(language_for(path), entries))

    assert read_pairs(path) == [("A", "x"), ("A", "y"), ("B", "z")]


def test_writer_keys_are_case_insensitive(tmp_path, resx_file):
    path = resx_file(tmp_path / "Resources.resx", [("Title", "old", "note")])

    ResxResourceWriter().write(ResourceFile(language_for(path), [ResourceEntry("title", "new")]))

    assert read_pairs(path) == [("title", "new")]
    assert "note" not in path.read_text(encoding="utf-8")


def test_writer_creates_new_document(tmp_path):
    path = tmp_path / "Resources.resx"
    entries = [
        ResourceEntry("Title", "Hello", "Greeting"),
        plural_entry("Items", {"one": "{0} item", "other": "{0} items"}),
    ]

    ResxResourceWriter().write(ResourceFile(language_for(path), entries))

    text = path.read_text(encoding="utf-8")
    assert text.count("<resheader") == 4
    assert 'xml:space="preserve"' in text
    file = ResxResourceReader().read(language_for(path))
    assert file.entries == [
        ResourceEntry("Title", "Hello", "Greeting"),
        ResourceEntry("Items", "{0} items"),
    ]


def test_create_language_file_blanks_values(tmp_path, resx_file):
    path = resx_file(tmp_path / "Resources.resx", [("Title", "Hello", "Greeting")])
    source = ResxResourceReader().read(language_for(path))
    writer = ResxResourceWriter()

    language = writer.create_language_file("Resources", "fr", str(tmp_path), source)

    assert language.code == "fr"
    assert not language.is_default
    assert language.file_path == str(tmp_path / "Resources.fr.resx")
    created = ResxResourceReader().read(language)
    assert created.entries == [ResourceEntry("Title", "", "Greeting")]

    with pytest.raises(LanguageExistsError):
        writer.create_language_file("Resources", "fr", str(tmp_path), source)
    with pytest.raises(InvalidCultureError):
        writer.create_language_file("Resources", "xx", str(tmp_path))


def test_create_language_file_without_entries(tmp_path):
    language = ResxResourceWriter().create_language_file(
        "Resources", "de", str(tmp_path), copy_entries=False
    )

    assert ResxResourceReader().read(language).entries == []


def test_delete_language_file(tmp_path, resx_file):
    default = resx_file(tmp_path / "Resources.resx", [])
    french = resx_file(tmp_path / "Resources.fr.resx", [])
    writer = ResxResourceWriter()

    with pytest.raises(DefaultLanguageError):
        writer.delete_language_file(language_for(default))

    writer.delete_language_file(language_for(french, "fr", is_default=False))
    assert not french.exists()
    assert default.exists()

    with pytest.raises(ResourceNotFoundError):
        writer.delete_language_file(language_for(french, "fr", is_default=False))
