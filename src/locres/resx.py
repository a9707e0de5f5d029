from collections import defaultdict
import logging
import pathlib

from lxml import etree

from locres.classes import LanguageInfo, ResourceEntry, ResourceFile, blank_copy
from locres.cultures import (
    build_languages,
    culture_display_name,
    is_valid_culture_code,
    sort_languages,
    split_resource_name,
)
from locres.errors import (
    DefaultLanguageError,
    InvalidCultureError,
    LanguageExistsError,
    ResourceNotFoundError,
)
from locres.fsutil import atomic_write
from locres.xmlutil import (
    XML_SPACE,
    append_indented,
    parse_xml_file,
    remove_element,
    to_bytes,
)

logger = logging.getLogger(__name__)

RESX_EXTENSION = ".resx"
RESHEADERS = (
    ("resmimetype", "text/microsoft-resx"),
    ("version", "2.0"),
    (
        "reader",
        "System.Resources.ResXResourceReader, System.Windows.Forms, Version=4.0.0.0, "
        "Culture=neutral, PublicKeyToken=b77a5c561934e089",
    ),
    (
        "writer",
        "System.Resources.ResXResourceWriter, System.Windows.Forms, Version=4.0.0.0, "
        "Culture=neutral, PublicKeyToken=b77a5c561934e089",
    ),
)


class ResxResourceDiscovery:
    def __init__(self, default_language_code: str | None = None) -> None:
        self.default_language_code = default_language_code

    def discover_languages(self, path: str) -> list[LanguageInfo]:
        folder = pathlib.Path(path)
        if not folder.is_dir():
            raise ResourceNotFoundError(f"Directory not found: {path}", str(path))

        groups: dict[str, list[tuple[str, pathlib.Path]]] = defaultdict(list)
        for file in sorted(folder.glob(f"*{RESX_EXTENSION}")):
            if not file.is_file():
                continue
            base_name, code = split_resource_name(file.stem)
            groups[base_name].append((code, file.absolute()))

        languages: list[LanguageInfo] = []
        for base_name, files in groups.items():
            languages.extend(
                build_languages(base_name, files, self.default_language_code)
            )
        logger.debug(f"Found {len(languages)} .resx files in {folder}")
        return sort_languages(languages)


class ResxResourceReader:
    def read(self, language: LanguageInfo) -> ResourceFile:
        tree = parse_xml_file(language.file_path)
        entries = []
        for data in tree.getroot().iterfind("data"):
            key = data.get("name")
            if not key:
                # Hand-edited files sometimes carry nameless nodes
                continue
            value = data.find("value")
            comment = data.find("comment")
            entries.append(
                ResourceEntry(
                    key=key,
                    value="".join(value.itertext()) if value is not None else "",
                    comment=(comment.text or None) if comment is not None else None,
                )
            )
        return ResourceFile(language, entries)


class ResxResourceWriter:
    """Writes .resx files in place, keeping node order and duplicate keys stable."""

    def write(self, file: ResourceFile) -> None:
        path = pathlib.Path(file.language.file_path)
        if path.is_file() and path.stat().st_size > 0:
            tree = parse_xml_file(path)
        else:
            tree = new_resx_document()

        root = tree.getroot()
        if file.has_duplicates():
            _update_with_duplicates(root, file.entries)
        else:
            _update_unique(root, file.entries)

        atomic_write(path, to_bytes(tree))
        logger.info(f"Wrote {len(file.entries)} entries to {path}")

    def create_language_file(
        self,
        base_name: str,
        code: str,
        target_dir: str,
        source_file: ResourceFile | None = None,
        copy_entries: bool = True,
    ) -> LanguageInfo:
        if not is_valid_culture_code(code):
            raise InvalidCultureError(f"Invalid culture code: {code}")

        path = pathlib.Path(target_dir).absolute() / f"{base_name}.{code}{RESX_EXTENSION}"
        if path.exists():
            raise LanguageExistsError(f"Language file already exists: {path.name}", str(path))

        language = LanguageInfo(
            base_name=base_name,
            code=code,
            name=culture_display_name(code),
            is_default=False,
            file_path=str(path),
        )
        entries = []
        if copy_entries and source_file is not None:
            entries = [blank_copy(entry) for entry in source_file.entries]

        self.write(ResourceFile(language, entries))
        logger.info(f"Created {path}")
        return language

    def delete_language_file(self, language: LanguageInfo) -> None:
        path = pathlib.Path(language.file_path)
        if not path.is_file():
            raise ResourceNotFoundError(f"Language file not found: {path.name}", str(path))
        if language.is_default:
            raise DefaultLanguageError(
                "Cannot delete the default language file, it is the fallback for all languages"
            )
        path.unlink()
        logger.info(f"Deleted {path}")


def new_resx_document() -> etree._ElementTree:
    root = etree.Element("root")
    for name, value in RESHEADERS:
        header = etree.SubElement(root, "resheader", name=name)
        etree.SubElement(header, "value").text = value
    etree.indent(root, space="  ")
    return etree.ElementTree(root)


def _entry_text(entry: ResourceEntry) -> str:
    # RESX has no plural construct; the "other" form carries the text
    if entry.is_plural:
        return entry.plural_forms.get("other", "")
    return entry.value or ""


def _update_data(data: etree._Element, entry: ResourceEntry) -> None:
    data.set("name", entry.key)

    value = data.find("value")
    if value is None:
        value = etree.Element("value")
        append_indented(data, value)
    for child in list(value):
        value.remove(child)
    value.text = _entry_text(entry)

    comment = data.find("comment")
    if entry.comment:
        if comment is None:
            comment = etree.Element("comment")
            append_indented(data, comment)
        comment.text = entry.comment
    elif comment is not None:
        remove_element(comment)


def _create_data(entry: ResourceEntry) -> etree._Element:
    data = etree.Element("data", name=entry.key)
    data.set(XML_SPACE, "preserve")
    etree.SubElement(data, "value").text = _entry_text(entry)
    if entry.comment:
        etree.SubElement(data, "comment").text = entry.comment
    return data


def _update_unique(root: etree._Element, entries: list[ResourceEntry]) -> None:
    new_entries = {entry.key.casefold(): entry for entry in entries}
    processed: set[str] = set()

    for data in root.findall("data"):
        key = data.get("name")
        if not key:
            continue
        folded = key.casefold()
        entry = new_entries.get(folded)
        if entry is not None and folded not in processed:
            _update_data(data, entry)
            processed.add(folded)
        else:
            # Gone from the entry set, or a stale duplicate occurrence
            remove_element(data)

    for entry in entries:
        if entry.key.casefold() not in processed:
            append_indented(root, _create_data(entry))


def _update_with_duplicates(root: etree._Element, entries: list[ResourceEntry]) -> None:
    # The i-th occurrence of a key on disk is matched to its i-th occurrence in entries
    positions: dict[str, list[int]] = defaultdict(list)
    for index, entry in enumerate(entries):
        positions[entry.key.casefold()].append(index)

    occurrences: dict[str, int] = defaultdict(int)
    consumed: set[int] = set()

    for data in root.findall("data"):
        key = data.get("name")
        if not key:
            continue
        folded = key.casefold()
        occurrence = occurrences[folded]
        occurrences[folded] += 1

        matches = positions.get(folded, [])
        if occurrence < len(matches):
            index = matches[occurrence]
            _update_data(data, entries[index])
            consumed.add(index)
        else:
            remove_element(data)

    for index, entry in enumerate(entries):
        if index not in consumed:
            append_indented(root, _create_data(entry))
