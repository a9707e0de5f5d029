from collections import defaultdict
import logging
import pathlib
import re

from lxml import etree

from locres.classes import (
    LanguageInfo,
    ResourceEntry,
    ResourceFile,
    array_key,
    blank_copy,
    plural_entry,
)
from locres.cultures import (
    ANDROID_DEFAULT_FOLDER,
    android_code_to_folder,
    android_folder_to_code,
    build_languages,
    culture_display_name,
    is_android_language_folder,
    is_valid_culture_code,
    sort_languages,
)
from locres.errors import (
    DefaultLanguageError,
    InvalidCultureError,
    LanguageExistsError,
    ResourceNotFoundError,
)
from locres.fsutil import atomic_write, remove_if_empty
from locres.xmlutil import inner_xml, parse_xml_file, set_inner_xml, to_bytes

logger = logging.getLogger(__name__)

DEFAULT_RESOURCE_FILE = "strings.xml"
TRANSLATABLE_MARKER = "[translatable=false]"
MARKER_SEPARATOR = " | "
INDENT = "    "

_escape_sequence = re.compile(r"\\(u[0-9a-fA-F]{4}|.)", re.DOTALL)
_simple_escapes = {"n": "\n", "t": "\t", "r": "\r"}


def unescape_android(text: str) -> str:
    if len(text) >= 2 and text.startswith('"') and text.endswith('"') and not text.endswith('\\"'):
        text = text[1:-1]
    return _unescape_sequences(text)


def _unescape_sequences(text: str) -> str:
    def replace(match: re.Match) -> str:
        sequence = match.group(1)
        if len(sequence) == 5 and sequence[0] == "u":
            return chr(int(sequence[1:], 16))
        return _simple_escapes.get(sequence, sequence)

    return _escape_sequence.sub(replace, text)


def escape_android(text: str) -> str:
    text = (
        text.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    # Only a leading @ or ? makes aapt treat the string as a reference
    if text.startswith(("@", "?")):
        text = "\\" + text
    return text


def split_comment(comment: str | None) -> tuple[str | None, bool]:
    """Return the user comment and whether the entry is translatable."""
    if not comment or TRANSLATABLE_MARKER not in comment:
        return comment or None, True
    rest = comment.replace(TRANSLATABLE_MARKER, "").strip().strip("|").strip()
    return rest or None, False


def find_res_folder(
    path: str | pathlib.Path, resource_file_name: str = DEFAULT_RESOURCE_FILE
) -> pathlib.Path | None:
    folder = pathlib.Path(path)

    def has_values(candidate: pathlib.Path) -> bool:
        if not candidate.is_dir():
            return False
        if (candidate / ANDROID_DEFAULT_FOLDER).is_dir():
            return True
        return any(
            (child / resource_file_name).is_file()
            for child in candidate.glob(f"{ANDROID_DEFAULT_FOLDER}*")
        )

    if folder.name.lower() == "res" and has_values(folder):
        return folder
    for candidate in (
        folder / "res",
        folder / "app" / "src" / "main" / "res",
        folder / "src" / "main" / "res",
    ):
        if has_values(candidate):
            return candidate
    return None


class AndroidResourceDiscovery:
    def __init__(
        self,
        resource_file_name: str = DEFAULT_RESOURCE_FILE,
        default_language_code: str | None = None,
    ) -> None:
        self.resource_file_name = resource_file_name
        self.default_language_code = default_language_code

    def discover_languages(self, path: str) -> list[LanguageInfo]:
        folder = pathlib.Path(path)
        if not folder.is_dir():
            raise ResourceNotFoundError(f"Directory not found: {path}", str(path))

        res = find_res_folder(folder, self.resource_file_name)
        if res is None:
            logger.debug(f"No res folder below {folder}")
            return []

        files = []
        for child in sorted(res.iterdir()):
            if not child.is_dir() or not is_android_language_folder(child.name):
                continue
            file = child / self.resource_file_name
            if file.is_file():
                files.append((android_folder_to_code(child.name), file.absolute()))

        base_name = pathlib.Path(self.resource_file_name).stem
        languages = build_languages(base_name, files, self.default_language_code)
        logger.debug(f"Found {len(languages)} Android resource files in {res}")
        return sort_languages(languages)


class AndroidResourceReader:
    def read(self, language: LanguageInfo) -> ResourceFile:
        root = parse_xml_file(language.file_path).getroot()
        if root.tag != "resources":
            logger.warning(f"{language.file_path} has no <resources> root, ignoring it")
            return ResourceFile(language, [])

        entries: list[ResourceEntry] = []
        pending_comment = None
        for node in root:
            if node.tag is etree.Comment:
                pending_comment = (node.text or "").strip() or None
                continue
            if not isinstance(node.tag, str):
                continue
            entries.extend(self._parse_element(node, pending_comment))
            pending_comment = None
        return ResourceFile(language, entries)

    def _parse_element(self, element: etree._Element, comment: str | None) -> list[ResourceEntry]:
        name = element.get("name")
        if not name:
            return []

        if element.tag == "string":
            if element.get("translatable", "").lower() == "false":
                comment = (
                    f"{comment}{MARKER_SEPARATOR}{TRANSLATABLE_MARKER}"
                    if comment
                    else TRANSLATABLE_MARKER
                )
            markup = len(element) > 0
            return [
                ResourceEntry(
                    name, _element_value(element, markup), comment=comment, has_markup=markup
                )
            ]

        if element.tag == "plurals":
            items = [item for item in element.iterfind("item") if item.get("quantity")]
            # One marked-up form turns every form into a fragment
            markup = any(len(item) for item in items)
            forms = {item.get("quantity"): _element_value(item, markup) for item in items}
            return [plural_entry(name, forms, comment, markup)]

        if element.tag == "string-array":
            return [
                ResourceEntry(
                    array_key(name, index),
                    _element_value(item, len(item) > 0),
                    comment=comment if index == 0 else None,
                    array_name=name,
                    has_markup=len(item) > 0,
                )
                for index, item in enumerate(element.iterfind("item"))
            ]

        logger.debug(f"Skipping unsupported <{element.tag}> element {name}")
        return []


def _element_value(element: etree._Element, markup: bool) -> str:
    if markup:
        return inner_xml(element, _unescape_sequences)
    return unescape_android(element.text or "")


class AndroidResourceWriter:
    def __init__(self, resource_file_name: str = DEFAULT_RESOURCE_FILE) -> None:
        self.resource_file_name = resource_file_name

    def write(self, file: ResourceFile) -> None:
        path = pathlib.Path(file.language.file_path)
        atomic_write(path, to_bytes(etree.ElementTree(self.build_document(file))))
        logger.info(f"Wrote {len(file.entries)} entries to {path}")

    def build_document(self, file: ResourceFile) -> etree._Element:
        root = etree.Element("resources")

        arrays: dict[str, list[ResourceEntry]] = defaultdict(list)
        for entry in file.entries:
            if entry.array_name is not None:
                arrays[entry.array_name].append(entry)

        written_arrays: set[str] = set()
        for entry in sorted(file.entries, key=lambda x: x.key):
            if entry.array_name is not None:
                if entry.array_name in written_arrays:
                    continue
                written_arrays.add(entry.array_name)
                items = sorted(arrays[entry.array_name], key=lambda x: x.array_index)
                _append_comment(root, next((x.comment for x in items if x.comment), None))
                array = etree.SubElement(root, "string-array", name=entry.array_name)
                for item in items:
                    set_inner_xml(
                        etree.SubElement(array, "item"), item.value, escape_android, item.has_markup
                    )
                continue

            comment, translatable = split_comment(entry.comment)
            _append_comment(root, comment)
            if entry.is_plural:
                plurals = etree.SubElement(root, "plurals", name=entry.key)
                for quantity, text in entry.plural_forms.items():
                    item = etree.SubElement(plurals, "item", quantity=quantity)
                    set_inner_xml(item, text, escape_android, entry.has_markup)
            else:
                string = etree.SubElement(root, "string", name=entry.key)
                if not translatable:
                    string.set("translatable", "false")
                set_inner_xml(string, entry.value, escape_android, entry.has_markup)

        _layout(root)
        return root

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

        res = find_res_folder(target_dir, self.resource_file_name)
        if res is None:
            target = pathlib.Path(target_dir)
            res = target if target.name.lower() == "res" else target / "res"
        path = res.absolute() / android_code_to_folder(code) / self.resource_file_name
        if path.exists():
            raise LanguageExistsError(f"Language file already exists: {path}", str(path))

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
            raise ResourceNotFoundError(f"Language file not found: {path}", str(path))
        if language.is_default:
            raise DefaultLanguageError(
                "Cannot delete the default language file, it is the fallback for all languages"
            )
        path.unlink()
        logger.info(f"Deleted {path}")
        remove_if_empty(path.parent)


def _append_comment(root: etree._Element, comment: str | None) -> None:
    if comment:
        # "--" may not appear inside an XML comment
        root.append(etree.Comment(f" {comment.replace('--', '- -')} "))


def _layout(root: etree._Element) -> None:
    # Indent structural nodes only; text inside <string> and <item> is content
    children = list(root)
    if not children:
        root.text = "\n"
        return
    root.text = "\n" + INDENT
    for index, child in enumerate(children):
        child.tail = "\n" + INDENT if index < len(children) - 1 else "\n"
        if isinstance(child.tag, str) and child.tag in ("plurals", "string-array"):
            items = list(child)
            if not items:
                continue
            child.text = "\n" + INDENT * 2
            for position, item in enumerate(items):
                item.tail = "\n" + INDENT * (2 if position < len(items) - 1 else 1)
