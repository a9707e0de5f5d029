import codecs
import logging
import pathlib
import plistlib
from xml.parsers.expat import ExpatError

from locres.classes import (
    PLURAL_CATEGORIES,
    LanguageInfo,
    ResourceEntry,
    ResourceFile,
    blank_copy,
    plural_entry,
)
from locres.cultures import (
    build_languages,
    code_to_lproj,
    culture_display_name,
    is_lproj_language_folder,
    is_valid_culture_code,
    lproj_to_code,
    sort_languages,
)
from locres.errors import (
    DefaultLanguageError,
    InvalidCultureError,
    LanguageExistsError,
    ResourceNotFoundError,
    ResourceParseError,
)
from locres.fsutil import atomic_write, remove_if_empty

logger = logging.getLogger(__name__)

DEFAULT_STRINGS_FILE = "Localizable.strings"
STRINGS_SUFFIX = ".strings"
STRINGSDICT_SUFFIX = ".stringsdict"
FORMAT_KEY = "NSStringLocalizedFormatKey"
SPEC_TYPE_KEY = "NSStringFormatSpecTypeKey"
VALUE_TYPE_KEY = "NSStringFormatValueTypeKey"
PLURAL_RULE_TYPE = "NSStringPluralRuleType"
PLURAL_VARIABLE = "count"

_simple_escapes = {"n": "\n", "t": "\t", "r": "\r", "0": "\0"}


def decode_strings(data: bytes) -> str:
    """Decode a .strings file, honouring UTF-16 and UTF-8 byte order marks."""
    if data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return data.decode("utf-16")
    return data.decode("utf-8-sig")


class _StringsScanner:
    """Tokenizer for the old-style property list syntax used by .strings files."""

    def __init__(self, text: str, path: str | None = None) -> None:
        self.text = text
        self.path = path
        self.pos = 0
        self.line = 1

    def error(self, message: str) -> ResourceParseError:
        where = f" in {self.path}" if self.path else ""
        return ResourceParseError(f"{message}{where}", self.path, self.line)

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self, length: int = 1) -> str:
        return self.text[self.pos : self.pos + length]

    def advance(self, count: int = 1) -> str:
        chunk = self.text[self.pos : self.pos + count]
        self.line += chunk.count("\n")
        self.pos += count
        return chunk

    def skip_whitespace(self, newlines: bool = True) -> None:
        while not self.at_end():
            char = self.peek()
            if char == "\n" and not newlines:
                return
            if not char.isspace():
                return
            self.advance()

    def at_comment(self) -> bool:
        return self.peek(2) in ("/*", "//")

    def read_comment(self) -> str:
        if self.peek(2) == "/*":
            end = self.text.find("*/", self.pos + 2)
            if end < 0:
                raise self.error("Unterminated comment")
            body = self.text[self.pos + 2 : end]
            self.advance(end + 2 - self.pos)
            return body.strip()

        end = self.text.find("\n", self.pos)
        end = len(self.text) if end < 0 else end
        body = self.text[self.pos + 2 : end]
        self.advance(end - self.pos)
        return body.strip()

    def skip_trivia(self) -> str | None:
        """Skip whitespace and comments, returning the last comment seen."""
        comment = None
        while True:
            self.skip_whitespace()
            if not self.at_comment():
                return comment
            comment = self.read_comment()

    def expect(self, char: str) -> None:
        self.skip_trivia()
        if self.peek() != char:
            found = self.peek() or "end of file"
            raise self.error(f"Expected '{char}' but found '{found}'")
        self.advance()

    def read_token(self) -> str:
        self.skip_trivia()
        if self.peek() == '"':
            return self.read_quoted()

        start = self.pos
        while not self.at_end() and (self.peek().isalnum() or self.peek() in "_.-$:/"):
            self.advance()
        if start == self.pos:
            found = self.peek() or "end of file"
            raise self.error(f"Expected a string but found '{found}'")
        return self.text[start : self.pos]

    def read_quoted(self) -> str:
        self.advance()
        chars = []
        while True:
            if self.at_end():
                raise self.error("Unterminated string")
            char = self.advance()
            if char == '"':
                return "".join(chars)
            if char != "\\":
                chars.append(char)
                continue

            if self.at_end():
                raise self.error("Unterminated escape sequence")
            escaped = self.advance()
            if escaped in "uU":
                digits = self.peek(4)
                if len(digits) != 4 or any(c not in "0123456789abcdefABCDEF" for c in digits):
                    raise self.error(f"Invalid unicode escape '\\{escaped}{digits}'")
                self.advance(4)
                chars.append(chr(int(digits, 16)))
            else:
                chars.append(_simple_escapes.get(escaped, escaped))


def parse_strings(text: str, path: str | None = None) -> list[ResourceEntry]:
    scanner = _StringsScanner(text, path)
    entries: list[ResourceEntry] = []

    while True:
        comment = scanner.skip_trivia()
        if scanner.at_end():
            break
        key = scanner.read_token()
        scanner.expect("=")
        value = scanner.read_token()
        scanner.expect(";")

        entry = ResourceEntry(key, value, comment=comment or None)
        # A comment on the same line after the terminator belongs to this entry
        scanner.skip_whitespace(newlines=False)
        if scanner.at_comment():
            trailing = scanner.read_comment()
            if entry.comment is None and trailing:
                entry.comment = trailing
        entries.append(entry)

    return entries


def escape_strings(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )


def serialize_strings(entries: list[ResourceEntry]) -> str:
    blocks = []
    for entry in entries:
        lines = []
        if entry.comment:
            lines.append(f"/* {entry.comment.replace('*/', '* /')} */")
        lines.append(f'"{escape_strings(entry.key)}" = "{escape_strings(entry.value)}";')
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + "\n" if blocks else ""


def load_strings_file(path: str | pathlib.Path) -> list[ResourceEntry]:
    file = pathlib.Path(path)
    logger.debug(f"Parsing {file}")
    try:
        text = decode_strings(file.read_bytes())
    except UnicodeDecodeError as ex:
        raise ResourceParseError(f"Cannot decode {file}: {ex}", str(file)) from ex
    return parse_strings(text, str(file))


def parse_stringsdict(data: bytes, path: str | None = None) -> list[tuple[str, dict[str, str]]]:
    try:
        root = plistlib.loads(data, fmt=plistlib.FMT_XML)
    except (plistlib.InvalidFileException, ExpatError, ValueError) as ex:
        raise ResourceParseError(f"Failed to parse property list {path}: {ex}", path) from ex
    if not isinstance(root, dict):
        return []

    result = []
    for key, spec in root.items():
        if not isinstance(spec, dict):
            continue
        forms = _plural_variable_forms(spec)
        if forms:
            result.append((key, forms))
        else:
            logger.debug(f"Skipping {key} in {path}: no plural rule variable")
    return result


def _plural_variable_forms(spec: dict) -> dict[str, str]:
    for name, variable in spec.items():
        if name == FORMAT_KEY or not isinstance(variable, dict):
            continue
        if variable.get(SPEC_TYPE_KEY, PLURAL_RULE_TYPE) != PLURAL_RULE_TYPE:
            continue
        forms = {
            category: str(variable[category])
            for category in PLURAL_CATEGORIES
            if category in variable
        }
        if forms:
            return forms
    return {}


def detect_value_type(forms: dict[str, str]) -> str:
    sample = forms.get("other") or next(iter(forms.values()), "")
    if "%@" in sample:
        return "@"
    if "%f" in sample or "%F" in sample:
        return "f"
    if "%s" in sample:
        return "s"
    return "d"


def serialize_stringsdict(entries: list[ResourceEntry]) -> bytes:
    root = {}
    for entry in entries:
        variable = {
            SPEC_TYPE_KEY: PLURAL_RULE_TYPE,
            VALUE_TYPE_KEY: detect_value_type(entry.plural_forms),
        }
        variable.update(entry.plural_forms)
        root[entry.key] = {
            FORMAT_KEY: f"%#@{PLURAL_VARIABLE}@",
            PLURAL_VARIABLE: variable,
        }
    return plistlib.dumps(root, fmt=plistlib.FMT_XML, sort_keys=False)


def stringsdict_path(path: str | pathlib.Path) -> pathlib.Path:
    return pathlib.Path(path).with_suffix(STRINGSDICT_SUFFIX)


def strings_path(path: str | pathlib.Path) -> pathlib.Path:
    return pathlib.Path(path).with_suffix(STRINGS_SUFFIX)


def lproj_separator(folder: str | pathlib.Path) -> str:
    """Return ``_`` when the regional .lproj folders in ``folder`` read like ``zh_Hans.lproj``."""
    regional = [
        child.name
        for child in pathlib.Path(folder).glob("*.lproj")
        if child.is_dir() and ("_" in child.name or "-" in child.name)
    ]
    if regional and all("_" in name for name in regional):
        return "_"
    return "-"


class AppleResourceDiscovery:
    def __init__(
        self,
        strings_file_name: str = DEFAULT_STRINGS_FILE,
        development_language: str | None = None,
    ) -> None:
        self.strings_file_name = strings_file_name
        self.development_language = development_language

    def discover_languages(self, path: str) -> list[LanguageInfo]:
        folder = pathlib.Path(path)
        if not folder.is_dir():
            raise ResourceNotFoundError(f"Directory not found: {path}", str(path))

        members = []
        for lproj in self._lproj_folders(folder):
            if not is_lproj_language_folder(lproj.name):
                continue
            strings = lproj / self.strings_file_name
            plurals = stringsdict_path(strings)
            if not strings.is_file() and not plurals.is_file():
                continue
            members.append((lproj_to_code(lproj.name), strings.absolute()))

        base_name = pathlib.Path(self.strings_file_name).stem
        languages = build_languages(base_name, members, self.development_language)
        logger.debug(f"Found {len(languages)} .lproj folders in {folder}")
        return sort_languages(languages)

    def _lproj_folders(self, folder: pathlib.Path) -> list[pathlib.Path]:
        found: list[pathlib.Path] = []
        for parent in (folder, folder / "Resources", folder / "Sources"):
            if not parent.is_dir():
                continue
            for child in sorted(parent.glob("*.lproj")):
                if child.is_dir() and child not in found:
                    found.append(child)
        return found


class AppleResourceReader:
    def read(self, language: LanguageInfo) -> ResourceFile:
        strings = strings_path(language.file_path)
        plurals = stringsdict_path(language.file_path)
        if not strings.is_file() and not plurals.is_file():
            raise ResourceNotFoundError(
                f"Resource file not found: {language.file_path}", language.file_path
            )

        entries = load_strings_file(strings) if strings.is_file() else []
        if plurals.is_file():
            logger.debug(f"Parsing {plurals}")
            for key, forms in parse_stringsdict(plurals.read_bytes(), str(plurals)):
                index = next((i for i, x in enumerate(entries) if x.key == key), None)
                if index is None:
                    entries.append(plural_entry(key, forms))
                else:
                    entries[index] = plural_entry(key, forms, entries[index].comment)
        return ResourceFile(language, entries)


class AppleResourceWriter:
    def __init__(self, strings_file_name: str = DEFAULT_STRINGS_FILE) -> None:
        self.strings_file_name = strings_file_name

    def write(self, file: ResourceFile) -> None:
        strings = strings_path(file.language.file_path)
        plurals_file = stringsdict_path(file.language.file_path)

        entries = sorted(file.entries, key=lambda x: x.key)
        plurals = [entry for entry in entries if entry.is_plural]
        # Plurals keep a .strings line with their "other" form, which also carries the comment
        lines = [
            ResourceEntry(entry.key, entry.plural_forms.get("other", ""), entry.comment)
            if entry.is_plural
            else entry
            for entry in entries
        ]

        atomic_write(strings, serialize_strings(lines).encode("utf-8"))
        if plurals:
            atomic_write(plurals_file, serialize_stringsdict(plurals))
        elif plurals_file.exists():
            plurals_file.unlink()
            logger.info(f"Removed stale {plurals_file}")
        logger.info(f"Wrote {len(entries)} entries to {strings}")

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

        target = pathlib.Path(target_dir).absolute()
        path = target / code_to_lproj(code, lproj_separator(target)) / self.strings_file_name
        if path.exists() or stringsdict_path(path).exists():
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
        strings = strings_path(language.file_path)
        plurals = stringsdict_path(language.file_path)
        if not strings.is_file() and not plurals.is_file():
            raise ResourceNotFoundError(
                f"Language file not found: {language.file_path}", language.file_path
            )
        if language.is_default:
            raise DefaultLanguageError(
                "Cannot delete the default language file, it is the fallback for all languages"
            )

        for file in (strings, plurals):
            try:
                file.unlink()
                logger.info(f"Deleted {file}")
            except FileNotFoundError:
                logger.debug(f"{file} already gone")
        remove_if_empty(strings.parent)
