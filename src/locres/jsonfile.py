from collections import defaultdict
import datetime
import json
import logging
import pathlib
from typing import Any

from locres.classes import (
    PLURAL_CATEGORIES,
    EntryKind,
    JsonFormatConfiguration,
    LanguageInfo,
    ResourceEntry,
    ResourceFile,
    array_key,
    blank_copy,
    plural_entry,
)
from locres.cultures import (
    build_languages,
    culture_display_name,
    is_valid_culture_code,
    sort_languages,
    split_resource_name,
)
from locres.detector import candidate_json_files
from locres.errors import (
    DefaultLanguageError,
    InvalidCultureError,
    LanguageExistsError,
    ResourceNotFoundError,
    ResourceParseError,
)
from locres.fsutil import atomic_write

logger = logging.getLogger(__name__)

JSON_EXTENSION = ".json"
META_KEY = "_meta"
VALUE_KEY = "_value"
COMMENT_KEY = "_comment"
PLURAL_KEY = "_plural"
COMMENT_SUFFIX = "_comment"
GENERATOR = "locres"
FORMAT_VERSION = "1.0"


def load_json_file(path: str | pathlib.Path) -> Any:
    file = pathlib.Path(path)
    if not file.is_file():
        raise ResourceNotFoundError(f"Resource file not found: {file}", str(file))

    logger.debug(f"Parsing {file}")
    try:
        return json.loads(file.read_text("utf-8-sig"))
    except json.JSONDecodeError as ex:
        raise ResourceParseError(
            f"Failed to parse JSON file {file}: {ex.msg}", str(file), ex.lineno, ex.colno
        ) from ex
    except UnicodeDecodeError as ex:
        raise ResourceParseError(f"File {file} is not valid UTF-8: {ex}", str(file)) from ex


def count_keys(node: Any) -> int:
    """Count translatable leaves, ignoring ``_``-prefixed metadata keys."""
    if not isinstance(node, dict):
        return 0
    total = 0
    for name, value in node.items():
        if name.startswith("_"):
            continue
        if isinstance(value, dict):
            total += count_keys(value) if VALUE_KEY not in value else 1
        else:
            total += 1
    return total


def _scalar_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return json.dumps(value, ensure_ascii=False)


def _comment_of(node: dict) -> str | None:
    comment = node.get(COMMENT_KEY)
    return comment if isinstance(comment, str) and comment else None


def _split_plural_suffix(key: str) -> tuple[str | None, str | None]:
    for category in PLURAL_CATEGORIES:
        suffix = f"_{category}"
        if key.endswith(suffix) and len(key) > len(suffix):
            return key[: -len(suffix)], category
    return None, None


def _is_category_object(node: dict) -> bool:
    keys = [name for name in node if not name.startswith("_")]
    return (
        len(keys) >= 2
        and all(name in PLURAL_CATEGORIES for name in keys)
        and all(isinstance(node[name], str) for name in keys)
    )


class JsonResourceDiscovery:
    def __init__(
        self,
        config: JsonFormatConfiguration | None = None,
        default_language_code: str | None = None,
    ) -> None:
        self.config = config or JsonFormatConfiguration()
        self.default_language_code = default_language_code

    def discover_languages(self, path: str) -> list[LanguageInfo]:
        files = candidate_json_files(path)
        if not files:
            logger.debug(f"No JSON resource files in {path}")
            return []

        if self.config.i18next_compatible:
            languages = self._discover_i18next(files)
        else:
            languages = self._discover_standard(files)
        logger.debug(f"Found {len(languages)} JSON resource files in {path}")
        return sort_languages(languages)

    def _discover_standard(self, files: list[pathlib.Path]) -> list[LanguageInfo]:
        groups: dict[str, list[tuple[str, pathlib.Path]]] = defaultdict(list)
        for file in files:
            base_name, code = split_resource_name(file.stem)
            groups[base_name].append((code, file.absolute()))

        languages: list[LanguageInfo] = []
        for base_name, members in groups.items():
            languages.extend(
                build_languages(base_name, members, self.default_language_code)
            )
        return languages

    def _discover_i18next(self, files: list[pathlib.Path]) -> list[LanguageInfo]:
        members = [
            (file.stem, file.absolute())
            for file in files
            if is_valid_culture_code(file.stem)
        ]
        key_counts: dict[str, int] = {}
        meta_defaults: set[str] = set()
        for code, file in members:
            try:
                data = load_json_file(file)
            except ResourceParseError as ex:
                logger.warning(f"Ignoring content of {file} while picking the default: {ex}")
                continue
            key_counts[code] = count_keys(data)
            meta = data.get(META_KEY) if isinstance(data, dict) else None
            if isinstance(meta, dict) and meta.get("isDefault") is True:
                meta_defaults.add(code)

        return build_languages(
            self.config.base_name,
            members,
            self.default_language_code,
            key_counts,
            meta_defaults,
        )


class JsonResourceReader:
    def __init__(self, config: JsonFormatConfiguration | None = None) -> None:
        self.config = config or JsonFormatConfiguration()

    def read(self, language: LanguageInfo) -> ResourceFile:
        data = load_json_file(language.file_path)
        return ResourceFile(language, self.parse(data))

    def parse(self, data: Any) -> list[ResourceEntry]:
        if not isinstance(data, dict):
            return []
        entries: list[ResourceEntry] = []
        self._parse_object(data, "", entries)
        if self.config.i18next_compatible:
            entries = _assemble_plural_families(entries)
            _apply_comment_sidecars(data, entries)
        return entries

    def _parse_object(self, node: dict, prefix: str, entries: list[ResourceEntry]) -> None:
        for name, value in node.items():
            if name.startswith("_"):
                continue
            key = f"{prefix}.{name}" if prefix else name
            if isinstance(value, dict):
                self._parse_value_object(value, key, entries)
            elif isinstance(value, list):
                entries.extend(
                    ResourceEntry(array_key(key, index), _scalar_text(item), array_name=key)
                    for index, item in enumerate(value)
                )
            else:
                entries.append(ResourceEntry(key, _scalar_text(value)))

    def _parse_value_object(self, node: dict, key: str, entries: list[ResourceEntry]) -> None:
        if VALUE_KEY in node:
            entries.append(
                ResourceEntry(key, _scalar_text(node[VALUE_KEY]), comment=_comment_of(node))
            )
        elif PLURAL_KEY in node:
            forms = {}
            marker = node[PLURAL_KEY]
            if isinstance(marker, dict):
                forms.update(
                    (name, _scalar_text(text))
                    for name, text in marker.items()
                    if not name.startswith("_")
                )
            forms.update(
                (name, _scalar_text(text))
                for name, text in node.items()
                if not name.startswith("_") and not isinstance(text, (dict, list))
            )
            entries.append(plural_entry(key, forms, _comment_of(node)))
        elif self.config.i18next_compatible and _is_category_object(node):
            forms = {name: text for name, text in node.items() if not name.startswith("_")}
            entries.append(plural_entry(key, forms, _comment_of(node)))
        else:
            self._parse_object(node, key, entries)


def _assemble_plural_families(entries: list[ResourceEntry]) -> list[ResourceEntry]:
    """Fold i18next ``key_one``/``key_other`` siblings into plural entries."""
    plain_keys = {entry.key for entry in entries}
    families: dict[str, dict[str, str]] = defaultdict(dict)
    for entry in entries:
        if entry.kind is not EntryKind.SCALAR:
            continue
        prefix, category = _split_plural_suffix(entry.key)
        if prefix is not None:
            families[prefix][category] = entry.value

    plural_prefixes = {
        prefix
        for prefix, forms in families.items()
        if ("other" in forms or len(forms) >= 2) and prefix not in plain_keys
    }

    result = []
    emitted: set[str] = set()
    for entry in entries:
        prefix = None
        if entry.kind is EntryKind.SCALAR:
            prefix, _ = _split_plural_suffix(entry.key)
        if prefix in plural_prefixes:
            if prefix not in emitted:
                result.append(plural_entry(prefix, families[prefix]))
                emitted.add(prefix)
            continue
        result.append(entry)
    return result


def _apply_comment_sidecars(data: dict, entries: list[ResourceEntry]) -> None:
    by_key = {entry.key: entry for entry in entries}
    for name, value in data.items():
        if not (name.startswith("_") and name.endswith(COMMENT_SUFFIX)):
            continue
        key = name[1 : -len(COMMENT_SUFFIX)]
        entry = by_key.get(key)
        if entry is not None and isinstance(value, str) and value:
            entry.comment = value


class JsonResourceWriter:
    def __init__(self, config: JsonFormatConfiguration | None = None) -> None:
        self.config = config or JsonFormatConfiguration()

    def write(self, file: ResourceFile) -> None:
        path = pathlib.Path(file.language.file_path)
        atomic_write(path, self.serialize(file).encode("utf-8"))
        logger.info(f"Wrote {len(file.entries)} entries to {path}")

    def serialize(self, file: ResourceFile) -> str:
        return json.dumps(self.build_document(file), indent=2, ensure_ascii=False) + "\n"

    def build_document(self, file: ResourceFile) -> dict:
        root: dict[str, Any] = {}
        if self.config.include_meta:
            root[META_KEY] = self._meta(file.language)

        arrays: dict[str, list[ResourceEntry]] = defaultdict(list)
        for entry in file.entries:
            if entry.array_name is not None:
                arrays[entry.array_name].append(entry)

        written_arrays: set[str] = set()
        i18next = self.config.i18next_compatible
        for entry in sorted(file.entries, key=lambda x: x.key):
            if entry.array_name is not None:
                if entry.array_name not in written_arrays:
                    members = sorted(arrays[entry.array_name], key=lambda x: x.array_index)
                    self._place(root, entry.array_name, [x.value for x in members])
                    written_arrays.add(entry.array_name)
                continue

            if i18next and entry.is_plural:
                for category, text in entry.plural_forms.items():
                    self._place(root, f"{entry.key}_{category}", text)
            else:
                self._place(root, entry.key, self._value_of(entry))

            if i18next and self.config.preserve_comments and entry.comment:
                root[f"_{entry.key}{COMMENT_SUFFIX}"] = entry.comment
        return root

    def _meta(self, language: LanguageInfo) -> dict[str, Any]:
        meta: dict[str, Any] = {
            "version": FORMAT_VERSION,
            "generator": GENERATOR,
            "updatedAt": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        }
        if language.code:
            meta["culture"] = language.code
        if self.config.i18next_compatible and language.is_default:
            meta["isDefault"] = True
        return meta

    def _value_of(self, entry: ResourceEntry) -> Any:
        keep_comment = self.config.preserve_comments and entry.comment
        if entry.is_plural:
            value: dict[str, Any] = {PLURAL_KEY: True, **entry.plural_forms}
            if keep_comment:
                value[COMMENT_KEY] = entry.comment
            return value
        if keep_comment and not self.config.i18next_compatible:
            return {VALUE_KEY: entry.value, COMMENT_KEY: entry.comment}
        return entry.value

    def _place(self, root: dict, key: str, value: Any) -> None:
        if not self.config.use_nested_keys or "." not in key:
            root[key] = value
            return

        parts = key.split(".")
        node = root
        for part in parts[:-1]:
            child = node.get(part)
            if child is None:
                child = node[part] = {}
            elif not _is_namespace(child):
                # A leaf already owns this path; keep the dotted key flat
                root[key] = value
                return
            node = child

        if parts[-1] in node:
            root[key] = value
            return
        node[parts[-1]] = value

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

        folder = pathlib.Path(target_dir).absolute()
        if self.config.i18next_compatible:
            path = folder / f"{code}{JSON_EXTENSION}"
        else:
            path = folder / f"{base_name}.{code}{JSON_EXTENSION}"
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


def _is_namespace(node: Any) -> bool:
    return isinstance(node, dict) and VALUE_KEY not in node and PLURAL_KEY not in node
