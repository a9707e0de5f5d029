import fnmatch
import functools
import logging
import pathlib
import re

from babel import Locale, UnknownLocaleError

from locres.classes import LanguageInfo

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Default"
ENGLISH_CODES = ("en", "en-US", "en-GB")

# Tooling files that share the .json extension with resource files
EXCLUDED_JSON_FILES = {
    ".babelrc.json",
    ".eslintrc.json",
    ".prettierrc.json",
    ".stylelintrc.json",
    "angular.json",
    "app.json",
    "babel.config.json",
    "bower.json",
    "composer.json",
    "deno.json",
    "extensions.json",
    "firebase.json",
    "global.json",
    "jsconfig.json",
    "launch.json",
    "launchsettings.json",
    "lerna.json",
    "manifest.json",
    "nest-cli.json",
    "nx.json",
    "omnisharp.json",
    "package-lock.json",
    "package.json",
    "project.json",
    "renovate.json",
    "settings.json",
    "tasks.json",
    "tslint.json",
    "turbo.json",
    "vercel.json",
}
EXCLUDED_JSON_PATTERNS = (
    "lrm*.json",
    "tsconfig*.json",
    "appsettings*.json",
    "*.schema.json",
    "*.config.json",
)

ANDROID_DEFAULT_FOLDER = "values"
APPLE_BASE_FOLDER = "Base.lproj"
LPROJ_SUFFIX = ".lproj"

_android_region = re.compile(r"^([a-z]{2,3})-r([a-z]{2})$", re.IGNORECASE)
_culture_chars = re.compile(r"^[A-Za-z0-9_-]+$")


@functools.lru_cache(maxsize=512)
def _parse_locale(code: str) -> Locale | None:
    # Babel drops ".charset" and "@modifier" suffixes, which are never culture codes here
    if not code or code.lower() == "root" or not _culture_chars.match(code):
        return None
    try:
        return Locale.parse(code.replace("_", "-"), sep="-")
    except (UnknownLocaleError, ValueError, TypeError):
        return None


def is_valid_culture_code(code: str) -> bool:
    return _parse_locale(code) is not None


def culture_display_name(code: str) -> str:
    if not code:
        return DEFAULT_NAME
    locale = _parse_locale(code)
    if locale is None:
        return code.upper()
    return f"{locale.get_display_name() or code} ({code})"


def split_resource_name(stem: str) -> tuple[str, str]:
    """Split ``strings.zh-Hans`` style stems into ``(base_name, code)``.

    The longest trailing dot-joined suffix that forms a culture code wins, so
    ``app.strings.pt-BR`` yields ``("app.strings", "pt-BR")``. Stems without a
    culture suffix belong to the default language.
    """
    parts = stem.split(".")
    for i in range(1, len(parts)):
        candidate = "-".join(parts[i:])
        if is_valid_culture_code(candidate):
            return ".".join(parts[:i]), candidate
    return stem, ""


def is_excluded_json_file(file_name: str) -> bool:
    lowered = file_name.lower()
    if lowered in EXCLUDED_JSON_FILES:
        return True
    return any(fnmatch.fnmatch(lowered, pattern) for pattern in EXCLUDED_JSON_PATTERNS)


def android_folder_to_code(folder_name: str) -> str:
    """``values-zh-rCN`` -> ``zh-CN``, ``values-b+sr+Latn`` -> ``sr-Latn``."""
    if folder_name.lower() == ANDROID_DEFAULT_FOLDER:
        return ""
    if not folder_name.lower().startswith(ANDROID_DEFAULT_FOLDER + "-"):
        raise ValueError(f"Invalid Android resource folder: {folder_name}")

    suffix = folder_name[len(ANDROID_DEFAULT_FOLDER) + 1 :]
    if suffix.lower().startswith("b+"):
        return suffix[2:].replace("+", "-")

    match = _android_region.match(suffix)
    if match:
        return f"{match.group(1).lower()}-{match.group(2).upper()}"
    return suffix


def android_code_to_folder(code: str) -> str:
    """``zh-CN`` -> ``values-zh-rCN``, ``sr-Latn`` -> ``values-b+sr+Latn``."""
    if not code:
        return ANDROID_DEFAULT_FOLDER

    parts = code.split("-")
    if len(parts) == 1:
        return f"{ANDROID_DEFAULT_FOLDER}-{code}"
    if len(parts) == 2 and len(parts[1]) == 2 and parts[1].isalpha():
        return f"{ANDROID_DEFAULT_FOLDER}-{parts[0]}-r{parts[1].upper()}"
    return f"{ANDROID_DEFAULT_FOLDER}-b+" + "+".join(parts)


def is_android_language_folder(folder_name: str) -> bool:
    # values-night, values-v21 and friends are qualifiers, not languages
    try:
        code = android_folder_to_code(folder_name)
    except ValueError:
        return False
    return code == "" or is_valid_culture_code(code)


def lproj_to_code(folder_name: str) -> str:
    """``zh-Hans.lproj`` -> ``zh-Hans``; ``Base.lproj`` -> ``""``."""
    if not folder_name.lower().endswith(LPROJ_SUFFIX):
        raise ValueError(f"Invalid Apple localization folder: {folder_name}")
    name = folder_name[: -len(LPROJ_SUFFIX)]
    if name.lower() == "base":
        return ""
    return name.replace("_", "-")


def code_to_lproj(code: str, separator: str = "-") -> str:
    if not code:
        return APPLE_BASE_FOLDER
    return f"{code.replace('-', separator)}{LPROJ_SUFFIX}"


def is_lproj_language_folder(folder_name: str) -> bool:
    try:
        code = lproj_to_code(folder_name)
    except ValueError:
        return False
    return code == "" or is_valid_culture_code(code)


def pick_default_code(
    codes: list[str],
    configured: str | None = None,
    key_counts: dict[str, int] | None = None,
    meta_defaults: set[str] | None = None,
) -> str | None:
    """Choose the default language among ``codes``.

    Priority: explicit configuration, a file flagged as default in its
    metadata, the file with strictly the most keys, English, then the
    alphabetically first code.
    """
    if not codes:
        return None
    ordered = sorted(codes)
    lookup = {code.lower(): code for code in ordered}

    if configured and configured.lower() in lookup:
        return lookup[configured.lower()]

    for code in ordered:
        if meta_defaults and code in meta_defaults:
            return code

    if key_counts and len(ordered) >= 2:
        ranked = sorted(ordered, key=lambda c: key_counts.get(c, 0), reverse=True)
        if key_counts.get(ranked[0], 0) > key_counts.get(ranked[1], 0):
            return ranked[0]

    for english in ENGLISH_CODES:
        if english.lower() in lookup:
            return lookup[english.lower()]
    for code in ordered:
        if code.lower().startswith("en-"):
            return code

    return ordered[0]


def build_languages(
    base_name: str,
    files: list[tuple[str, pathlib.Path]],
    configured: str | None = None,
    key_counts: dict[str, int] | None = None,
    meta_defaults: set[str] | None = None,
) -> list[LanguageInfo]:
    """Turn ``(code, path)`` pairs of one resource set into ``LanguageInfo`` values.

    Exactly one file is flagged as default: the culture-less one when present,
    otherwise the one ``pick_default_code`` settles on. The default always
    reports an empty code.
    """
    codes = [code for code, _ in files]
    default_code = "" if "" in codes else pick_default_code(
        codes, configured, key_counts, meta_defaults
    )

    languages = []
    default_taken = False
    for code, path in files:
        is_default = not default_taken and code == default_code
        default_taken = default_taken or is_default
        languages.append(
            LanguageInfo(
                base_name=base_name,
                code="" if is_default else code,
                name=DEFAULT_NAME if is_default else culture_display_name(code),
                is_default=is_default,
                file_path=str(path),
            )
        )
    return languages


def sort_languages(languages: list[LanguageInfo]) -> list[LanguageInfo]:
    return sorted(languages, key=lambda x: (x.base_name, not x.is_default, x.code))
