from dataclasses import dataclass, field, replace
from enum import Enum

PLURAL_CATEGORIES = ("zero", "one", "two", "few", "many", "other")


class EntryKind(Enum):
    SCALAR = "scalar"
    PLURAL = "plural"
    ARRAY = "array"


class DetectedJsonFormat(Enum):
    UNKNOWN = "unknown"
    STANDARD = "standard"
    I18NEXT = "i18next"


@dataclass(frozen=True)
class LanguageInfo:
    base_name: str
    code: str
    name: str
    is_default: bool
    file_path: str


@dataclass
class ResourceEntry:
    key: str
    value: str = ""
    comment: str | None = None
    is_plural: bool = False
    plural_forms: dict[str, str] = field(default_factory=dict)
    # Set for members of an array resource; the key then reads "name[index]".
    array_name: str | None = None
    # The value is an XML fragment with inline elements such as <b> or <xliff:g>.
    has_markup: bool = False

    @property
    def kind(self) -> EntryKind:
        if self.is_plural:
            return EntryKind.PLURAL
        if self.array_name is not None:
            return EntryKind.ARRAY
        return EntryKind.SCALAR

    @property
    def array_index(self) -> int:
        if self.array_name is None:
            return 0
        try:
            return int(self.key[len(self.array_name) + 1 : -1])
        except ValueError:
            return 0


@dataclass
class ResourceFile:
    language: LanguageInfo
    entries: list[ResourceEntry] = field(default_factory=list)

    def keys(self) -> list[str]:
        return [entry.key for entry in self.entries]

    def get(self, key: str) -> ResourceEntry | None:
        return next((x for x in self.entries if x.key == key), None)

    def has_duplicates(self) -> bool:
        seen: set[str] = set()
        for entry in self.entries:
            folded = entry.key.casefold()
            if folded in seen:
                return True
            seen.add(folded)
        return False


@dataclass(frozen=True)
class JsonFormatConfiguration:
    use_nested_keys: bool = True
    include_meta: bool = True
    preserve_comments: bool = True
    base_name: str = "strings"
    i18next_compatible: bool = False

    @classmethod
    def for_i18next(cls, base_name: str = "strings") -> "JsonFormatConfiguration":
        # i18next projects keep flat "namespace:key" style keys
        return cls(use_nested_keys=False, base_name=base_name, i18next_compatible=True)


def array_key(name: str, index: int) -> str:
    return f"{name}[{index}]"


def normalize_plural_forms(forms: dict[str, str]) -> dict[str, str]:
    """Return plural forms in CLDR order, guaranteeing an ``other`` category.

    Unknown categories are kept after the CLDR ones. When ``other`` is missing
    the last present CLDR form stands in for it, and an empty mapping becomes
    a single empty ``other`` form.
    """
    if not forms:
        return {"other": ""}
    ordered = {cat: forms[cat] for cat in PLURAL_CATEGORIES if cat in forms}
    ordered.update({cat: text for cat, text in forms.items() if cat not in ordered})
    if "other" not in ordered:
        known = [cat for cat in PLURAL_CATEGORIES if cat in ordered]
        ordered["other"] = ordered[known[-1]] if known else next(iter(ordered.values()))
    return ordered


def plural_entry(
    key: str, forms: dict[str, str], comment: str | None = None, has_markup: bool = False
) -> ResourceEntry:
    return ResourceEntry(
        key=key,
        comment=comment,
        is_plural=True,
        plural_forms=normalize_plural_forms(forms),
        has_markup=has_markup,
    )


def blank_copy(entry: ResourceEntry) -> ResourceEntry:
    """Copy of ``entry`` with every translatable text emptied."""
    return replace(
        entry,
        value="",
        plural_forms={cat: "" for cat in entry.plural_forms},
    )
