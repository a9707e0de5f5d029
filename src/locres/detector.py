import json
import logging
import pathlib
import re
from typing import Any

from locres.classes import PLURAL_CATEGORIES, DetectedJsonFormat
from locres.cultures import is_excluded_json_file, is_valid_culture_code

logger = logging.getLogger(__name__)

MIN_SCORE = 3
SAMPLE_FILES = 3

_i18next_interpolation = re.compile(r"\{\{[^}]+\}\}")
_positional_interpolation = re.compile(r"\{\d+\}")
_i18next_nesting = re.compile(r"\$t\([^)]+\)")
_plural_suffixes = tuple(f"_{cat}" for cat in PLURAL_CATEGORIES)


def candidate_json_files(path: str | pathlib.Path) -> list[pathlib.Path]:
    folder = pathlib.Path(path)
    if not folder.is_dir():
        return []
    return sorted(
        file
        for file in folder.glob("*.json")
        if file.is_file() and not is_excluded_json_file(file.name)
    )


class JsonFormatDetector:
    """Scores a folder of JSON files against the standard and i18next conventions."""

    def detect(self, path: str | pathlib.Path) -> DetectedJsonFormat:
        files = candidate_json_files(path)
        if not files:
            return DetectedJsonFormat.UNKNOWN

        i18next_score, standard_score = self.score(files)
        logger.debug(
            f"JSON format scores for {path}: i18next={i18next_score} standard={standard_score}"
        )

        if i18next_score > standard_score and i18next_score >= MIN_SCORE:
            return DetectedJsonFormat.I18NEXT
        if standard_score > i18next_score and standard_score >= MIN_SCORE:
            return DetectedJsonFormat.STANDARD
        return DetectedJsonFormat.STANDARD

    def score(self, files: list[pathlib.Path]) -> tuple[int, int]:
        i18next_score = 0
        standard_score = 0

        for file in files:
            stem = file.stem
            if is_valid_culture_code(stem):
                i18next_score += 2
            elif "." in stem and is_valid_culture_code(stem.rsplit(".", 1)[1]):
                standard_score += 2

        for file in files[:SAMPLE_FILES]:
            try:
                content = file.read_text("utf-8-sig")
            except (OSError, UnicodeDecodeError) as ex:
                logger.debug(f"Skipping {file} during format detection: {ex}")
                continue
            i18next, standard = self.analyze_content(content)
            i18next_score += i18next
            standard_score += standard

        return i18next_score, standard_score

    def analyze_content(self, content: str) -> tuple[int, int]:
        i18next = 0
        standard = 0

        if _i18next_interpolation.search(content):
            i18next += 2
        if _positional_interpolation.search(content):
            standard += 2
        if _i18next_nesting.search(content):
            i18next += 2

        try:
            data = json.loads(content)
        except ValueError:
            return i18next, standard

        key_i18next, key_standard = self._analyze_keys(data)
        return i18next + key_i18next, standard + key_standard

    def _analyze_keys(self, node: Any) -> tuple[int, int]:
        i18next = 0
        standard = 0
        if not isinstance(node, dict):
            return i18next, standard

        for name, value in node.items():
            if name.startswith("_"):
                continue
            if name.lower().endswith(_plural_suffixes):
                i18next += 3
            if ":" in name:
                i18next += 1
            elif "." in name:
                standard += 1
            if isinstance(value, dict):
                nested_i18next, nested_standard = self._analyze_keys(value)
                i18next += nested_i18next
                standard += nested_standard

        return i18next, standard
