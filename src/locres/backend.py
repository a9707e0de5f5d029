from dataclasses import dataclass
import logging
import pathlib
from typing import Callable, Protocol

from locres.android import (
    AndroidResourceDiscovery,
    AndroidResourceReader,
    AndroidResourceWriter,
)
from locres.apple import (
    AppleResourceDiscovery,
    AppleResourceReader,
    AppleResourceWriter,
)
from locres.classes import (
    DetectedJsonFormat,
    JsonFormatConfiguration,
    LanguageInfo,
    ResourceFile,
)
from locres.config import ProjectConfiguration
from locres.detector import JsonFormatDetector, candidate_json_files
from locres.errors import BackendNotSupportedError
from locres.jsonfile import (
    JsonResourceDiscovery,
    JsonResourceReader,
    JsonResourceWriter,
)
from locres.resx import (
    RESX_EXTENSION,
    ResxResourceDiscovery,
    ResxResourceReader,
    ResxResourceWriter,
)

logger = logging.getLogger(__name__)


class ResourceDiscovery(Protocol):
    def discover_languages(self, path: str) -> list[LanguageInfo]: ...


class ResourceReader(Protocol):
    def read(self, language: LanguageInfo) -> ResourceFile: ...


class ResourceWriter(Protocol):
    def write(self, file: ResourceFile) -> None: ...

    def create_language_file(
        self,
        base_name: str,
        code: str,
        target_dir: str,
        source_file: ResourceFile | None = None,
        copy_entries: bool = True,
    ) -> LanguageInfo: ...

    def delete_language_file(self, language: LanguageInfo) -> None: ...


@dataclass
class ResourceBackend:
    name: str
    extensions: tuple[str, ...]
    discovery: ResourceDiscovery
    reader: ResourceReader
    writer: ResourceWriter

    def discover_languages(self, path: str) -> list[LanguageInfo]:
        return self.discovery.discover_languages(path)

    def read(self, language: LanguageInfo) -> ResourceFile:
        return self.reader.read(language)

    def write(self, file: ResourceFile) -> None:
        self.writer.write(file)

    def create_language_file(
        self,
        base_name: str,
        code: str,
        target_dir: str,
        source_file: ResourceFile | None = None,
        copy_entries: bool = True,
    ) -> LanguageInfo:
        return self.writer.create_language_file(
            base_name, code, target_dir, source_file, copy_entries
        )

    def delete_language_file(self, language: LanguageInfo) -> None:
        self.writer.delete_language_file(language)

    def read_all(self, path: str) -> list[ResourceFile]:
        return [self.read(language) for language in self.discover_languages(path)]

    # Awaitable shapes for async callers; the work itself stays synchronous
    async def discover_languages_async(self, path: str) -> list[LanguageInfo]:
        return self.discover_languages(path)

    async def read_async(self, language: LanguageInfo) -> ResourceFile:
        return self.read(language)

    async def write_async(self, file: ResourceFile) -> None:
        self.write(file)


def _resx_backend(config: ProjectConfiguration) -> ResourceBackend:
    return ResourceBackend(
        name="resx",
        extensions=(RESX_EXTENSION,),
        discovery=ResxResourceDiscovery(config.default_language),
        reader=ResxResourceReader(),
        writer=ResxResourceWriter(),
    )


def _json_backend(
    config: ProjectConfiguration, json_config: JsonFormatConfiguration
) -> ResourceBackend:
    return ResourceBackend(
        name="i18next" if json_config.i18next_compatible else "json",
        extensions=(".json",),
        discovery=JsonResourceDiscovery(json_config, config.default_language),
        reader=JsonResourceReader(json_config),
        writer=JsonResourceWriter(json_config),
    )


def _standard_json_backend(config: ProjectConfiguration) -> ResourceBackend:
    json_config = config.json
    if json_config is None or json_config.i18next_compatible:
        base_name = json_config.base_name if json_config else "strings"
        json_config = JsonFormatConfiguration(base_name=base_name)
    return _json_backend(config, json_config)


def _i18next_backend(config: ProjectConfiguration) -> ResourceBackend:
    json_config = config.json
    if json_config is None or not json_config.i18next_compatible:
        base_name = json_config.base_name if json_config else "strings"
        json_config = JsonFormatConfiguration.for_i18next(base_name)
    return _json_backend(config, json_config)


def _android_backend(config: ProjectConfiguration) -> ResourceBackend:
    file_name = f"{config.android_base_name}.xml"
    return ResourceBackend(
        name="android",
        extensions=(".xml",),
        discovery=AndroidResourceDiscovery(file_name, config.default_language),
        reader=AndroidResourceReader(),
        writer=AndroidResourceWriter(file_name),
    )


def _apple_backend(config: ProjectConfiguration) -> ResourceBackend:
    file_name = f"{config.ios_base_name}.strings"
    return ResourceBackend(
        name="ios",
        extensions=(".strings", ".stringsdict"),
        discovery=AppleResourceDiscovery(file_name, config.default_language),
        reader=AppleResourceReader(),
        writer=AppleResourceWriter(file_name),
    )


BACKENDS: dict[str, Callable[[ProjectConfiguration], ResourceBackend]] = {
    "resx": _resx_backend,
    "json": _standard_json_backend,
    "i18next": _i18next_backend,
    "android": _android_backend,
    "ios": _apple_backend,
}
ALIASES = {
    "jsonlocalization": "json",
    "apple": "ios",
}


class BackendFactory:
    def __init__(
        self,
        config: ProjectConfiguration | None = None,
        detector: JsonFormatDetector | None = None,
    ) -> None:
        self.config = config or ProjectConfiguration()
        self.detector = detector or JsonFormatDetector()

    def available_backends(self) -> list[str]:
        return list(BACKENDS)

    def is_backend_available(self, name: str) -> bool:
        return self._canonical(name) in BACKENDS

    def get_backend(self, name: str) -> ResourceBackend:
        canonical = self._canonical(name)
        if canonical not in BACKENDS:
            raise BackendNotSupportedError(name, self.available_backends())
        return BACKENDS[canonical](self.config)

    def resolve_from_path(self, path: str) -> ResourceBackend:
        """Pick a backend from the files in ``path``.

        JSON resource files win over .resx files; an empty folder falls back
        to RESX. Android and Apple layouts are never guessed.
        """
        folder = pathlib.Path(path)
        if candidate_json_files(folder):
            if self.config.json is not None:
                logger.debug(f"Using configured JSON format for {folder}")
                return _json_backend(self.config, self.config.json)
            detected = self.detector.detect(folder)
            logger.debug(f"Detected {detected.value} JSON resources in {folder}")
            if detected is DetectedJsonFormat.I18NEXT:
                return self.get_backend("i18next")
            return self.get_backend("json")

        if folder.is_dir() and any(folder.glob(f"*{RESX_EXTENSION}")):
            logger.debug(f"Found .resx files in {folder}")
        return self.get_backend("resx")

    @staticmethod
    def _canonical(name: str) -> str:
        lowered = (name or "").strip().lower()
        return ALIASES.get(lowered, lowered)
