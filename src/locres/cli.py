import logging
import os
import sys

import click
from locres.backend import BackendFactory, ResourceBackend
from locres.config import ProjectConfiguration, config_file_path, load_config
from locres.detector import JsonFormatDetector
from locres.errors import ResourceError

logger = logging.getLogger(__name__)


def setup(config_folder: str) -> ProjectConfiguration:
    try:
        config = load_config(config_file_path(config_folder))
    except ResourceError as exc:
        logger.error(sys._getframe().f_code.co_name + " " + str(exc))
        sys.exit(1)

    logging.basicConfig(
        level=logging.getLevelName(config.logging.level),
        format=config.logging.format,
        datefmt=config.logging.datefmt,
    )
    return config


def select_backend(
    config: ProjectConfiguration, backend: str | None, path: str
) -> ResourceBackend:
    factory = BackendFactory(config)
    name = backend or config.backend
    try:
        if name:
            return factory.get_backend(name)
        return factory.resolve_from_path(path)
    except ResourceError as exc:
        logger.error(str(exc))
        sys.exit(1)


@click.group()
@click.version_option()
def cli() -> None:
    pass


@cli.command("languages")
@click.option("--config-folder", default="config", help="Configuration folder path.")
@click.option("--path", "resource_path", required=True, help="Resource folder path")
@click.option("--backend", default=None, help="Backend name, detected when omitted")
def languages(config_folder: str, resource_path: str, backend: str | None) -> None:
    config = setup(config_folder)
    resource_path = os.path.abspath(resource_path)
    selected = select_backend(config, backend, resource_path)

    try:
        found = selected.discover_languages(resource_path)
    except ResourceError as exc:
        logger.error(str(exc))
        sys.exit(1)

    click.echo(f"Backend: {selected.name}")
    for language in found:
        marker = "*" if language.is_default else " "
        code = language.code or "-"
        click.echo(f"{marker} {language.base_name:<20} {code:<10} {language.name}")


@cli.command("detect")
@click.option("--path", "resource_path", required=True, help="Resource folder path")
def detect(resource_path: str) -> None:
    detected = JsonFormatDetector().detect(os.path.abspath(resource_path))
    click.echo(detected.value)


@cli.command("check")
@click.option("--config-folder", default="config", help="Configuration folder path.")
@click.option("--path", "resource_path", required=True, help="Resource folder path")
@click.option("--backend", default=None, help="Backend name, detected when omitted")
def check(config_folder: str, resource_path: str, backend: str | None) -> None:
    config = setup(config_folder)
    resource_path = os.path.abspath(resource_path)
    selected = select_backend(config, backend, resource_path)

    try:
        found = selected.discover_languages(resource_path)
    except ResourceError as exc:
        logger.error(str(exc))
        sys.exit(1)

    failed = False
    for language in found:
        try:
            file = selected.read(language)
        except ResourceError as exc:
            logger.error(f"{language.file_path}: {exc}")
            failed = True
            continue
        duplicates = " (duplicate keys)" if file.has_duplicates() else ""
        click.echo(f"{language.file_path}: {len(file.entries)} entries{duplicates}")

    if failed:
        sys.exit(1)
