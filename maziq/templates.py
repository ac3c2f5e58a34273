"""Onboarding templates: named lists of catalog identifiers.

A template file looks like::

    name: hmziq
    description: Default workstation
    software:
      - homebrew
      - rust_stable
"""

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

from maziq.catalog import SoftwareId
from maziq.errors import TemplateError, TemplateNotFound
from maziq.paths import get_template_dirs

DEFAULT_TEMPLATE = "hmziq"
TEMPLATE_SUFFIXES = (".yaml", ".yml")

_logging = logging.getLogger(__name__)


@dataclass
class Template:
    name: str
    description: str | None
    software: list[SoftwareId]
    path: Path

    @property
    def slug(self) -> str:
        return self.name.lower().replace(" ", "-")


def load_from_path(path: Path) -> Template:
    """Read and validate one template file.

    Raises:
        TemplateError: If the file is unreadable, malformed, or names an
            unknown software id
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise TemplateError(f"Failed to read template file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise TemplateError(f"Failed to parse {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise TemplateError(f"Failed to parse {path}: expected a mapping")

    name = data.get("name") or path.stem
    if not isinstance(name, str):
        raise TemplateError(f"Failed to parse {path}: 'name' must be a string")

    description = data.get("description")
    if description is not None and not isinstance(description, str):
        raise TemplateError(f"Failed to parse {path}: 'description' must be a string")

    keys = data.get("software") or []
    if not isinstance(keys, list):
        raise TemplateError(f"Failed to parse {path}: 'software' must be a list")

    software = []
    for key in keys:
        identifier = SoftwareId.from_key(key) if isinstance(key, str) else None
        if identifier is None:
            raise TemplateError(
                f"Template `{name}` references unknown software id `{key}`"
            )
        software.append(identifier)

    return Template(name=name, description=description, software=software, path=path)


def _template_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.suffix.lower() in TEMPLATE_SUFFIXES
    )


def load_all(dirs: list[Path] | None = None) -> list[Template]:
    """Load every template on the search path.

    Earlier directories shadow later ones when two templates share a slug.
    """
    if dirs is None:
        dirs = get_template_dirs()

    templates: list[Template] = []
    seen: set[str] = set()
    for directory in dirs:
        for path in _template_files(directory):
            template = load_from_path(path)
            if template.slug in seen:
                _logging.debug(f"Template {path} shadowed by an earlier `{template.slug}`")
                continue
            seen.add(template.slug)
            templates.append(template)
    return templates


def load_named(name: str, dirs: list[Path] | None = None) -> Template:
    """Find a template by file stem, slug, or case-insensitive name.

    Raises:
        TemplateError: If nothing matches or the match fails to load
    """
    if dirs is None:
        dirs = get_template_dirs()

    for directory in dirs:
        for suffix in TEMPLATE_SUFFIXES:
            explicit = directory / f"{name}{suffix}"
            if explicit.is_file():
                return load_from_path(explicit)

    normalized = name.lower()
    for template in load_all(dirs):
        if template.slug == normalized or template.name.lower() == normalized:
            return template
    raise TemplateNotFound(f"Template `{name}` was not found")


__all__ = [
    "DEFAULT_TEMPLATE",
    "Template",
    "load_from_path",
    "load_all",
    "load_named",
]
