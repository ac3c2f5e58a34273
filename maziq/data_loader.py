"""Loader for the bundled software catalog.

The catalog is read from ``data/catalog.yaml`` once, validated, and cached
in a module-level variable for the lifetime of the process. Validation is
strict: every YAML key must name a SoftwareId member and every member must
have exactly one entry, so a typo in the data file fails loudly at startup
instead of surfacing as a missing package later.

Testing:
- Tests call clear_cache() to reload the catalog between cases
- load_catalog(path) parses an arbitrary file without touching the cache
"""

import logging
from pathlib import Path

import yaml

from maziq.catalog import (
    BrewListProbe,
    CommandProbe,
    CommandSource,
    ManualProbe,
    MdlsProbe,
    SoftwareEntry,
    SoftwareId,
    SoftwareKind,
    VersionProbe,
)
from maziq.errors import CatalogError
from maziq.paths import get_data_dir


_logging = logging.getLogger(__name__)

_catalog_cache: dict[SoftwareId, SoftwareEntry] | None = None

PROBE_KINDS = ("command", "mdls", "brew_list", "manual")
SOURCE_KINDS = ("shell", "manual")
ACTION_FIELDS = ("install", "update", "uninstall")


def _load_yaml_file(path: Path) -> dict:
    if not path.exists():
        raise CatalogError(f"Data file not found: {path}")
    if not path.is_file():
        raise CatalogError(f"Data path is not a file: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise CatalogError(f"Failed to load data file {path}: {e}") from e

    if not isinstance(data, dict):
        raise CatalogError(f"Data file {path} must contain a mapping")
    return data


def _require_str_field(data: dict, field: str, entity_name: str) -> str:
    """Validate a required non-empty string field and return it."""
    if field not in data:
        raise CatalogError(f"{entity_name} missing required field: {field}")
    value = data[field]
    if not isinstance(value, str) or not value.strip():
        raise CatalogError(f"{entity_name} field '{field}' must be a non-empty string")
    return value


def _require_list_field(data: dict, field: str, entity_name: str) -> list:
    if field not in data:
        raise CatalogError(f"{entity_name} missing required field: {field}")
    if not isinstance(data[field], list):
        raise CatalogError(f"{entity_name} field '{field}' must be an array")
    return data[field]


def _require_enum_field(
    data: dict, field: str, entity_name: str, allowed_values: set[str]
) -> str:
    value = _require_str_field(data, field, entity_name)
    if value not in allowed_values:
        sorted_allowed = ", ".join(sorted(allowed_values))
        raise CatalogError(
            f"{entity_name} has invalid {field}: {value}. "
            f"Must be one of: {sorted_allowed}"
        )
    return value


def _parse_probe(data: object, entity_name: str) -> VersionProbe:
    """Build a version probe from its single-key mapping."""
    if not isinstance(data, dict):
        raise CatalogError(f"{entity_name} field 'version_probe' must be an object")

    kinds = [kind for kind in PROBE_KINDS if kind in data]
    if len(kinds) != 1:
        raise CatalogError(
            f"{entity_name} version_probe must set exactly one of: "
            f"{', '.join(PROBE_KINDS)}"
        )

    kind = kinds[0]
    probe_name = f"{entity_name} version_probe"
    if kind == "command":
        program = _require_str_field(data, "command", probe_name)
        args = data.get("args") or []
        if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
            raise CatalogError(f"{probe_name} field 'args' must be an array of strings")
        return CommandProbe(program, tuple(args))
    if kind == "mdls":
        return MdlsProbe(_require_str_field(data, "mdls", probe_name))
    if kind == "brew_list":
        return BrewListProbe(_require_str_field(data, "brew_list", probe_name))
    return ManualProbe(_require_str_field(data, "manual", probe_name))


def _parse_sources(items: list, entity_name: str, field: str) -> tuple[CommandSource, ...]:
    sources = []
    for i, item in enumerate(items):
        source_name = f"{entity_name} {field}[{i}]"
        if not isinstance(item, dict):
            raise CatalogError(f"{source_name} must be an object")

        kinds = [kind for kind in SOURCE_KINDS if kind in item]
        if len(kinds) != 1:
            raise CatalogError(f"{source_name} must set exactly one of: shell, manual")

        label = item.get("label")
        if label is not None and (not isinstance(label, str) or not label.strip()):
            raise CatalogError(f"{source_name} field 'label' must be a non-empty string")

        if kinds[0] == "shell":
            command = _require_str_field(item, "shell", source_name)
            sources.append(CommandSource.shell(command, label=label))
        else:
            note = _require_str_field(item, "manual", source_name)
            sources.append(CommandSource.manual(note, label=label))

    if not sources:
        raise CatalogError(f"{entity_name} field '{field}' must list at least one source")
    return tuple(sources)


def _parse_entry(key: str, data: object) -> SoftwareEntry:
    entity_name = f"Software '{key}'"
    if not isinstance(data, dict):
        raise CatalogError(f"{entity_name} must be an object")

    identifier = SoftwareId.from_key(key)
    if identifier is None:
        raise CatalogError(f"{entity_name} is not a known software id")

    kind = _require_enum_field(
        data, "kind", entity_name, {kind.value for kind in SoftwareKind}
    )

    dependencies = []
    for dep_key in _require_list_field(data, "dependencies", entity_name):
        dep = SoftwareId.from_key(dep_key) if isinstance(dep_key, str) else None
        if dep is None:
            raise CatalogError(f"{entity_name} has unknown dependency: {dep_key}")
        if dep is identifier:
            raise CatalogError(f"{entity_name} depends on itself")
        dependencies.append(dep)

    sources = {
        field: _parse_sources(
            _require_list_field(data, field, entity_name), entity_name, field
        )
        for field in ACTION_FIELDS
    }

    return SoftwareEntry(
        id=identifier,
        display_name=_require_str_field(data, "name", entity_name),
        category=_require_str_field(data, "category", entity_name),
        summary=_require_str_field(data, "summary", entity_name),
        kind=SoftwareKind(kind),
        dependencies=tuple(dependencies),
        version_probe=_parse_probe(data.get("version_probe"), entity_name),
        install_sources=sources["install"],
        update_sources=sources["update"],
        uninstall_sources=sources["uninstall"],
    )


def load_catalog(path: Path | None = None) -> dict[SoftwareId, SoftwareEntry]:
    """Parse and validate a catalog file.

    Args:
        path: Catalog file to read (defaults to the bundled catalog.yaml)

    Returns:
        Entries keyed by SoftwareId, in file order

    Raises:
        CatalogError: If the file is unreadable or fails validation
    """
    if path is None:
        path = get_data_dir() / "catalog.yaml"

    raw = _load_yaml_file(path)
    software = raw.get("software")
    if not isinstance(software, dict):
        raise CatalogError(f"Data file {path} missing 'software' mapping")

    catalog: dict[SoftwareId, SoftwareEntry] = {}
    for key, data in software.items():
        item = _parse_entry(str(key), data)
        catalog[item.id] = item

    missing = [identifier.key for identifier in SoftwareId if identifier not in catalog]
    if missing:
        raise CatalogError(f"Catalog {path} has no entry for: {', '.join(missing)}")

    _logging.debug(f"Loaded {len(catalog)} catalog entries from {path}")
    return catalog


def get_catalog() -> dict[SoftwareId, SoftwareEntry]:
    """Return the cached bundled catalog, loading it on first use."""
    global _catalog_cache
    if _catalog_cache is None:
        _catalog_cache = load_catalog()
    return _catalog_cache


def clear_cache() -> None:
    global _catalog_cache
    _catalog_cache = None


__all__ = [
    "load_catalog",
    "get_catalog",
    "clear_cache",
]
