"""Pytest fixtures and utilities for maziq tests."""

import tempfile
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest

from maziq import data_loader
from maziq.catalog import (
    CommandProbe,
    CommandSource,
    MdlsProbe,
    SoftwareEntry,
    SoftwareId,
    SoftwareKind,
)
from maziq.errors import CommandFailed
from maziq.execution import NotInstalled
from maziq.manager import RunOptions, SoftwareManager


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def isolated_state(tmp_path: Path, monkeypatch) -> Path:
    """Point every state path at a temporary directory."""
    state = tmp_path / "state"
    monkeypatch.setenv("MAZIQ_HOME", str(state))
    monkeypatch.delenv("MAZIQ_HISTORY_FILE", raising=False)
    monkeypatch.delenv("MAZIQ_TEMPLATES_DIR", raising=False)
    return state


@pytest.fixture(autouse=True)
def fresh_catalog_cache() -> Generator[None, None, None]:
    """Reload the bundled catalog for every test."""
    data_loader.clear_cache()
    yield
    data_loader.clear_cache()


@pytest.fixture
def mock_no_tty() -> Generator[None, None, None]:
    """Mock sys.stdin.isatty to return False."""
    with patch("sys.stdin.isatty", return_value=False):
        yield


class FakeExecutor:
    """Records shell commands instead of running them.

    Commands listed in ``failing`` raise CommandFailed; probe results come
    from ``statuses`` keyed by probe, defaulting to NotInstalled.
    """

    def __init__(self, dry_run=False, failing=(), statuses=None):
        self.dry_run = dry_run
        self.failing = set(failing)
        self.statuses = dict(statuses or {})
        self.commands: list[str] = []
        self.probes: list = []

    def run_shell(self, command):
        if self.dry_run:
            return
        self.commands.append(command)
        if command in self.failing:
            raise CommandFailed(command, "boom")

    def detect_version(self, probe):
        self.probes.append(probe)
        return self.statuses.get(probe, NotInstalled())


def make_entry(
    identifier: SoftwareId,
    kind: SoftwareKind = SoftwareKind.CLI_TOOL,
    deps=(),
    install=None,
    update=None,
    uninstall=None,
    probe=None,
    name=None,
) -> SoftwareEntry:
    """Build a catalog entry with predictable command text."""
    key = identifier.key
    if kind is SoftwareKind.GUI_APPLICATION:
        install = install or [CommandSource.shell(f"brew install --cask {key}")]
        update = update or [CommandSource.shell(f"brew upgrade --cask {key}")]
        uninstall = uninstall or [CommandSource.shell(f"brew uninstall --cask {key}")]
        probe = probe or MdlsProbe(f"/Applications/{key}.app")
    else:
        install = install or [CommandSource.shell(f"install {key}")]
        update = update or [CommandSource.shell(f"update {key}")]
        uninstall = uninstall or [CommandSource.shell(f"uninstall {key}")]
        probe = probe or CommandProbe(key, ("--version",))
    return SoftwareEntry(
        id=identifier,
        display_name=name or key.replace("_", " ").title(),
        category="Test",
        summary=f"{key} for tests",
        kind=kind,
        dependencies=tuple(deps),
        version_probe=probe,
        install_sources=tuple(install),
        update_sources=tuple(update),
        uninstall_sources=tuple(uninstall),
    )


class FakeCatalog:
    def __init__(self, entries):
        self.items = {item.id: item for item in entries}

    def lookup(self, identifier):
        return self.items[identifier]

    def entries(self):
        return list(self.items.values())


@pytest.fixture
def history_records() -> list:
    return []


@pytest.fixture
def make_manager(history_records):
    """Factory for a SoftwareManager over a fake catalog and executor."""

    def _create(entries, executor=None, dry_run=False, force=False):
        fake_catalog = FakeCatalog(entries)
        options = RunOptions(dry_run=dry_run, force=force)
        return SoftwareManager(
            options=options,
            executor=executor or FakeExecutor(dry_run=dry_run),
            lookup=fake_catalog.lookup,
            entries=fake_catalog.entries,
            history_writer=history_records.append,
        )

    return _create
