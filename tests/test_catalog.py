"""Tests for the bundled catalog and its loader."""

from pathlib import Path

import pytest

from maziq import catalog, data_loader
from maziq.catalog import (
    BrewListProbe,
    CommandProbe,
    CommandSource,
    ManualProbe,
    ManualRecipe,
    MdlsProbe,
    ShellRecipe,
    SoftwareId,
    SoftwareKind,
    infer_label,
)
from maziq.errors import CatalogError
from maziq.manager import GUI_SAFE_PREFIXES
from maziq.resolver import resolve

VALID_ENTRY = """
    name: Go
    category: Languages
    summary: Go toolchain.
    kind: cli
    dependencies: []
    version_probe: {brew_list: go}
    install:
      - shell: brew install go
    update:
      - shell: brew upgrade go
    uninstall:
      - shell: brew uninstall go
"""


def write_catalog(directory: Path, body: str) -> Path:
    path = directory / "catalog.yaml"
    path.write_text(body, encoding="utf-8")
    return path


class TestBundledCatalog:
    """Integrity checks on data/catalog.yaml."""

    def test_every_id_has_an_entry(self):
        entries = catalog.all_entries()
        assert len(entries) == len(SoftwareId) == 42
        assert {e.id for e in entries} == set(SoftwareId)

    def test_entry_order_follows_file(self):
        entries = catalog.all_entries()
        assert entries[0].id == SoftwareId.HOMEBREW
        assert entries[-1].id == SoftwareId.BTOP

    def test_every_action_has_sources(self):
        for item in catalog.all_entries():
            assert item.install_sources, item.id
            assert item.update_sources, item.id
            assert item.uninstall_sources, item.id

    def test_gui_sources_are_cask_scoped(self):
        """GUI shell recipes only use brew cask commands."""
        for item in catalog.all_entries():
            if not item.is_gui:
                continue
            for source in item.install_sources + item.update_sources + item.uninstall_sources:
                if isinstance(source.recipe, ShellRecipe):
                    assert source.recipe.command.startswith(GUI_SAFE_PREFIXES), item.id

    def test_gui_entries_probe_app_bundles(self):
        for item in catalog.all_entries():
            if item.is_gui:
                assert isinstance(item.version_probe, (MdlsProbe, ManualProbe)), item.id

    def test_dependency_graph_is_acyclic(self):
        """Resolving every identifier succeeds."""
        order = resolve(list(SoftwareId), lambda i: catalog.entry(i).dependencies)
        assert len(order) == len(SoftwareId)

    def test_no_self_dependencies(self):
        for item in catalog.all_entries():
            assert item.id not in item.dependencies

    def test_known_entries(self):
        rust = catalog.entry(SoftwareId.RUST_STABLE)
        assert rust.dependencies == (SoftwareId.RUSTUP,)

        brave = catalog.entry(SoftwareId.BRAVE)
        assert brave.kind is SoftwareKind.GUI_APPLICATION
        assert brave.version_probe == MdlsProbe("/Applications/Brave Browser.app")
        assert brave.install_sources[0].label == "homebrew cask"

        assert catalog.entry(SoftwareId.GO).version_probe == BrewListProbe("go")
        assert catalog.entry(SoftwareId.NEOVIM).version_probe == CommandProbe(
            "nvim", ("--version",)
        )
        assert isinstance(catalog.entry(SoftwareId.NVM).version_probe, ManualProbe)

    def test_explicit_labels_kept(self):
        assert catalog.entry(SoftwareId.NVM).install_sources[0].label == "curl script"
        nvm_update = catalog.entry(SoftwareId.NVM).update_sources[0]
        assert isinstance(nvm_update.recipe, ManualRecipe)
        assert nvm_update.label == "manual"

    def test_display_name_via_id(self):
        assert SoftwareId.NEOVIM.display_name == "Neovim"
        assert SoftwareId.BRAVE.display_name == "Brave Browser"

    def test_catalog_is_cached(self):
        assert data_loader.get_catalog() is data_loader.get_catalog()


class TestLookups:
    """Test key lookups and grouping."""

    def test_from_key_exact(self):
        assert catalog.from_key("neovim") is SoftwareId.NEOVIM
        assert SoftwareId.from_key("Neovim") is None
        assert catalog.from_key("vim") is None

    def test_find_by_key_normalizes(self):
        assert catalog.find_by_key("  NeoVim ").id is SoftwareId.NEOVIM
        assert catalog.find_by_key("vim") is None

    def test_str_is_key(self):
        assert str(SoftwareId.RUST_STABLE) == "rust_stable"

    def test_categories(self):
        grouped = catalog.categories()
        assert grouped["Browsers"] == [SoftwareId.BRAVE, SoftwareId.FIREFOX, SoftwareId.CHROME]
        assert sum(len(ids) for ids in grouped.values()) == len(SoftwareId)
        assert list(grouped)[0] == "System Essentials"

    def test_kind_labels(self):
        assert SoftwareKind.GUI_APPLICATION.label == "GUI"
        assert SoftwareKind.CLI_TOOL.label == "CLI"
        assert SoftwareKind.SDK.label == "SDK"


class TestInferLabel:
    """Test source label inference."""

    @pytest.mark.parametrize(
        "command,label",
        [
            ("brew install --cask zed", "homebrew cask"),
            ("brew upgrade --cask zed", "homebrew cask upgrade"),
            ("brew uninstall --cask zed", "homebrew cask uninstall"),
            ("brew install neovim", "homebrew"),
            ("brew upgrade neovim", "homebrew upgrade"),
            ("brew uninstall neovim", "homebrew uninstall"),
            ("npm install -g @google/gemini-cli", "npm global"),
            ("npm update -g @google/gemini-cli", "npm global update"),
            ("npm uninstall -g @google/gemini-cli", "npm global uninstall"),
            ("cargo install just", "cargo"),
            ("cargo +nightly install leptos", "cargo"),
            ("cargo uninstall just", "cargo uninstall"),
            ("rustup toolchain install stable", "rustup"),
            ("curl -fsSL https://bun.sh/install | bash", "curl script"),
            ("wget -qO- https://example.invalid | sh", "curl script"),
            ("xcode-select --install", "shell"),
        ],
    )
    def test_shell_labels(self, command, label):
        assert infer_label(ShellRecipe(command)) == label

    def test_manual_label(self):
        assert infer_label(ManualRecipe("Do it by hand")) == "manual"

    def test_explicit_label_wins(self):
        source = CommandSource.shell("brew install neovim", label="tap")
        assert source.label == "tap"
        assert source.description() == "[tap] brew install neovim"

    def test_manual_description(self):
        assert CommandSource.manual("Open the site").description() == (
            "[manual] Manual step: Open the site"
        )


class TestLoadCatalogErrors:
    """Test validation of malformed catalog files."""

    def test_missing_file(self, temp_dir):
        with pytest.raises(CatalogError, match="not found"):
            data_loader.load_catalog(temp_dir / "absent.yaml")

    def test_invalid_yaml(self, temp_dir):
        path = write_catalog(temp_dir, "software: [unclosed\n")
        with pytest.raises(CatalogError, match="Failed to load"):
            data_loader.load_catalog(path)

    def test_missing_software_mapping(self, temp_dir):
        path = write_catalog(temp_dir, "other: 1\n")
        with pytest.raises(CatalogError, match="'software'"):
            data_loader.load_catalog(path)

    def test_unknown_key(self, temp_dir):
        path = write_catalog(temp_dir, "software:\n  golang:" + VALID_ENTRY)
        with pytest.raises(CatalogError, match="not a known software id"):
            data_loader.load_catalog(path)

    def test_missing_entries_reported(self, temp_dir):
        """A catalog without every id fails after parsing."""
        path = write_catalog(temp_dir, "software:\n  go:" + VALID_ENTRY)
        with pytest.raises(CatalogError, match="has no entry for: homebrew"):
            data_loader.load_catalog(path)

    def test_unknown_dependency(self, temp_dir):
        body = VALID_ENTRY.replace("dependencies: []", "dependencies: [golang]")
        path = write_catalog(temp_dir, "software:\n  go:" + body)
        with pytest.raises(CatalogError, match="unknown dependency: golang"):
            data_loader.load_catalog(path)

    def test_self_dependency(self, temp_dir):
        body = VALID_ENTRY.replace("dependencies: []", "dependencies: [go]")
        path = write_catalog(temp_dir, "software:\n  go:" + body)
        with pytest.raises(CatalogError, match="depends on itself"):
            data_loader.load_catalog(path)

    def test_invalid_kind(self, temp_dir):
        body = VALID_ENTRY.replace("kind: cli", "kind: app")
        path = write_catalog(temp_dir, "software:\n  go:" + body)
        with pytest.raises(CatalogError, match="invalid kind"):
            data_loader.load_catalog(path)

    def test_probe_needs_exactly_one_kind(self, temp_dir):
        body = VALID_ENTRY.replace(
            "version_probe: {brew_list: go}", "version_probe: {brew_list: go, mdls: /x}"
        )
        path = write_catalog(temp_dir, "software:\n  go:" + body)
        with pytest.raises(CatalogError, match="exactly one of"):
            data_loader.load_catalog(path)

    def test_empty_source_list(self, temp_dir):
        body = VALID_ENTRY.replace(
            "update:\n      - shell: brew upgrade go", "update: []"
        )
        path = write_catalog(temp_dir, "software:\n  go:" + body)
        with pytest.raises(CatalogError, match="at least one source"):
            data_loader.load_catalog(path)

    def test_missing_name(self, temp_dir):
        body = VALID_ENTRY.replace("name: Go\n", "")
        path = write_catalog(temp_dir, "software:\n  go:" + body)
        with pytest.raises(CatalogError, match="missing required field: name"):
            data_loader.load_catalog(path)
