"""Software catalog: identifiers, version probes and command recipes.

The catalog itself lives in ``data/catalog.yaml`` and is loaded lazily by
``maziq.data_loader``. This module only defines the types and the lookup
helpers used by the engine and the front ends.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SoftwareId(Enum):
    HOMEBREW = "homebrew"
    XCODE_CLT = "xcode_clt"
    BRAVE = "brave"
    FIREFOX = "firefox"
    CHROME = "chrome"
    JETBRAINS_TOOLBOX = "jetbrains_toolbox"
    CURSOR = "cursor"
    WINDSURF = "windsurf"
    VISUAL_STUDIO_CODE = "visual_studio_code"
    ZED_STABLE = "zed_stable"
    ZED_PREVIEW = "zed_preview"
    RAYCAST = "raycast"
    RUSTUP = "rustup"
    RUST_STABLE = "rust_stable"
    RUST_NIGHTLY = "rust_nightly"
    CARGO_JUST = "cargo_just"
    CARGO_BINSTALL = "cargo_binstall"
    CARGO_WATCH = "cargo_watch"
    SIMPLE_HTTP_SERVER = "simple_http_server"
    NVM = "nvm"
    BUN = "bun"
    GO = "go"
    FLUTTER = "flutter"
    ANDROID_STUDIO = "android_studio"
    REACT_NATIVE_CLI = "react_native_cli"
    DIOXUS_CLI = "dioxus_cli"
    YEW_CLI = "yew_cli"
    LEPTOS_CLI = "leptos_cli"
    ELECTRON_FORGE = "electron_forge"
    DOCKER_DESKTOP = "docker_desktop"
    POSTMAN = "postman"
    YAAK = "yaak"
    BRUNO = "bruno"
    CODEX_CLI = "codex_cli"
    CLAUDE_CLI = "claude_cli"
    CLAUDE_MULTI_CLI = "claude_multi_cli"
    KIMI_CLI = "kimi_cli"
    GEMINI_CLI = "gemini_cli"
    QWEN_CLI = "qwen_cli"
    OPENCODE_CLI = "opencode_cli"
    NEOVIM = "neovim"
    BTOP = "btop"

    @property
    def key(self) -> str:
        return self.value

    @property
    def display_name(self) -> str:
        return entry(self).display_name

    @classmethod
    def from_key(cls, key: str) -> "SoftwareId | None":
        """Exact, case-sensitive lookup of a catalog key."""
        try:
            return cls(key)
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.value


class SoftwareKind(Enum):
    GUI_APPLICATION = "gui"
    CLI_TOOL = "cli"
    SDK = "sdk"

    @property
    def label(self) -> str:
        return {
            SoftwareKind.GUI_APPLICATION: "GUI",
            SoftwareKind.CLI_TOOL: "CLI",
            SoftwareKind.SDK: "SDK",
        }[self]


# Version probes


@dataclass(frozen=True)
class MdlsProbe:
    """Read kMDItemVersion from a macOS app bundle."""

    path: str

    def description(self) -> str:
        return f"mdls -name kMDItemVersion {self.path}"


@dataclass(frozen=True)
class CommandProbe:
    program: str
    args: tuple[str, ...] = ()

    def description(self) -> str:
        return " ".join([self.program, *self.args])


@dataclass(frozen=True)
class BrewListProbe:
    package: str

    def description(self) -> str:
        return f"brew list --versions {self.package}"


@dataclass(frozen=True)
class ManualProbe:
    note: str

    def description(self) -> str:
        return f"Manual check: {self.note}"


VersionProbe = MdlsProbe | CommandProbe | BrewListProbe | ManualProbe


# Command recipes


@dataclass(frozen=True)
class ShellRecipe:
    command: str

    def description(self) -> str:
        return self.command


@dataclass(frozen=True)
class ManualRecipe:
    note: str

    def description(self) -> str:
        return f"Manual step: {self.note}"


CommandRecipe = ShellRecipe | ManualRecipe


_LABEL_PREFIXES = [
    ("brew install --cask", "homebrew cask"),
    ("brew upgrade --cask", "homebrew cask upgrade"),
    ("brew uninstall --cask", "homebrew cask uninstall"),
    ("brew install", "homebrew"),
    ("brew upgrade", "homebrew upgrade"),
    ("brew uninstall", "homebrew uninstall"),
    ("npm install -g", "npm global"),
    ("npm update -g", "npm global update"),
    ("npm uninstall -g", "npm global uninstall"),
    ("cargo install", "cargo"),
    ("cargo +", "cargo"),
    ("cargo uninstall", "cargo uninstall"),
    ("rustup", "rustup"),
]


def infer_label(recipe: CommandRecipe) -> str:
    """Derive a short source label from the recipe's command text."""
    if isinstance(recipe, ManualRecipe):
        return "manual"
    command = recipe.command.strip()
    for prefix, label in _LABEL_PREFIXES:
        if command.startswith(prefix):
            return label
    if command.startswith("curl") or "| sh" in command or "| bash" in command:
        return "curl script"
    return "shell"


@dataclass(frozen=True)
class CommandSource:
    """One way of performing an action; sources are tried in order."""

    label: str
    recipe: CommandRecipe

    @classmethod
    def shell(cls, command: str, label: str | None = None) -> "CommandSource":
        recipe = ShellRecipe(command)
        return cls(label or infer_label(recipe), recipe)

    @classmethod
    def manual(cls, note: str, label: str | None = None) -> "CommandSource":
        recipe = ManualRecipe(note)
        return cls(label or infer_label(recipe), recipe)

    def description(self) -> str:
        return f"[{self.label}] {self.recipe.description()}"


@dataclass(frozen=True)
class SoftwareEntry:
    id: SoftwareId
    display_name: str
    category: str
    summary: str
    kind: SoftwareKind
    dependencies: tuple[SoftwareId, ...]
    version_probe: VersionProbe
    install_sources: tuple[CommandSource, ...]
    update_sources: tuple[CommandSource, ...]
    uninstall_sources: tuple[CommandSource, ...]

    @property
    def is_gui(self) -> bool:
        return self.kind is SoftwareKind.GUI_APPLICATION


def all_entries() -> list[SoftwareEntry]:
    """Return every catalog entry in catalog order."""
    from maziq.data_loader import get_catalog

    return list(get_catalog().values())


def entry(identifier: SoftwareId) -> SoftwareEntry:
    from maziq.data_loader import get_catalog

    return get_catalog()[identifier]


def from_key(key: str) -> SoftwareId | None:
    return SoftwareId.from_key(key)


def find_by_key(key: str) -> SoftwareEntry | None:
    """Look up an entry by key, ignoring case and surrounding whitespace."""
    identifier = SoftwareId.from_key(key.strip().lower())
    if identifier is None:
        return None
    return entry(identifier)


def categories() -> dict[str, list[SoftwareId]]:
    """Group identifiers by category, both in catalog order."""
    grouped: dict[str, list[SoftwareId]] = {}
    for item in all_entries():
        grouped.setdefault(item.category, []).append(item.id)
    return grouped


__all__ = [
    "SoftwareId",
    "SoftwareKind",
    "MdlsProbe",
    "CommandProbe",
    "BrewListProbe",
    "ManualProbe",
    "VersionProbe",
    "ShellRecipe",
    "ManualRecipe",
    "CommandRecipe",
    "CommandSource",
    "SoftwareEntry",
    "infer_label",
    "all_entries",
    "entry",
    "from_key",
    "find_by_key",
    "categories",
]
