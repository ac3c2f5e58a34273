"""Error types and message formatting for maziq.

The orchestrator raises subclasses of ManagerError. Front ends catch them and
render the message with format_error() next to the affected package.

Error Style Guide:
- User-facing errors use 'Error: ' prefix
- Messages name the package by display name and quote commands in backticks
- Include actionable hints where helpful
"""


class ManagerError(Exception):
    """Base class for provisioning failures."""


class CycleDetected(ManagerError):
    """The catalog dependency graph contains a cycle through ``identifier``."""

    def __init__(self, identifier, name: str | None = None):
        self.identifier = identifier
        name = name or getattr(identifier, "display_name", identifier)
        super().__init__(f"Dependency cycle detected while resolving {name}")


class CommandFailed(ManagerError):
    """A shell recipe exited non-zero (or timed out)."""

    def __init__(self, command: str, stderr: str):
        self.command = command
        self.stderr = stderr
        super().__init__(f"Command `{command}` failed: {stderr}")


class SpawnError(ManagerError):
    """The shell could not be launched at all."""

    def __init__(self, command: str, cause: OSError):
        self.command = command
        self.cause = cause
        super().__init__(f"Failed to spawn command: {cause}")


class UnsafeGuiCommand(ManagerError):
    """A GUI application recipe is not scoped to a Homebrew cask."""

    def __init__(self, identifier, command: str, name: str | None = None):
        self.identifier = identifier
        self.command = command
        name = name or getattr(identifier, "display_name", identifier)
        super().__init__(
            f"GUI application `{name}` attempted to run unsafe command `{command}`. "
            "Only application binaries should be managed."
        )


class CatalogError(Exception):
    """Raised when the bundled catalog data is missing or invalid."""


class TemplateError(Exception):
    """Raised when an onboarding template cannot be loaded."""


class TemplateNotFound(TemplateError):
    """No template matches the requested name."""


def format_error(message: str) -> str:
    """Format an error message with consistent prefix.

    Examples:
        >>> format_error("unknown software id `vim`")
        'Error: unknown software id `vim`'
    """
    return f"Error: {message}"


def format_suggestion(message: str, suggestion: str) -> str:
    """Format an error message with a helpful suggestion.

    Examples:
        >>> format_suggestion("unknown software id `vim`", "run 'maziq software list'")
        "Error: unknown software id `vim`. Hint: run 'maziq software list'"
    """
    return f"{format_error(message)}. Hint: {suggestion}"


__all__ = [
    "ManagerError",
    "CycleDetected",
    "CommandFailed",
    "SpawnError",
    "UnsafeGuiCommand",
    "CatalogError",
    "TemplateError",
    "TemplateNotFound",
    "format_error",
    "format_suggestion",
]
