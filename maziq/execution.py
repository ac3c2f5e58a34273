"""Shell execution and version probing."""

import logging
import subprocess
from dataclasses import dataclass

from maziq.catalog import (
    BrewListProbe,
    CommandProbe,
    ManualProbe,
    MdlsProbe,
    VersionProbe,
)
from maziq.errors import CommandFailed, SpawnError

PROBE_TIMEOUT = 10
INSTALL_TIMEOUT = 600

_logging = logging.getLogger(__name__)


@dataclass(frozen=True)
class Installed:
    version: str | None = None

    def describe(self) -> str:
        return self.version or "installed"


@dataclass(frozen=True)
class NotInstalled:
    def describe(self) -> str:
        return "not installed"


@dataclass(frozen=True)
class ManualCheck:
    note: str

    def describe(self) -> str:
        return f"manual check required: {self.note}"


@dataclass(frozen=True)
class Unknown:
    note: str

    def describe(self) -> str:
        return f"unknown: {self.note}"


StatusState = Installed | NotInstalled | ManualCheck | Unknown


def parse_mdls_output(stdout: str) -> Installed:
    """Extract kMDItemVersion from ``mdls`` output.

    mdls prints ``kMDItemVersion = "1.2.3"``, or ``(null)`` when the bundle
    carries no version. Either way the bundle exists, so the result is
    always Installed.
    """
    for line in stdout.splitlines():
        if "=" not in line:
            continue
        value = line.split("=", 1)[1].strip().strip('"').strip()
        if not value or value == "(null)":
            return Installed(None)
        return Installed(value)
    return Installed(None)


class CommandExecutor:
    """Runs recipe commands and version probes.

    In dry-run mode run_shell() returns without spawning anything; probes
    always run since they are read-only.
    """

    def __init__(
        self,
        dry_run: bool = False,
        install_timeout: int = INSTALL_TIMEOUT,
        probe_timeout: int = PROBE_TIMEOUT,
    ):
        self.dry_run = dry_run
        self.install_timeout = install_timeout
        self.probe_timeout = probe_timeout

    def run_shell(self, command: str) -> None:
        """Run ``command`` through ``sh -c``.

        Raises:
            SpawnError: If the shell could not be started
            CommandFailed: If the command exits non-zero or times out
        """
        if self.dry_run:
            _logging.debug(f"dry-run, not executing: {command}")
            return

        _logging.debug(f"Running command: {command}")
        try:
            result = subprocess.run(
                command,
                shell=True,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.install_timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandFailed(
                command, f"timed out after {self.install_timeout} seconds"
            ) from e
        except OSError as e:
            raise SpawnError(command, e) from e

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            _logging.debug(f"Command exited {result.returncode}: {command}: {stderr}")
            raise CommandFailed(command, stderr)

    def detect_version(self, probe: VersionProbe) -> StatusState:
        """Classify the probe result. Never raises."""
        if isinstance(probe, MdlsProbe):
            return self._detect_mdls(probe.path)
        if isinstance(probe, CommandProbe):
            return self._detect_command(probe.program, list(probe.args))
        if isinstance(probe, BrewListProbe):
            return self._detect_command("brew", ["list", "--versions", probe.package])
        if isinstance(probe, ManualProbe):
            return ManualCheck(probe.note)
        return Unknown(f"unsupported probe: {probe!r}")

    def _detect_mdls(self, path: str) -> StatusState:
        try:
            result = subprocess.run(
                ["mdls", "-name", "kMDItemVersion", path],
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.probe_timeout,
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            _logging.debug(f"mdls probe for {path} failed: {e}")
            return Unknown("failed to run mdls")

        if result.returncode != 0:
            return NotInstalled()
        return parse_mdls_output(result.stdout or "")

    def _detect_command(self, program: str, args: list[str]) -> StatusState:
        try:
            result = subprocess.run(
                [program, *args],
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.probe_timeout,
            )
        except FileNotFoundError:
            return NotInstalled()
        except subprocess.TimeoutExpired:
            _logging.debug(f"Probe `{program}` timed out")
            return Unknown(f"`{program}` timed out after {self.probe_timeout} seconds")
        except OSError as e:
            _logging.debug(f"Probe `{program}` could not run: {e}")
            return Unknown(str(e))

        if result.returncode != 0:
            return NotInstalled()
        stdout = (result.stdout or "").strip()
        return Installed(stdout or None)


__all__ = [
    "PROBE_TIMEOUT",
    "INSTALL_TIMEOUT",
    "Installed",
    "NotInstalled",
    "ManualCheck",
    "Unknown",
    "StatusState",
    "parse_mdls_output",
    "CommandExecutor",
]
