"""Execution engine and status detection.

SoftwareManager walks a resolved identifier order, tries each entry's command
sources in declared order, and emits one ExecutionEvent per identifier. A
batch stops at the first identifier whose sources are all exhausted.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum

from maziq import catalog, history
from maziq.catalog import (
    ManualRecipe,
    ShellRecipe,
    SoftwareEntry,
    SoftwareId,
    SoftwareKind,
)
from maziq.errors import (
    CommandFailed,
    CycleDetected,
    ManagerError,
    SpawnError,
    UnsafeGuiCommand,
)
from maziq.execution import (
    CommandExecutor,
    Installed,
    ManualCheck,
    NotInstalled,
    StatusState,
    Unknown,
)
from maziq.resolver import resolve

_logging = logging.getLogger(__name__)

GUI_SAFE_PREFIXES = (
    "brew install --cask",
    "brew upgrade --cask",
    "brew uninstall --cask",
)
ALREADY_INSTALLED_NOTE = "Already installed; run install --force to reinstall."
TEST_NOT_IMPLEMENTED_NOTE = "Test command not implemented"


class ActionKind(Enum):
    INSTALL = "install"
    UPDATE = "update"
    UNINSTALL = "uninstall"
    TEST = "test"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class RunOptions:
    dry_run: bool = False
    force: bool = False


def _name(identifier) -> str:
    return getattr(identifier, "display_name", str(identifier))


@dataclass(frozen=True)
class ExecutionEvent:
    id: SoftwareId
    action: ActionKind
    command: str | None = None
    source: str | None = None
    note: str | None = None
    skipped: bool = False
    name: str | None = field(default=None, compare=False)

    def summary(self) -> str:
        prefix = f"[{self.action.label}] {self.name or _name(self.id)}"
        if self.note:
            return f"{prefix}: {self.note}"
        if self.command:
            if self.skipped:
                return f"{prefix}: dry-run -> {self.command}"
            return f"{prefix}: {self.command}"
        if self.skipped:
            return f"{prefix}: skipped"
        return f"{prefix}: completed"


@dataclass(frozen=True)
class StatusReport:
    id: SoftwareId
    state: StatusState
    name: str | None = field(default=None, compare=False)

    def summary(self) -> str:
        key = getattr(self.id, "key", self.id)
        return f"{self.name or _name(self.id)} ({key}) -> {self.state.describe()}"


def install_missing(statuses: dict[SoftwareId, StatusState]) -> list[SoftwareId]:
    """Identifiers whose cached state is anything but Installed."""
    return [
        identifier
        for identifier, state in statuses.items()
        if isinstance(state, (NotInstalled, ManualCheck, Unknown))
    ]


class SoftwareManager:
    """Runs install/update/uninstall batches against the catalog.

    The catalog lookups, the executor and the history writer are injectable
    so tests can run the engine against a fake catalog without spawning
    processes.
    """

    def __init__(
        self,
        options: RunOptions | None = None,
        executor: CommandExecutor | None = None,
        lookup: Callable[[SoftwareId], SoftwareEntry] = catalog.entry,
        entries: Callable[[], list[SoftwareEntry]] = catalog.all_entries,
        history_writer: Callable[[history.HistoryRecord], object] | None = history.append,
    ):
        self.options = options or RunOptions()
        if executor is not None and executor.dry_run != self.options.dry_run:
            raise ValueError(
                f"executor dry_run={executor.dry_run} does not match "
                f"RunOptions.dry_run={self.options.dry_run}"
            )
        self.executor = executor or CommandExecutor(dry_run=self.options.dry_run)
        self._lookup = lookup
        self._entries = entries
        self._history_writer = history_writer

    @property
    def dry_run(self) -> bool:
        return self.options.dry_run

    @property
    def force(self) -> bool:
        return self.options.force

    # Planning

    def display_name(self, identifier: SoftwareId) -> str:
        return self._lookup(identifier).display_name

    def resolve_order(self, roots: Iterable[SoftwareId]) -> list[SoftwareId]:
        try:
            return resolve(roots, lambda identifier: self._lookup(identifier).dependencies)
        except CycleDetected as e:
            raise CycleDetected(e.identifier, self.display_name(e.identifier)) from None

    def plan(self, ids: Iterable[SoftwareId], action: ActionKind) -> list[SoftwareId]:
        """Execution order for ``action``; uninstall runs dependents first."""
        order = self.resolve_order(ids)
        if action is ActionKind.UNINSTALL:
            order.reverse()
        return order

    # Batch actions

    def install(self, identifier: SoftwareId, on_event=None) -> list[ExecutionEvent]:
        return self.run(ActionKind.INSTALL, [identifier], on_event)

    def update(self, identifier: SoftwareId, on_event=None) -> list[ExecutionEvent]:
        return self.run(ActionKind.UPDATE, [identifier], on_event)

    def uninstall(self, identifier: SoftwareId, on_event=None) -> list[ExecutionEvent]:
        return self.run(ActionKind.UNINSTALL, [identifier], on_event)

    def install_many(self, ids: Iterable[SoftwareId], on_event=None) -> list[ExecutionEvent]:
        return self.run(ActionKind.INSTALL, ids, on_event)

    def update_many(self, ids: Iterable[SoftwareId], on_event=None) -> list[ExecutionEvent]:
        return self.run(ActionKind.UPDATE, ids, on_event)

    def uninstall_many(self, ids: Iterable[SoftwareId], on_event=None) -> list[ExecutionEvent]:
        return self.run(ActionKind.UNINSTALL, ids, on_event)

    def test_many(self, ids: Iterable[SoftwareId], on_event=None) -> list[ExecutionEvent]:
        return self.run(ActionKind.TEST, ids, on_event)

    def run(
        self,
        action: ActionKind,
        ids: Iterable[SoftwareId],
        on_event: Callable[[ExecutionEvent], None] | None = None,
        with_dependencies: bool = True,
    ) -> list[ExecutionEvent]:
        """Run ``action`` over ``ids`` and their dependencies.

        Args:
            action: What to do with each identifier
            ids: Requested identifiers
            on_event: Called with each event as soon as it is produced
            with_dependencies: When false, only ``ids`` themselves are run,
                in the given order

        Returns:
            One event per identifier, in execution order

        Raises:
            ManagerError: On a dependency cycle, an unsafe GUI recipe, or once
                every source of one identifier has failed. Identifiers after
                the failing one are not attempted.
        """
        events = []
        order = self.plan(ids, action) if with_dependencies else list(ids)
        for identifier in order:
            event = self._run_one(self._lookup(identifier), action)
            events.append(event)
            if not event.skipped:
                self._record(event)
            if on_event is not None:
                on_event(event)
        return events

    def _run_one(self, item: SoftwareEntry, action: ActionKind) -> ExecutionEvent:
        if action is ActionKind.TEST:
            return ExecutionEvent(
                item.id,
                action,
                note=TEST_NOT_IMPLEMENTED_NOTE,
                skipped=True,
                name=item.display_name,
            )

        if (
            action is ActionKind.INSTALL
            and not self.force
            and item.kind is SoftwareKind.GUI_APPLICATION
        ):
            state = self.executor.detect_version(item.version_probe)
            if isinstance(state, Installed):
                _logging.debug(f"{item.display_name} already installed, skipping")
                return ExecutionEvent(
                    item.id,
                    action,
                    note=ALREADY_INSTALLED_NOTE,
                    skipped=True,
                    name=item.display_name,
                )

        sources = {
            ActionKind.INSTALL: item.install_sources,
            ActionKind.UPDATE: item.update_sources,
            ActionKind.UNINSTALL: item.uninstall_sources,
        }[action]

        last_error: ManagerError | None = None
        for source in sources:
            recipe = source.recipe
            if isinstance(recipe, ManualRecipe):
                return ExecutionEvent(
                    item.id,
                    action,
                    source=source.label,
                    note=recipe.note,
                    skipped=True,
                    name=item.display_name,
                )
            if isinstance(recipe, ShellRecipe):
                self._check_gui_guard(item, recipe.command)
                _logging.debug(
                    f"{action.label} {item.display_name} via [{source.label}]: {recipe.command}"
                )
                try:
                    self.executor.run_shell(recipe.command)
                except (CommandFailed, SpawnError) as e:
                    _logging.warning(
                        f"{action.label} {item.display_name} via [{source.label}] failed: {e}"
                    )
                    last_error = e
                    continue
                return ExecutionEvent(
                    item.id,
                    action,
                    command=recipe.command,
                    source=source.label,
                    skipped=self.dry_run,
                    name=item.display_name,
                )

        if last_error is None:
            raise ManagerError(f"{item.display_name} has no {action.label} sources")
        raise last_error

    def _check_gui_guard(self, item: SoftwareEntry, command: str) -> None:
        if item.kind is not SoftwareKind.GUI_APPLICATION:
            return
        if command.startswith(GUI_SAFE_PREFIXES):
            return
        _logging.error(f"Refusing non-cask command for {item.display_name}: {command}")
        raise UnsafeGuiCommand(item.id, command, item.display_name)

    def _record(self, event: ExecutionEvent) -> None:
        if self._history_writer is None:
            return
        state = self.status(event.id).state
        version = state.version if isinstance(state, Installed) else None
        record = history.HistoryRecord(
            software=getattr(event.id, "key", str(event.id)),
            action=event.action.label,
            version=version,
            source=event.source,
        )
        try:
            self._history_writer(record)
        except OSError as e:
            _logging.warning(f"Failed to record history for {event.id}: {e}")

    # Status

    def status(self, identifier: SoftwareId) -> StatusReport:
        item = self._lookup(identifier)
        return StatusReport(
            identifier, self.executor.detect_version(item.version_probe), item.display_name
        )

    def status_all(self) -> list[StatusReport]:
        """Probe every catalog entry. A misbehaving probe becomes Unknown."""
        reports = []
        for item in self._entries():
            try:
                state = self.executor.detect_version(item.version_probe)
            except Exception as e:
                _logging.debug(f"Status probe for {item.display_name} raised: {e}")
                state = Unknown(str(e))
            reports.append(StatusReport(item.id, state, item.display_name))
        return reports


__all__ = [
    "ActionKind",
    "RunOptions",
    "ExecutionEvent",
    "StatusReport",
    "SoftwareManager",
    "install_missing",
    "GUI_SAFE_PREFIXES",
    "ALREADY_INSTALLED_NOTE",
    "TEST_NOT_IMPLEMENTED_NOTE",
]
