"""Interactive terminal view.

A prompt_toolkit Application with three panes: the workflow menu (or the
catalog browser), a short action log, and the task panel. Every provisioning
request goes through the TaskQueue; the view only polls for events on a
timer and never spawns a process itself.
"""

import logging
import sys
from collections import deque

from prompt_toolkit.application import Application
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.styles import Style

from maziq import setup_logging
from maziq.catalog import SoftwareId, all_entries
from maziq.errors import TemplateError
from maziq.execution import Installed, ManualCheck, NotInstalled
from maziq.manager import ActionKind, RunOptions, install_missing
from maziq.tasks import EndToEndFlow, StatusRefresh, TaskBoard, TaskQueue, TemplateFlow
from maziq.templates import DEFAULT_TEMPLATE, load_named

MAX_LOG_ENTRIES = 6
REFRESH_INTERVAL = 0.5
DEFAULT_E2E_TARGET = SoftwareId.NEOVIM

_logging = logging.getLogger(__name__)

MENU_ITEMS = [
    ("Onboard fresh", "Install the default template in dependency order."),
    ("Update template", "Update everything defined in the default template."),
    ("Versions", "Refresh detected versions for every catalog entry."),
    ("Install all missing", "Install everything not reported as installed."),
    ("End-to-end test", "Install, update and remove the selected package."),
    ("Browse catalog", "List software with status; run actions per package."),
    ("Quit", "Exit maziq."),
]


class MaziqView:
    """State and behaviour of the interactive view, independent of rendering."""

    def __init__(self, task_queue: TaskQueue, options: RunOptions | None = None):
        self.queue = task_queue
        self.options = options or RunOptions()
        self.board = TaskBoard()
        self.entries = all_entries()
        self.screen = "menu"
        self.menu_index = 0
        self.catalog_index = 0
        self.e2e_target = DEFAULT_E2E_TARGET
        self.log: deque[str] = deque(maxlen=MAX_LOG_ENTRIES)
        self.should_exit = False

    def message(self, text: str) -> None:
        self.log.append(text)

    def pump(self) -> None:
        """Fold any pending worker events into the task board."""
        events = self.queue.poll()
        if not events:
            return
        self.board.ingest(events)
        for event in events:
            if event.completed:
                outcome = "failed" if event.failed else "finished"
                _logging.debug(f"Task {event.task_id} {outcome}")
                self.message(f"Task #{event.task_id} {event.label} {outcome}.")

    @property
    def selected_id(self) -> SoftwareId:
        return self.entries[self.catalog_index].id

    def move(self, delta: int) -> None:
        if self.screen == "menu":
            self.menu_index = (self.menu_index + delta) % len(MENU_ITEMS)
        elif self.entries:
            self.catalog_index = (self.catalog_index + delta) % len(self.entries)

    # Actions

    def refresh_statuses(self) -> int | None:
        if self.board.refreshing:
            self.message("A status refresh is already running.")
            return None
        return self.board.submit(self.queue, "versions", StatusRefresh())

    def run_template(self, action: ActionKind) -> int | None:
        if self.board.refreshing:
            self.message("Wait for the running refresh to finish.")
            return None
        try:
            template = load_named(DEFAULT_TEMPLATE)
        except TemplateError as e:
            self.message(f"Unable to load `{DEFAULT_TEMPLATE}` template: {e}")
            return None
        flow = TemplateFlow(action, tuple(template.software), self.options, template.name)
        return self.board.submit(self.queue, f"{action.label} {template.name}", flow)

    def install_all_missing(self) -> int | None:
        if not self.board.statuses:
            self.message("No status data yet; run Versions first.")
            return None
        missing = install_missing(self.board.statuses)
        if not missing:
            self.message("Everything is already installed.")
            return None
        flow = TemplateFlow(
            ActionKind.INSTALL, tuple(missing), self.options, "missing software"
        )
        return self.board.submit(self.queue, "install missing", flow)

    def run_single(self, action: ActionKind, identifier: SoftwareId) -> int:
        flow = TemplateFlow(action, (identifier,), self.options, identifier.display_name)
        return self.board.submit(self.queue, f"{action.label} {identifier.key}", flow)

    def run_end_to_end(self, identifier: SoftwareId) -> int:
        flow = EndToEndFlow(identifier, options=self.options)
        return self.board.submit(self.queue, f"e2e {identifier.key}", flow)

    def activate(self) -> None:
        """Run the highlighted menu item."""
        label = MENU_ITEMS[self.menu_index][0]
        if label == "Onboard fresh":
            self.run_template(ActionKind.INSTALL)
        elif label == "Update template":
            self.run_template(ActionKind.UPDATE)
        elif label == "Versions":
            self.refresh_statuses()
        elif label == "Install all missing":
            self.install_all_missing()
        elif label == "End-to-end test":
            self.run_end_to_end(self.e2e_target)
        elif label == "Browse catalog":
            self.screen = "catalog"
        elif label == "Quit":
            self.should_exit = True

    # Rendering

    def status_text(self, identifier: SoftwareId) -> str:
        state = self.board.statuses.get(identifier)
        if state is None:
            return "?"
        if isinstance(state, Installed):
            return state.version.splitlines()[0] if state.version else "installed"
        if isinstance(state, NotInstalled):
            return "missing"
        if isinstance(state, ManualCheck):
            return "manual"
        return "unknown"

    def menu_tokens(self):
        tokens = [("class:title", " maziq workflows\n\n")]
        for i, (label, description) in enumerate(MENU_ITEMS):
            if i == self.menu_index:
                tokens.append(("class:selected", f" > {label:<22}"))
                tokens.append(("class:help", f"{description}\n"))
            else:
                tokens.append(("", f"   {label}\n"))
        tokens.append(("", "\n"))
        tokens.append(("class:help", f" E2E target: {self.e2e_target.display_name}"))
        if self.options.dry_run:
            tokens.append(("class:warning", "  [dry-run]"))
        tokens.append(("", "\n"))
        tokens.append(("class:help", " ↑↓ navigate, Enter select, q quit"))
        return tokens

    def catalog_tokens(self):
        tokens = [("class:title", " Catalog\n\n")]
        for i, item in enumerate(self.entries):
            line = (
                f"{item.display_name:<28} {item.kind.label:<4} "
                f"{self.status_text(item.id)[:30]}\n"
            )
            if i == self.catalog_index:
                tokens.append(("class:selected", f" > {line}"))
            else:
                tokens.append(("", f"   {line}"))
        tokens.append(("", "\n"))
        tokens.append(
            (
                "class:help",
                " i install, u update, x uninstall, t set e2e target, Esc back",
            )
        )
        return tokens

    def log_tokens(self):
        tokens = [("class:title", " Action log\n")]
        for line in self.log:
            tokens.append(("", f" {line}\n"))
        return tokens

    def task_tokens(self):
        self.pump()
        tokens = [("class:title", " Tasks\n")]
        for line in self.board.render_lines()[-20:]:
            tokens.append(("", f" {line}\n"))
        return tokens


def build_application(view: MaziqView) -> Application:
    kb = KeyBindings()

    @kb.add("up")
    def _(event):
        view.move(-1)

    @kb.add("down")
    def _(event):
        view.move(1)

    @kb.add("enter", eager=True)
    def _(event):
        if view.screen == "menu":
            view.activate()
            if view.should_exit:
                event.app.exit()

    @kb.add("i")
    def _(event):
        if view.screen == "catalog":
            view.run_single(ActionKind.INSTALL, view.selected_id)

    @kb.add("u")
    def _(event):
        if view.screen == "catalog":
            view.run_single(ActionKind.UPDATE, view.selected_id)

    @kb.add("x")
    def _(event):
        if view.screen == "catalog":
            view.run_single(ActionKind.UNINSTALL, view.selected_id)

    @kb.add("t")
    def _(event):
        if view.screen == "catalog":
            view.e2e_target = view.selected_id
            view.message(f"End-to-end target set to {view.e2e_target.display_name}.")

    @kb.add("escape")
    def _(event):
        view.screen = "menu"

    @kb.add("q")
    @kb.add("c-c")
    def _(event):
        event.app.exit()

    def get_main_text():
        if view.screen == "catalog":
            return view.catalog_tokens()
        return view.menu_tokens()

    style = Style.from_dict(
        {
            "title": "fg:#00ffff bold",
            "selected": "fg:#00ffff bold",
            "help": "fg:#888888",
            "warning": "fg:#ffaa00 bold",
        }
    )

    layout = HSplit(
        [
            Window(content=FormattedTextControl(get_main_text)),
            Window(height=1, char="─"),
            Window(content=FormattedTextControl(view.log_tokens), height=MAX_LOG_ENTRIES + 1),
            Window(height=1, char="─"),
            Window(content=FormattedTextControl(view.task_tokens)),
        ]
    )

    return Application(
        layout=Layout(layout),
        key_bindings=kb,
        style=style,
        full_screen=True,
        refresh_interval=REFRESH_INTERVAL,
    )


def run_app(debug: bool = False, dry_run: bool = False) -> None:
    """Start the interactive view. Requires a TTY."""
    setup_logging(debug)
    if not sys.stdin.isatty():
        raise RuntimeError("Interactive view requires a TTY; use a subcommand instead")

    task_queue = TaskQueue()
    view = MaziqView(task_queue, RunOptions(dry_run=dry_run))
    view.refresh_statuses()
    try:
        build_application(view).run()
    finally:
        task_queue.shutdown(wait=False)


__all__ = ["MaziqView", "build_application", "run_app", "MENU_ITEMS", "MAX_LOG_ENTRIES"]
