"""Tests for the interactive view state (no terminal needed)."""

from unittest.mock import patch

import pytest

from maziq.catalog import SoftwareId
from maziq.execution import Installed, ManualCheck, NotInstalled, Unknown
from maziq.manager import ActionKind, RunOptions, StatusReport
from maziq.tasks import EndToEndFlow, StatusRefresh, TaskEvent, TemplateFlow
from maziq.tui import DEFAULT_E2E_TARGET, MENU_ITEMS, MaziqView, build_application, run_app


class FakeQueue:
    """Collects submissions; events are handed out by poll()."""

    def __init__(self):
        self.submitted = []
        self.pending: list[TaskEvent] = []

    def submit(self, label, payload):
        self.submitted.append((label, payload))
        return len(self.submitted)

    def poll(self):
        events, self.pending = self.pending, []
        return events

    def shutdown(self, wait=True, timeout=None):
        pass


@pytest.fixture
def fake_queue():
    return FakeQueue()


@pytest.fixture
def view(fake_queue):
    return MaziqView(fake_queue, RunOptions())


def select(view, label):
    view.menu_index = [item[0] for item in MENU_ITEMS].index(label)
    view.activate()


class TestMenu:
    """Test menu navigation and activation."""

    def test_menu_wraps(self, view):
        view.move(-1)
        assert view.menu_index == len(MENU_ITEMS) - 1
        view.move(1)
        assert view.menu_index == 0

    def test_quit(self, view):
        select(view, "Quit")
        assert view.should_exit

    def test_browse_catalog(self, view):
        select(view, "Browse catalog")
        assert view.screen == "catalog"
        view.move(1)
        assert view.selected_id is SoftwareId.XCODE_CLT

    def test_versions_submits_refresh(self, view, fake_queue):
        select(view, "Versions")
        assert fake_queue.submitted == [("versions", StatusRefresh())]
        assert view.board.refreshing

    def test_refresh_gated_while_running(self, view, fake_queue):
        """A second refresh is refused until the first completes."""
        view.refresh_statuses()
        assert view.refresh_statuses() is None
        assert len(fake_queue.submitted) == 1
        assert view.log[-1] == "A status refresh is already running."

        fake_queue.pending.append(TaskEvent(1, "versions", ["Status refreshed."], snapshot=[]))
        view.pump()
        assert view.log[-1] == "Task #1 versions finished."
        assert view.refresh_statuses() == 2

    def test_onboard_fresh_uses_default_template(self, view, fake_queue):
        select(view, "Onboard fresh")
        label, payload = fake_queue.submitted[0]
        assert label == "install hmziq"
        assert isinstance(payload, TemplateFlow)
        assert payload.action is ActionKind.INSTALL
        assert payload.ids[0] is SoftwareId.HOMEBREW

    def test_template_gated_by_refresh(self, view, fake_queue):
        view.refresh_statuses()
        select(view, "Update template")
        assert len(fake_queue.submitted) == 1

    def test_end_to_end_default_target(self, view, fake_queue):
        select(view, "End-to-end test")
        label, payload = fake_queue.submitted[0]
        assert label == f"e2e {DEFAULT_E2E_TARGET.key}"
        assert payload == EndToEndFlow(DEFAULT_E2E_TARGET, options=RunOptions())


class TestInstallMissing:
    """Test the install-all-missing workflow."""

    def test_needs_status_data(self, view, fake_queue):
        select(view, "Install all missing")
        assert fake_queue.submitted == []
        assert view.log[-1] == "No status data yet; run Versions first."

    def test_nothing_missing(self, view, fake_queue):
        view.board.update_statuses([StatusReport(SoftwareId.GO, Installed("1.22"))])
        select(view, "Install all missing")
        assert fake_queue.submitted == []
        assert view.log[-1] == "Everything is already installed."

    def test_submits_missing(self, view, fake_queue):
        view.board.update_statuses(
            [
                StatusReport(SoftwareId.GO, Installed("1.22")),
                StatusReport(SoftwareId.BUN, NotInstalled()),
                StatusReport(SoftwareId.NVM, ManualCheck("check")),
            ]
        )
        select(view, "Install all missing")
        label, payload = fake_queue.submitted[0]
        assert label == "install missing"
        assert payload.ids == (SoftwareId.BUN, SoftwareId.NVM)
        assert payload.name == "missing software"


class TestRendering:
    """Test token output used by the layout."""

    def test_status_text(self, view):
        view.board.update_statuses(
            [
                StatusReport(SoftwareId.GO, Installed("go 1.22\nextra")),
                StatusReport(SoftwareId.BUN, NotInstalled()),
                StatusReport(SoftwareId.NVM, ManualCheck("x")),
                StatusReport(SoftwareId.BTOP, Unknown("x")),
            ]
        )
        assert view.status_text(SoftwareId.GO) == "go 1.22"
        assert view.status_text(SoftwareId.BUN) == "missing"
        assert view.status_text(SoftwareId.NVM) == "manual"
        assert view.status_text(SoftwareId.BTOP) == "unknown"
        assert view.status_text(SoftwareId.RAYCAST) == "?"

    def test_menu_shows_dry_run(self, fake_queue):
        view = MaziqView(fake_queue, RunOptions(dry_run=True))
        text = "".join(fragment for _, fragment in view.menu_tokens())
        assert "[dry-run]" in text
        assert "Onboard fresh" in text

    def test_task_tokens_pump_events(self, view, fake_queue):
        fake_queue.pending.append(TaskEvent(1, "e2e neovim", ["install started"]))
        text = "".join(fragment for _, fragment in view.task_tokens())
        assert "#1 e2e neovim [running]" in text
        assert "install started" in text

    def test_catalog_tokens_list_entries(self, view):
        text = "".join(fragment for _, fragment in view.catalog_tokens())
        assert "Homebrew" in text
        assert "Brave Browser" in text

    def test_build_application(self, view):
        with patch("maziq.tui.Application") as mock_app:
            build_application(view)
        kwargs = mock_app.call_args.kwargs
        assert kwargs["full_screen"] is True
        assert kwargs["refresh_interval"] > 0


class TestRunApp:
    def test_requires_tty(self):
        with patch("maziq.tui.sys.stdin.isatty", return_value=False):
            with pytest.raises(RuntimeError, match="requires a TTY"):
                run_app()
