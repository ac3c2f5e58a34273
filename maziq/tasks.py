"""Background task queue for provisioning work.

One daemon thread consumes task requests in submission order, so at most one
batch of shell commands runs at a time. Progress goes back to the foreground
as TaskEvent batches on a second queue; the foreground drains it with poll()
and never shares mutable state with the worker.

Completion contract: the last event of every task has ``completed`` set,
either because it carries a status snapshot (template flows and status
refreshes) or because ``done`` is true (end-to-end flows and crashed tasks).
"""

import itertools
import logging
import queue
import threading
from collections import OrderedDict, deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from maziq.catalog import SoftwareId
from maziq.errors import ManagerError
from maziq.execution import StatusState
from maziq.manager import (
    ActionKind,
    ExecutionEvent,
    RunOptions,
    SoftwareManager,
    StatusReport,
)

MAX_TASK_LINES = 200
MAX_TASKS = 8

_logging = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplateFlow:
    action: ActionKind
    ids: tuple[SoftwareId, ...]
    options: RunOptions = field(default_factory=RunOptions)
    name: str | None = None


@dataclass(frozen=True)
class StatusRefresh:
    pass


@dataclass(frozen=True)
class EndToEndFlow:
    id: SoftwareId
    install: bool = True
    update: bool = True
    remove: bool = True
    options: RunOptions = field(default_factory=RunOptions)


TaskPayload = TemplateFlow | StatusRefresh | EndToEndFlow


@dataclass(frozen=True)
class Task:
    id: int
    label: str
    payload: TaskPayload


@dataclass
class TaskEvent:
    task_id: int
    label: str
    messages: list[str]
    snapshot: list[StatusReport] | None = None
    done: bool = False
    failed: bool = False

    @property
    def completed(self) -> bool:
        return self.snapshot is not None or self.done


_STOP = object()

_VERBS = {
    ActionKind.INSTALL: "Installing",
    ActionKind.UPDATE: "Updating",
    ActionKind.UNINSTALL: "Uninstalling",
    ActionKind.TEST: "Testing",
}


class TaskQueue:
    """Serial worker for TemplateFlow, StatusRefresh and EndToEndFlow tasks.

    Args:
        manager_factory: Builds a SoftwareManager for a task, called as
            ``manager_factory(options=RunOptions)``
    """

    def __init__(self, manager_factory: Callable[..., SoftwareManager] = SoftwareManager):
        self._manager_factory = manager_factory
        self._requests: queue.Queue = queue.Queue()
        self._events: queue.Queue = queue.Queue()
        self._ids = itertools.count(1)
        self._stash: list[TaskEvent] = []
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._thread = threading.Thread(
            target=self._worker, name="maziq-tasks", daemon=True
        )
        self._thread.start()

    def submit(self, label: str, payload: TaskPayload) -> int:
        """Queue a task and return its id. Starts the worker if needed."""
        task = Task(next(self._ids), label, payload)
        self.start()
        self._requests.put(task)
        _logging.debug(f"Task {task.id} queued: {label}")
        return task.id

    def poll(self) -> list[TaskEvent]:
        """Drain every event emitted so far without blocking."""
        events, self._stash = self._stash, []
        while True:
            try:
                events.append(self._events.get_nowait())
            except queue.Empty:
                return events

    def wait(
        self,
        task_id: int,
        timeout: float | None = None,
        on_event: Callable[[TaskEvent], None] | None = None,
    ) -> list[TaskEvent]:
        """Block until ``task_id`` completes and return its events.

        Events of other tasks are kept for the next poll().

        Raises:
            TimeoutError: If no event arrives within ``timeout`` seconds
        """
        collected = []
        pending = [e for e in self._stash if e.task_id == task_id]
        self._stash = [e for e in self._stash if e.task_id != task_id]
        while True:
            if pending:
                event = pending.pop(0)
            else:
                try:
                    event = self._events.get(timeout=timeout)
                except queue.Empty:
                    raise TimeoutError(f"Task {task_id} did not finish in time") from None
            if event.task_id != task_id:
                self._stash.append(event)
                continue
            collected.append(event)
            if on_event is not None:
                on_event(event)
            if event.completed:
                return collected

    def shutdown(self, wait: bool = True, timeout: float | None = None) -> None:
        """Stop the worker after the tasks already queued have run."""
        if self._thread is None:
            return
        self._requests.put(_STOP)
        if wait:
            self._thread.join(timeout)
        self._thread = None

    # Worker side

    def _emit(self, task: Task, messages: list[str], **kwargs) -> None:
        self._events.put(TaskEvent(task.id, task.label, messages, **kwargs))

    def _worker(self) -> None:
        while True:
            task = self._requests.get()
            if task is _STOP:
                break
            _logging.debug(f"Task {task.id} started: {task.label}")
            try:
                self._execute(task)
            except Exception as e:
                _logging.exception(f"Task {task.id} ({task.label}) failed unexpectedly")
                self._emit(task, [f"error: {e}"], done=True, failed=True)
            _logging.debug(f"Task {task.id} finished: {task.label}")

    def _execute(self, task: Task) -> None:
        payload = task.payload
        if isinstance(payload, TemplateFlow):
            self._run_template(task, payload)
        elif isinstance(payload, StatusRefresh):
            manager = self._manager_factory(options=RunOptions())
            self._emit(task, ["Status refreshed."], snapshot=manager.status_all())
        elif isinstance(payload, EndToEndFlow):
            self._run_end_to_end(task, payload)
        else:
            self._emit(
                task, [f"error: unsupported task payload {payload!r}"], done=True, failed=True
            )

    def _forward(self, task: Task, prefix: str = "") -> Callable[[ExecutionEvent], None]:
        def forward(event: ExecutionEvent) -> None:
            self._emit(task, [f"{prefix}{event.summary()}"])

        return forward

    def _run_template(self, task: Task, flow: TemplateFlow) -> None:
        manager = self._manager_factory(options=flow.options)
        name = flow.name or task.label
        action = flow.action
        suffix = " (dry run)" if flow.options.dry_run else ""
        self._emit(task, [f"{_VERBS[action]} `{name}` template{suffix}..."])

        try:
            plan = manager.plan(flow.ids, action)
        except ManagerError as e:
            self._emit(task, [f"Failed to plan template `{name}`: {e}"], failed=True)
        else:
            lines = [f"{action.label} plan ({len(plan)} steps)"]
            lines += [
                f"{index:>2}. {manager.display_name(identifier)}"
                for index, identifier in enumerate(plan, start=1)
            ]
            self._emit(task, lines)
            try:
                manager.run(action, flow.ids, on_event=self._forward(task))
            except ManagerError as e:
                self._emit(
                    task,
                    [f"error: {e}", f"{action.label} template `{name}` failed."],
                    failed=True,
                )
            else:
                self._emit(task, [f"{action.label} template `{name}` complete."])

        self._emit(task, ["Status refreshed."], snapshot=manager.status_all())

    def _run_end_to_end(self, task: Task, flow: EndToEndFlow) -> None:
        manager = self._manager_factory(options=flow.options)
        name = manager.display_name(flow.id)
        self._emit(task, [f"End-to-end test for {name}"])

        # Dependencies are installed with the target but never updated or
        # removed by the test.
        steps = [
            ("install", flow.install, ActionKind.INSTALL, True),
            ("update", flow.update, ActionKind.UPDATE, False),
            ("remove", flow.remove, ActionKind.UNINSTALL, False),
        ]
        for step, enabled, action, with_dependencies in steps:
            if not enabled:
                self._emit(task, [f"{step} skipped (disabled)"])
                continue
            if flow.options.dry_run:
                self._emit(task, [f"{step} skipped (dry-run)"])
                continue
            self._emit(task, [f"{step} started"])
            try:
                manager.run(
                    action,
                    [flow.id],
                    on_event=self._forward(task, f"{step}: "),
                    with_dependencies=with_dependencies,
                )
            except ManagerError as e:
                self._emit(task, [f"{step} failed: {e}"], failed=True)
            else:
                self._emit(task, [f"{step} finished"])

        self._emit(task, [f"End-to-end test for {name} complete."], done=True)


@dataclass
class TaskLog:
    task_id: int
    label: str
    lines: deque = field(default_factory=lambda: deque(maxlen=MAX_TASK_LINES))
    completed: bool = False


class TaskBoard:
    """Foreground view of submitted tasks and the cached package statuses.

    Only the foreground thread touches a TaskBoard; worker output reaches it
    through ingest().
    """

    def __init__(self, max_tasks: int = MAX_TASKS, max_lines: int = MAX_TASK_LINES):
        self.max_tasks = max_tasks
        self.max_lines = max_lines
        self.tasks: OrderedDict[int, TaskLog] = OrderedDict()
        self.statuses: dict[SoftwareId, StatusState] = {}
        self.in_flight: set[int] = set()
        self._refresh_ids: set[int] = set()

    @property
    def refreshing(self) -> bool:
        """True while a status refresh or template flow is outstanding."""
        return bool(self._refresh_ids)

    @property
    def busy(self) -> bool:
        return bool(self.in_flight)

    def submit(self, task_queue: TaskQueue, label: str, payload: TaskPayload) -> int:
        task_id = task_queue.submit(label, payload)
        self.track(task_id, label, payload)
        return task_id

    def track(self, task_id: int, label: str, payload: TaskPayload) -> None:
        self._log_for(task_id, label)
        self.in_flight.add(task_id)
        if isinstance(payload, (StatusRefresh, TemplateFlow)):
            self._refresh_ids.add(task_id)

    def _log_for(self, task_id: int, label: str) -> TaskLog:
        log = self.tasks.get(task_id)
        if log is None:
            log = TaskLog(task_id, label, deque(maxlen=self.max_lines))
            self.tasks[task_id] = log
            while len(self.tasks) > self.max_tasks:
                self.tasks.popitem(last=False)
        return log

    def ingest(self, events: Iterable[TaskEvent]) -> None:
        """Apply worker events in the order they were emitted."""
        for event in events:
            log = self._log_for(event.task_id, event.label)
            log.lines.extend(event.messages)
            if event.snapshot is not None:
                self.update_statuses(event.snapshot)
            if event.completed:
                log.completed = True
                self.in_flight.discard(event.task_id)
                self._refresh_ids.discard(event.task_id)

    def update_statuses(self, reports: Iterable[StatusReport]) -> None:
        for report in reports:
            self.statuses[report.id] = report.state

    def render_lines(self) -> list[str]:
        lines = []
        for log in self.tasks.values():
            state = "done" if log.completed else "running"
            lines.append(f"#{log.task_id} {log.label} [{state}]")
            lines.extend(f"  {line}" for line in log.lines)
        return lines


__all__ = [
    "MAX_TASK_LINES",
    "MAX_TASKS",
    "TemplateFlow",
    "StatusRefresh",
    "EndToEndFlow",
    "TaskPayload",
    "Task",
    "TaskEvent",
    "TaskQueue",
    "TaskLog",
    "TaskBoard",
]
