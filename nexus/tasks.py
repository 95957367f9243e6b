"""
Task store: tasks and projects with optimistic, best-effort remote sync.

Every mutation is applied to local state first and then handed to the write
dispatcher. Local state is the source of truth for the session: a failed
remote write is logged and never rolled back.
"""
import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Union

from .cache import LocalCache
from .events import ObservableState
from .remote import (
    SOURCE_CACHE,
    SOURCE_MOCK,
    TASKS_COLLECTION,
    FetchResult,
    RemoteSyncClient,
    WriteDispatcher,
)
from .sample_data import sample_projects, sample_tasks
from .schema import Project, Task, TaskStatus, iso_date

logger = logging.getLogger(__name__)

NOT_CONFIGURED_NOTICE = "Remote not configured. Using sample data."
DEFAULT_NAMESPACE = "nexus-tasks"


@dataclass
class TaskState:
    tasks: List[Task] = field(default_factory=list)
    projects: List[Project] = field(default_factory=list)
    loading: bool = False
    initialized: bool = False
    error: Optional[str] = None
    source: str = SOURCE_MOCK

    def task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def project(self, project_id: str) -> Optional[Project]:
        for project in self.projects:
            if project.id == project_id:
                return project
        return None


class TaskStore(ObservableState):
    """Task/project state with status, checklist and due-date mutations."""

    def __init__(
        self,
        remote: RemoteSyncClient,
        cache: Optional[LocalCache] = None,
        dispatcher: Optional[WriteDispatcher] = None,
        namespace: str = DEFAULT_NAMESPACE,
    ):
        self.remote = remote
        self.cache = cache
        self.namespace = namespace
        self._owns_dispatcher = dispatcher is None
        self._writes = dispatcher or WriteDispatcher("nexus-task-writes")
        self._lock = threading.RLock()
        self._unsubscribe_remote: Optional[Callable[[], None]] = None
        super().__init__(self._initial_state())

    @property
    def state(self) -> TaskState:
        return self._state

    def _initial_state(self) -> TaskState:
        configured = self.remote.is_configured
        state = TaskState(
            tasks=sample_tasks(),
            projects=sample_projects(),
            initialized=not configured,
            error=None if configured else NOT_CONFIGURED_NOTICE,
            source=SOURCE_MOCK,
        )
        cached = self._load_cache()
        if cached is not None:
            state.tasks, state.projects = cached
            state.source = SOURCE_CACHE
        return state

    # ── Cache ────────────────────────────────────────────────────────────────

    def _load_cache(self):
        if self.cache is None:
            return None
        payload = self.cache.load(self.namespace)
        if not payload:
            return None
        tasks = [Task.from_dict(t) for t in payload.get("tasks") or []]
        projects = [Project.from_dict(p) for p in payload.get("projects") or []]
        if not tasks and not projects:
            return None
        logger.info(f"Loaded {len(tasks)} tasks and {len(projects)} projects from cache")
        return tasks, projects

    def _persist(self, state: TaskState) -> None:
        if self.cache is None:
            return
        self.cache.save(self.namespace, {
            "tasks": [t.to_dict() for t in state.tasks],
            "projects": [p.to_dict() for p in state.projects],
        })

    def _commit(self, new_state: TaskState) -> bool:
        """Publish a new snapshot and mirror the collections to the cache."""
        old_state = self._state
        changed = self._set(new_state)
        if changed and (new_state.tasks is not old_state.tasks
                        or new_state.projects is not old_state.projects):
            self._persist(new_state)
        return changed

    # ── Loading ──────────────────────────────────────────────────────────────

    def init(self) -> None:
        """Fetch tasks and projects once. No-op when unconfigured or already loaded."""
        if not self.remote.is_configured:
            return
        with self._lock:
            if self._state.loading or self._state.initialized:
                return
            self._commit(replace(self._state, loading=True, error=None))

        try:
            result = self.remote.fetch_all()
        except Exception as e:
            logger.warning(f"Failed to load initial task data: {e}")
            with self._lock:
                self._commit(replace(
                    self._state,
                    tasks=sample_tasks(),
                    projects=sample_projects(),
                    loading=False,
                    initialized=True,
                    error=str(e) or "Could not load task data.",
                    source=SOURCE_MOCK,
                ))
            return

        self.apply_snapshot(result)

    def apply_snapshot(self, result: FetchResult) -> None:
        """Replace both collections with a fetched or pushed snapshot."""
        with self._lock:
            self._commit(replace(
                self._state,
                tasks=list(result.tasks),
                projects=list(result.projects),
                loading=False,
                initialized=True,
                error=None,
                source=result.source,
            ))

    def start_sync(self) -> None:
        """Follow remote changes until stop_sync() or dispose()."""
        if self._unsubscribe_remote is not None:
            return
        self._unsubscribe_remote = self.remote.subscribe(self.apply_snapshot, self._on_sync_error)

    def stop_sync(self) -> None:
        unsubscribe, self._unsubscribe_remote = self._unsubscribe_remote, None
        if unsubscribe is not None:
            unsubscribe()

    def _on_sync_error(self, error: Exception) -> None:
        logger.warning(f"Task sync error: {error}")
        with self._lock:
            self._commit(replace(self._state, error=str(error)))

    # ── Mutations ────────────────────────────────────────────────────────────

    def _update_task(self, task_id: str, change: Callable[[Task], Optional[Task]]) -> Optional[Task]:
        """Apply change to one task under the lock; returns the new task or None."""
        with self._lock:
            state = self._state
            for pos, task in enumerate(state.tasks):
                if task.id != task_id:
                    continue
                updated = change(task)
                if updated is None:
                    return None
                tasks = list(state.tasks)
                tasks[pos] = updated
                self._commit(replace(state, tasks=tasks))
                return updated
        logger.debug(f"Task {task_id} not found")
        return None

    def _push(self, task_id: str, patch: Dict[str, Any]) -> None:
        if not self.remote.is_configured:
            return
        self._writes.submit(self.remote.update_field, TASKS_COLLECTION, task_id, patch)

    def update_task_status(self, task_id: str, status: Union[TaskStatus, str]) -> None:
        status = status if isinstance(status, TaskStatus) else TaskStatus(status)
        if self._update_task(task_id, lambda t: replace(t, status=status)) is not None:
            self._push(task_id, {"status": status.value})

    def toggle_checklist_item(self, task_id: str, label: str) -> None:
        """Flip the first checklist item whose label matches."""
        def toggle(task: Task) -> Optional[Task]:
            for pos, item in enumerate(task.checklist):
                if item.label == label:
                    checklist = list(task.checklist)
                    checklist[pos] = replace(item, completed=not item.completed)
                    return replace(task, checklist=checklist)
            return None

        updated = self._update_task(task_id, toggle)
        if updated is not None:
            self._push(task_id, {"checklist": [item.to_dict() for item in updated.checklist]})

    def update_task_due_date(self, task_id: str, due_date: Union[date, str]) -> None:
        due = iso_date(due_date)
        if self._update_task(task_id, lambda t: replace(t, due_date=due)) is not None:
            self._push(task_id, {"dueDate": due})

    # ── Lifecycle ────────────────────────────────────────────────────────────

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for queued remote writes."""
        return self._writes.flush(timeout)

    def dispose(self) -> None:
        self.stop_sync()
        super().dispose()
        if self._owns_dispatcher:
            self._writes.close()
