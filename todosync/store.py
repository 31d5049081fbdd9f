"""
todosync Store — Authoritative Project and Task State
======================================================
The server-side owner of the project list and the task collection.

Writes follow one pattern: validate, build the new state, persist it
through the backend, and only then swap it into memory. A failure at
any step leaves the previous state fully intact. A lock serializes all
mutations so a concurrent reader never sees half a write.

Persisted keys:
    projectList — JSON array of Project
    todoList    — JSON array of Task
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, Optional

from todosync.errors import PersistenceError
from todosync.fixtures import generate_fixtures
from todosync.merger import MergeResult, PatchMerger
from todosync.models import Project, StateBody, Task, decode_state, dump_state
from todosync.storage import KeyValueBackend, MemoryBackend

logger = logging.getLogger(__name__)

PROJECTS_KEY = "projectList"
TASKS_KEY = "todoList"


class Store:
    """Holds the current state and commits every change durably."""

    def __init__(self, backend: Optional[KeyValueBackend] = None,
                 merger: Optional[PatchMerger] = None):
        self.backend = backend or MemoryBackend()
        self.merger = merger or PatchMerger()
        self._lock = threading.Lock()
        self._projects: list[Project] = []
        self._tasks: list[Task] = []
        self._load()

    def _load(self):
        """Read persisted state. A fresh backend yields empty lists."""
        state = decode_state({
            PROJECTS_KEY: self.backend.read(PROJECTS_KEY) or [],
            TASKS_KEY: self.backend.read(TASKS_KEY) or [],
        })
        self._projects = list(state.project_list)
        self._tasks = list(state.todo_list)
        logger.info("Loaded %d projects, %d tasks", len(self._projects), len(self._tasks))

    # ─── Reads ────────────────────────────────────────────

    def get_state(self) -> dict:
        """Full state as ``{projectList, todoList}`` JSON."""
        with self._lock:
            return dump_state(self._projects, self._tasks)

    @property
    def projects(self) -> list[Project]:
        with self._lock:
            return list(self._projects)

    @property
    def tasks(self) -> list[Task]:
        with self._lock:
            return list(self._tasks)

    @property
    def is_empty(self) -> bool:
        with self._lock:
            return not self._projects and not self._tasks

    def get_task_by_id(self, task_id: str) -> Optional[Task]:
        """Return the task with *task_id*, or None."""
        with self._lock:
            for task in self._tasks:
                if task.id == task_id:
                    return task
        return None

    # ─── Writes ───────────────────────────────────────────

    def replace_state(self, project_list: Iterable[Any], todo_list: Iterable[Any]) -> StateBody:
        """Replace both collections at once.

        Accepts model instances or their JSON dicts.

        Raises:
            ValidationError: Input is malformed; nothing changes.
            PersistenceError: The write failed; nothing changes.
        """
        state = decode_state({
            PROJECTS_KEY: list(project_list),
            TASKS_KEY: list(todo_list),
        })
        with self._lock:
            self._commit(list(state.project_list), list(state.todo_list))
        return state

    def replace_tasks(self, tasks: list[Task]):
        """Replace the task collection only. Projects are untouched."""
        with self._lock:
            self._commit(self._projects, tasks)

    def apply_patches(self, patches: list) -> MergeResult:
        """Merge *patches* into the task collection and persist it.

        Unknown task ids are reported on the result, not raised.
        """
        with self._lock:
            result = self.merger.merge(self._tasks, patches)
            for err in result.rejected:
                logger.warning("Skipped patch: %s", err)
            for patch in result.stale:
                logger.warning("Skipped stale patch on '%s'.%s", patch.todo_id, patch.key)
            if patches:
                self._commit(self._projects, result.tasks)
        return result

    def seed(self, seed: int) -> bool:
        """Populate an empty store from fixtures. Returns False if not empty."""
        projects, tasks = generate_fixtures(seed)
        with self._lock:
            if self._projects or self._tasks:
                return False
            self._commit(projects, tasks)
        return True

    def _commit(self, projects: list[Project], tasks: list[Task]):
        # Caller holds the lock
        payload = dump_state(projects, tasks)
        try:
            self.backend.write_many(payload)
        except PersistenceError:
            logger.error("Commit failed; keeping previous state")
            raise
        self._projects = list(projects)
        self._tasks = list(tasks)
        logger.info("Committed %d projects, %d tasks", len(projects), len(tasks))
