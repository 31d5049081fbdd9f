"""
todosync CacheBridge — UI Runtime ⇄ Local Storage
==================================================
Client-side adapter between the UI runtime and a browser-style local
key-value store whose values are JSON strings.

Startup:
    ``load_flags()`` reads the cached keys and hands the UI runtime its
    initial flags. A missing or unreadable key becomes an empty default.

Runtime:
    The UI runtime never calls the bridge directly. It pushes
    ``(port, payload)`` events into an EventChannel; the bridge drains
    the channel and dispatches each event to the listener attached for
    that port.

Ports:
    cacheTaskList     full task sequence  → taskMap (indexed by id)
    cacheProjectList  full project list   → projectList
    cacheEdit         opaque edit state   → edit
    cacheKeyValue     [key, value] pair   → key
    patchTask         one Patch           → taskMap entry + outbox

Snapshot ports always overwrite: local storage holds the last full
snapshot, never a patch log. Patches wait in an in-memory outbox until
the SyncClient takes them.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Callable, Iterable, Optional

from todosync.errors import PersistenceError, ValidationError
from todosync.models import decode_patch
from todosync.storage import JsonFileBackend

logger = logging.getLogger(__name__)

TASK_MAP_KEY = "taskMap"
PROJECT_LIST_KEY = "projectList"
EDIT_KEY = "edit"
MODEL_CACHE_KEY = "modelCache"


# ─────────────────────────────────────────────────────────────
#  Local Storage
# ─────────────────────────────────────────────────────────────

class LocalStorage(ABC):
    """String-valued key-value store, shaped like ``window.localStorage``."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        ...


class MemoryStorage(LocalStorage):

    def __init__(self, items: Optional[dict[str, str]] = None):
        self.items: dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value


class FileStorage(LocalStorage):
    """Local storage kept in one JSON file (key → JSON string)."""

    def __init__(self, path: str | os.PathLike):
        self._backend = JsonFileBackend(path)

    def get_item(self, key: str) -> Optional[str]:
        return self._backend.read(key)

    def set_item(self, key: str, value: str) -> None:
        self._backend.write_many({key: value})


# ─────────────────────────────────────────────────────────────
#  Event Channel
# ─────────────────────────────────────────────────────────────

class EventChannel:
    """Outbound queue the UI runtime pushes port events into."""

    def __init__(self):
        self._events: deque[tuple[str, Any]] = deque()
        self._lock = threading.Lock()

    def push(self, port: str, payload: Any):
        with self._lock:
            self._events.append((port, payload))

    def drain(self) -> list[tuple[str, Any]]:
        """Remove and return all pending events, oldest first."""
        with self._lock:
            events = list(self._events)
            self._events.clear()
        return events

    def requeue(self, events: list[tuple[str, Any]]):
        """Put undispatched events back ahead of anything pushed since."""
        with self._lock:
            self._events.extendleft(reversed(events))

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


# ─────────────────────────────────────────────────────────────
#  Bridge
# ─────────────────────────────────────────────────────────────

class CacheBridge:
    """Moves state between the UI runtime and local storage."""

    def __init__(self, storage: LocalStorage, channel: Optional[EventChannel] = None):
        self.storage = storage
        self.channel = channel or EventChannel()
        self._listeners: dict[str, Callable[[Any], None]] = {
            "cacheTaskList": self._cache_task_list,
            "cacheProjectList": self._cache_project_list,
            "cacheEdit": self._cache_edit,
            "cacheKeyValue": self._cache_key_value,
            "patchTask": self._patch_task,
        }
        self._attached: dict[str, Callable[[Any], None]] = {}
        self._outbox: list = []

    # ─── Startup ──────────────────────────────────────────

    def _read_json(self, key: str, default: Any) -> Any:
        raw = self.storage.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Ignoring unreadable local value for '%s'", key)
            return default

    def _write_json(self, key: str, value: Any):
        self.storage.set_item(key, json.dumps(value))

    def _task_map(self) -> dict[str, dict]:
        task_map = self._read_json(TASK_MAP_KEY, {})
        if not isinstance(task_map, dict):
            logger.warning("Ignoring local '%s': not a JSON object", TASK_MAP_KEY)
            return {}
        return task_map

    def load_flags(self) -> dict:
        """Initial flags for the UI runtime.

        ``taskMap`` is stored by id and handed over as a sequence.
        """
        return {
            "taskList": list(self._task_map().values()),
            "projectList": self._read_json(PROJECT_LIST_KEY, []),
            "edit": self._read_json(EDIT_KEY, None),
            "modelCache": self._read_json(MODEL_CACHE_KEY, None),
        }

    # ─── Runtime ──────────────────────────────────────────

    def attach(self, available_ports: Iterable[str]) -> list[str]:
        """Attach a listener to every port the runtime exposes.

        A listener whose port the runtime lacks is skipped with a warning.
        Returns the names of the attached ports.
        """
        available = set(available_ports)
        for port, listener in self._listeners.items():
            if port not in available:
                logger.warning("Subscription port not found: %s", port)
                continue
            self._attached[port] = listener
            logger.info("Subscription port attached: %s", port)
        return list(self._attached)

    def drain(self) -> int:
        """Dispatch every queued event. Returns how many were handled.

        A malformed payload is logged and dropped. On a storage failure
        the events after the failing one go back on the channel and the
        error propagates.
        """
        handled = 0
        events = self.channel.drain()
        for n, (port, payload) in enumerate(events):
            listener = self._attached.get(port)
            if listener is None:
                logger.warning("Dropping event for unattached port: %s", port)
                continue
            try:
                listener(payload)
            except ValidationError as e:
                logger.warning("Dropping malformed '%s' event: %s", port, e)
                continue
            except PersistenceError:
                self.channel.requeue(events[n + 1:])
                raise
            handled += 1
        return handled

    # ─── Listeners ────────────────────────────────────────

    def _cache_task_list(self, tasks: Any):
        if not isinstance(tasks, list):
            raise ValidationError("task snapshot must be a list")
        task_map = {}
        for task in tasks:
            if not isinstance(task, dict) or "id" not in task:
                raise ValidationError("every task in a snapshot needs an id")
            task_map[task["id"]] = task
        self._write_json(TASK_MAP_KEY, task_map)

    def _cache_project_list(self, projects: Any):
        if not isinstance(projects, list):
            raise ValidationError("project snapshot must be a list")
        self._write_json(PROJECT_LIST_KEY, projects)

    def _cache_edit(self, edit: Any):
        self._write_json(EDIT_KEY, edit)

    def _cache_key_value(self, pair: Any):
        if not isinstance(pair, (list, tuple)) or len(pair) != 2 or not isinstance(pair[0], str):
            raise ValidationError("cacheKeyValue expects a [key, value] pair")
        key, value = pair
        self._write_json(key, value)

    def _patch_task(self, payload: Any):
        patch = decode_patch(payload)
        # Outbox before taskMap: a failed local write still leaves the patch queued
        self._outbox.append(patch)
        task_map = self._task_map()
        if _apply_local(task_map, patch):
            self._write_json(TASK_MAP_KEY, task_map)

    # ─── Sync hand-off ────────────────────────────────────

    @property
    def pending(self) -> int:
        return len(self._outbox)

    def take_outbox(self) -> list:
        """Remove and return all queued patches in edit order."""
        patches, self._outbox = self._outbox, []
        return patches

    def restore_outbox(self, patches: list):
        """Put back patches that failed to sync, ahead of newer ones."""
        self._outbox[:0] = patches

    def replace_cache(self, state: dict):
        """Overwrite the local copy with the server's ``{projectList, todoList}``.

        Patches still waiting in the outbox are replayed on top so the
        local view does not lose edits made since they were taken.
        """
        task_map = {task["id"]: task for task in state.get("todoList", [])}
        for patch in self._outbox:
            _apply_local(task_map, patch)
        self._write_json(TASK_MAP_KEY, task_map)
        self._write_json(PROJECT_LIST_KEY, state.get("projectList", []))


def _apply_local(task_map: dict[str, dict], patch) -> bool:
    entry = task_map.get(patch.todo_id)
    if entry is None:
        return False
    entry[patch.key] = patch.value
    entry["modifiedAt"] = patch.modified_at
    return True
