"""
todosync Merger — Field-Level Patch Application
================================================
Folds an ordered list of patches into a task collection.

Rules:
    1. Tasks are indexed by id; fields no patch addresses stay as-is.
    2. Patches run in the order received. Two patches on the same
       (todoId, key) resolve to the later one.
    3. A patch for an unknown id is recorded as UnknownTaskError and
       skipped; the rest of the batch still applies.
    4. An applied patch sets the field and then the task's modifiedAt
       to the patch's modifiedAt, even when that moves it backwards.

Rule 4 is the legacy last-write-wins policy. ``stale_guard=True``
instead skips any patch older than the task's current modifiedAt and
reports it in ``MergeResult.stale``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from todosync.errors import UnknownTaskError
from todosync.models import Task


@dataclass
class MergeResult:
    """Outcome of one merge."""

    tasks: list[Task]
    applied: int = 0
    rejected: list[UnknownTaskError] = field(default_factory=list)
    stale: list = field(default_factory=list)

    @property
    def warnings(self) -> list[dict]:
        out = [err.to_warning() for err in self.rejected]
        out.extend(
            {"todoId": p.todo_id, "key": p.key, "reason": "stale"}
            for p in self.stale
        )
        return out


class PatchMerger:
    """Applies patches to a task collection, per field, last write wins."""

    def __init__(self, stale_guard: bool = False):
        self.stale_guard = stale_guard

    def merge(self, tasks: Iterable[Task], patches: Iterable) -> MergeResult:
        working: dict[str, Task] = {t.id: t for t in tasks}
        result = MergeResult(tasks=[])

        for patch in patches:
            task = working.get(patch.todo_id)
            if task is None:
                result.rejected.append(UnknownTaskError(patch))
                continue
            if self.stale_guard and patch.modified_at < task.modified_at:
                result.stale.append(patch)
                continue
            working[task.id] = task.model_copy(update={
                patch.field_name: patch.value,
                "modified_at": patch.modified_at,
            })
            result.applied += 1

        result.tasks = list(working.values())
        return result
