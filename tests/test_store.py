"""
todosync Test Suite — Store and Storage Backends
=================================================
Tests for whole-state replacement, patch commits, atomic persistence
and failure isolation.

Usage:
    python -m pytest tests/test_store.py -v
"""
import sys
import os
import json
import tempfile
import threading
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from todosync.errors import PersistenceError, ValidationError
from todosync.merger import PatchMerger
from todosync.models import decode_patches
from todosync.storage import JsonFileBackend, KeyValueBackend, MemoryBackend
from todosync.store import Store


PROJECTS = [
    {"id": "p1", "title": "Inbox", "sortIdx": 0, "createdAt": 1, "modifiedAt": 1},
]
TASKS = [
    {"id": "t1", "title": "a", "projectId": "p1", "sortIdx": 0,
     "isDone": False, "createdAt": 100, "modifiedAt": 100},
    {"id": "t2", "title": "b", "projectId": "", "sortIdx": 1,
     "isDone": True, "createdAt": 110, "modifiedAt": 110},
]


class FailingBackend(KeyValueBackend):
    """Reads fine, refuses every write."""

    def __init__(self):
        self.fail = False
        self._inner = MemoryBackend()

    def read(self, key):
        return self._inner.read(key)

    def write_many(self, values):
        if self.fail:
            raise PersistenceError("disk full")
        self._inner.write_many(values)


class CountingBackend(MemoryBackend):

    def __init__(self):
        super().__init__()
        self.writes = 0

    def write_many(self, values):
        self.writes += 1
        super().write_many(values)


# ─────────────────────────────────────────────
#  Reads and whole-state writes
# ─────────────────────────────────────────────

class TestReplaceState(unittest.TestCase):

    def setUp(self):
        self.store = Store()

    def test_fresh_store_is_empty(self):
        self.assertEqual(self.store.get_state(), {"projectList": [], "todoList": []})
        self.assertTrue(self.store.is_empty)

    def test_round_trip(self):
        self.store.replace_state(PROJECTS, TASKS)
        self.assertEqual(self.store.get_state(), {"projectList": PROJECTS, "todoList": TASKS})

    def test_get_task_by_id(self):
        self.store.replace_state(PROJECTS, TASKS)
        self.assertEqual(self.store.get_task_by_id("t2").title, "b")
        self.assertIsNone(self.store.get_task_by_id("missing"))

    def test_invalid_input_leaves_state(self):
        self.store.replace_state(PROJECTS, TASKS)
        with self.assertRaises(ValidationError):
            self.store.replace_state([], [{"id": "x"}])
        self.assertEqual(self.store.get_state()["todoList"], TASKS)

    def test_replace_tasks_keeps_projects(self):
        self.store.replace_state(PROJECTS, TASKS)
        only_second = [t for t in self.store.tasks if t.id == "t2"]
        self.store.replace_tasks(only_second)
        self.assertEqual(self.store.get_state(), {"projectList": PROJECTS, "todoList": TASKS[1:]})

    def test_get_state_is_a_copy(self):
        self.store.replace_state(PROJECTS, TASKS)
        state = self.store.get_state()
        state["todoList"][0]["title"] = "mutated"
        self.assertEqual(self.store.get_task_by_id("t1").title, "a")

    def test_persistence_failure_leaves_state(self):
        backend = FailingBackend()
        store = Store(backend=backend)
        store.replace_state(PROJECTS, TASKS)
        backend.fail = True
        with self.assertRaises(PersistenceError):
            store.replace_state([], [])
        self.assertEqual(store.get_state(), {"projectList": PROJECTS, "todoList": TASKS})


# ─────────────────────────────────────────────
#  Patch commits
# ─────────────────────────────────────────────

class TestApplyPatches(unittest.TestCase):

    def setUp(self):
        self.backend = FailingBackend()
        self.store = Store(backend=self.backend)
        self.store.replace_state(PROJECTS, TASKS)

    def test_patch_commits_tasks(self):
        patches = decode_patches([
            {"todoId": "t1", "key": "isDone", "value": True, "modifiedAt": 200},
        ])
        result = self.store.apply_patches(patches)
        self.assertEqual(result.applied, 1)
        t1 = self.store.get_task_by_id("t1")
        self.assertTrue(t1.is_done)
        self.assertEqual(t1.modified_at, 200)
        self.assertEqual(self.backend.read("todoList")[0]["isDone"], True)

    def test_projects_untouched(self):
        patches = decode_patches([
            {"todoId": "t2", "key": "projectId", "value": "p1", "modifiedAt": 200},
        ])
        self.store.apply_patches(patches)
        self.assertEqual(self.store.get_state()["projectList"], PROJECTS)

    def test_unknown_task_reported(self):
        patches = decode_patches([
            {"todoId": "nope", "key": "title", "value": "x", "modifiedAt": 200},
            {"todoId": "t2", "key": "title", "value": "y", "modifiedAt": 201},
        ])
        with self.assertLogs("todosync.store", level="WARNING"):
            result = self.store.apply_patches(patches)
        self.assertEqual(len(result.rejected), 1)
        self.assertEqual(self.store.get_task_by_id("t2").title, "y")

    def test_empty_patch_list_no_write(self):
        before = self.store.get_state()
        self.backend.fail = True
        result = self.store.apply_patches([])
        self.assertEqual(result.applied, 0)
        self.assertEqual(self.store.get_state(), before)

    def test_failed_commit_keeps_tasks(self):
        self.backend.fail = True
        patches = decode_patches([
            {"todoId": "t1", "key": "title", "value": "lost", "modifiedAt": 200},
        ])
        with self.assertRaises(PersistenceError):
            self.store.apply_patches(patches)
        self.assertEqual(self.store.get_task_by_id("t1").title, "a")

    def test_stale_guard_merger(self):
        store = Store(merger=PatchMerger(stale_guard=True))
        store.replace_state(PROJECTS, TASKS)
        result = store.apply_patches(decode_patches([
            {"todoId": "t1", "key": "title", "value": "old", "modifiedAt": 50},
        ]))
        self.assertEqual(len(result.stale), 1)
        self.assertEqual(store.get_task_by_id("t1").title, "a")


# ─────────────────────────────────────────────
#  Seeding
# ─────────────────────────────────────────────

class TestSeed(unittest.TestCase):

    def test_seed_empty_store(self):
        store = Store()
        self.assertTrue(store.seed(42))
        self.assertEqual(len(store.projects), 5)
        self.assertTrue(store.tasks)

    def test_seed_refuses_non_empty(self):
        store = Store()
        store.replace_state(PROJECTS, TASKS)
        self.assertFalse(store.seed(42))
        self.assertEqual(store.get_state()["todoList"], TASKS)

    def test_concurrent_seeds_commit_once(self):
        backend = CountingBackend()
        store = Store(backend=backend)
        results = []
        threads = [threading.Thread(target=lambda n=n: results.append(store.seed(n)))
                   for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(sorted(results), [False] * 7 + [True])
        self.assertEqual(backend.writes, 1)


# ─────────────────────────────────────────────
#  JSON file backend
# ─────────────────────────────────────────────

class TestJsonFileBackend(unittest.TestCase):

    def test_state_survives_reopen(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "db.json")
            Store(backend=JsonFileBackend(path)).replace_state(PROJECTS, TASKS)

            reopened = Store(backend=JsonFileBackend(path))
            self.assertEqual(reopened.get_state(), {"projectList": PROJECTS, "todoList": TASKS})

    def test_missing_file_reads_empty(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            backend = JsonFileBackend(os.path.join(tmpdir, "nested", "db.json"))
            self.assertIsNone(backend.read("todoList"))
            backend.write_many({"todoList": []})
            self.assertTrue(os.path.exists(os.path.join(tmpdir, "nested", "db.json")))

    def test_no_temp_files_left(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            backend = JsonFileBackend(os.path.join(tmpdir, "db.json"))
            backend.write_many({"a": 1})
            backend.write_many({"b": 2})
            self.assertEqual(os.listdir(tmpdir), ["db.json"])
            with open(os.path.join(tmpdir, "db.json"), encoding="utf-8") as f:
                self.assertEqual(json.load(f), {"a": 1, "b": 2})

    def test_corrupt_file_raises(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "db.json")
            with open(path, "w", encoding="utf-8") as f:
                f.write("{not json")
            with self.assertRaises(PersistenceError):
                JsonFileBackend(path).read("todoList")

    def test_unwritable_path_raises(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            blocker = os.path.join(tmpdir, "blocker")
            with open(blocker, "w", encoding="utf-8") as f:
                f.write("x")
            backend = JsonFileBackend(os.path.join(blocker, "db.json"))
            with self.assertRaises(PersistenceError):
                backend.write_many({"a": 1})


if __name__ == "__main__":
    unittest.main()
