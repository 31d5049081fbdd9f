"""
todosync Test Suite — Fixture Generation
=========================================
Usage:
    python -m pytest tests/test_fixtures.py -v
"""
import sys
import os
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from todosync.fixtures import ID_LENGTH, generate_fixtures
from todosync.models import decode_state, dump_state


class TestGenerateFixtures(unittest.TestCase):

    def test_same_seed_same_output(self):
        self.assertEqual(generate_fixtures(7), generate_fixtures(7))

    def test_different_seed_differs(self):
        self.assertNotEqual(generate_fixtures(7)[1], generate_fixtures(8)[1])

    def test_projects_sorted_by_position(self):
        projects, _ = generate_fixtures(1)
        self.assertEqual([p.sort_idx for p in projects], [0, 1, 2, 3, 4])
        for p in projects:
            # verb + ingverb + noun, some of which are two words
            self.assertGreaterEqual(len(p.title.split()), 3)
            self.assertEqual(p.created_at, p.modified_at)

    def test_ids_unique_and_sized(self):
        projects, tasks = generate_fixtures(3)
        ids = [p.id for p in projects] + [t.id for t in tasks]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertTrue(all(len(i) == ID_LENGTH for i in ids))

    def test_task_distribution(self):
        projects, tasks = generate_fixtures(3, project_count=2, per_project=3, unassigned=2)
        self.assertEqual(len(tasks), 8)
        self.assertEqual(sum(1 for t in tasks if t.project_id == ""), 2)
        for p in projects:
            self.assertEqual(sum(1 for t in tasks if t.project_id == p.id), 3)

    def test_output_is_a_valid_state(self):
        projects, tasks = generate_fixtures(11)
        state = decode_state(dump_state(projects, tasks))
        self.assertEqual(len(state.todo_list), len(tasks))


if __name__ == "__main__":
    unittest.main()
