"""
todosync Fixtures — Deterministic Seed Data
============================================
Builds a starter set of projects and tasks. The output is a pure
function of the seed: the same seed always yields the same ids,
titles, flags and timestamps.
"""

from __future__ import annotations

import random
import string

from todosync.models import Project, Task

ID_ALPHABET = string.ascii_letters + string.digits + "_-"
ID_LENGTH = 21

# 2019-01-01T00:00:00Z
BASE_TIME_MS = 1_546_300_800_000

_VERBS = [
    "back up", "bypass", "hack", "override", "compress", "copy", "navigate",
    "index", "connect", "generate", "quantify", "calculate", "synthesize",
    "input", "transmit", "program", "reboot", "parse",
]
_INGVERBS = [
    "backing up", "bypassing", "hacking", "overriding", "compressing",
    "copying", "navigating", "indexing", "connecting", "generating",
    "quantifying", "calculating", "synthesizing", "transmitting",
    "programming", "parsing",
]
_NOUNS = [
    "driver", "protocol", "bandwidth", "panel", "microchip", "program",
    "port", "card", "array", "interface", "system", "sensor", "firewall",
    "hard drive", "pixel", "alarm", "feed", "monitor", "application",
    "transmitter", "bus", "circuit", "capacitor", "matrix",
]


def _make_id(rng: random.Random) -> str:
    return "".join(rng.choice(ID_ALPHABET) for _ in range(ID_LENGTH))


def _hacker_phrase(rng: random.Random) -> str:
    return f"{rng.choice(_VERBS)} {rng.choice(_INGVERBS)} {rng.choice(_NOUNS)}"


def generate_projects(rng: random.Random, count: int = 5,
                      base_time: int = BASE_TIME_MS) -> list[Project]:
    projects = []
    for i in range(count):
        ts = base_time + i
        projects.append(Project(
            id=_make_id(rng),
            title=_hacker_phrase(rng),
            sort_idx=i,
            created_at=ts,
            modified_at=ts,
        ))
    return projects


def generate_tasks(rng: random.Random, projects: list[Project],
                   per_project: int = 4, unassigned: int = 3,
                   base_time: int = BASE_TIME_MS) -> list[Task]:
    """Tasks for each project plus a few with no project."""
    owners = [p.id for p in projects for _ in range(per_project)]
    owners.extend([""] * unassigned)

    tasks = []
    for n, project_id in enumerate(owners):
        ts = base_time + 1000 * (n + 1)
        tasks.append(Task(
            id=_make_id(rng),
            title=_hacker_phrase(rng).capitalize(),
            project_id=project_id,
            sort_idx=rng.randint(0, per_project * 2),
            is_done=rng.random() < 0.25,
            created_at=ts,
            modified_at=ts,
        ))
    return tasks


def generate_fixtures(seed: int, project_count: int = 5, per_project: int = 4,
                      unassigned: int = 3) -> tuple[list[Project], list[Task]]:
    """Seed collection for an empty store.

    Args:
        seed: Any integer; identical seeds give identical output.
        project_count: Number of projects (sortIdx 0..count-1).
        per_project: Tasks created inside each project.
        unassigned: Tasks with ``projectId == ""``.
    """
    rng = random.Random(seed)
    projects = generate_projects(rng, project_count)
    tasks = generate_tasks(rng, projects, per_project, unassigned)
    return projects, tasks
