"""
todosync CLI — Command-Line Interface
======================================
Entry point for running and inspecting a todosync store.

Usage:
    # Run the server (seeding an empty store)
    python -m todosync.cli serve --port 3000 --db todosync_db.json --seed 42

    # Seed a store file without starting the server
    python -m todosync.cli seed --db todosync_db.json --seed 42

    # Print projects and their tasks in display order
    python -m todosync.cli show --db todosync_db.json

    # Pull the server state into a local cache file
    python -m todosync.cli sync --url http://localhost:3000 --cache cache.json
"""

from __future__ import annotations

import argparse
import sys
import threading

from todosync.cache_bridge import CacheBridge, FileStorage
from todosync.config import ServerConfig, configure_logging
from todosync.errors import SyncError
from todosync.models import ordered_tasks
from todosync.server import build_store, run_server
from todosync.sync_client import SyncClient


# ─────────────────────────────────────────────────────────────
#  Helpers
# ─────────────────────────────────────────────────────────────

def _config_from_args(args) -> ServerConfig:
    """Env settings, overridden by any flag the user passed."""
    config = ServerConfig.from_env()
    if getattr(args, "db", None):
        config.db_path = args.db
    if getattr(args, "port", None) is not None:
        config.port = args.port
    if getattr(args, "host", None):
        config.host = args.host
    if getattr(args, "seed", None) is not None:
        config.seed = args.seed
    if getattr(args, "stale_guard", False):
        config.stale_guard = True
    if getattr(args, "log_level", None):
        config.log_level = args.log_level.upper()
    return config


# ─────────────────────────────────────────────────────────────
#  Commands
# ─────────────────────────────────────────────────────────────

def cmd_serve(args):
    """Start the HTTP server."""
    run_server(_config_from_args(args))


def cmd_seed(args):
    """Populate an empty store from fixtures."""
    config = _config_from_args(args)
    store = build_store(ServerConfig(db_path=config.db_path))
    if store.seed(config.seed if config.seed is not None else 0):
        print(f"✔ Seeded {config.db_path}: "
              f"{len(store.projects)} projects, {len(store.tasks)} tasks")
    else:
        print(f"✘ {config.db_path} is not empty; nothing seeded.")


def cmd_show(args):
    """Print every project with its ordered tasks."""
    store = build_store(ServerConfig(db_path=_config_from_args(args).db_path))
    tasks = store.tasks

    groups = [(p.id, p.title) for p in sorted(store.projects, key=lambda p: p.sort_idx)]
    groups.append(("", "(unassigned)"))
    known = {pid for pid, _ in groups}

    for project_id, title in groups:
        print(f"\n◬ {title}")
        for task in ordered_tasks(tasks, project_id):
            mark = "x" if task.is_done else " "
            print(f"  [{mark}] {task.title}  ({task.id})")

    dangling = [t for t in tasks if t.project_id not in known]
    if dangling:
        print("\n◬ (unknown project)")
        for task in ordered_tasks(dangling):
            mark = "x" if task.is_done else " "
            print(f"  [{mark}] {task.title}  ({task.id} → {task.project_id})")


def cmd_sync(args):
    """Sync a local cache file with the server once, or on an interval."""
    bridge = CacheBridge(FileStorage(args.cache))
    client = SyncClient(bridge, base_url=args.url, timeout=args.timeout)

    if args.interval:
        stop = threading.Event()
        try:
            client.run_periodic(args.interval, stop)
        except KeyboardInterrupt:
            stop.set()
        return

    try:
        report = client.sync()
    except SyncError as e:
        print(f"✘ Sync failed: {e}")
        sys.exit(1)
    print(f"✔ Sent {report.sent} patches; cached {report.projects} projects, "
          f"{report.tasks} tasks")
    for warning in report.warnings:
        print(f"  ⚠ {warning['reason']}: {warning['todoId']}.{warning['key']}")


# ─────────────────────────────────────────────────────────────
#  Main
# ─────────────────────────────────────────────────────────────

def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="todosync",
        description="todosync — patch-based task sync server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  todosync serve --seed 42\n"
            "  todosync seed --db todosync_db.json --seed 7\n"
            "  todosync show\n"
            "  todosync sync --cache cache.json\n"
        ),
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: INFO)")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # serve
    p_serve = subparsers.add_parser("serve", help="Run the HTTP server")
    p_serve.add_argument("--port", type=int, default=None, help="Port number (default: 3000)")
    p_serve.add_argument("--host", default=None, help="Bind address (default: 0.0.0.0)")
    p_serve.add_argument("--db", default=None, help="Store file path")
    p_serve.add_argument("--seed", type=int, default=None, help="Seed an empty store")
    p_serve.add_argument("--stale-guard", action="store_true",
                         help="Skip patches older than the task they target")

    # seed
    p_seed = subparsers.add_parser("seed", help="Seed an empty store file")
    p_seed.add_argument("--db", default=None, help="Store file path")
    p_seed.add_argument("--seed", type=int, default=None, help="Fixture seed (default: 0)")

    # show
    p_show = subparsers.add_parser("show", help="Print projects and tasks")
    p_show.add_argument("--db", default=None, help="Store file path")

    # sync
    p_sync = subparsers.add_parser("sync", help="Sync a local cache file with the server")
    p_sync.add_argument("--url", default="", help="Server URL (default: http://localhost:3000)")
    p_sync.add_argument("--cache", default="todosync_cache.json", help="Local cache file")
    p_sync.add_argument("--timeout", type=float, default=10.0, help="Request timeout in seconds")
    p_sync.add_argument("--interval", type=float, default=0,
                        help="Keep syncing every N seconds until interrupted")

    args = parser.parse_args(argv)

    # serve configures logging itself in run_server
    if args.command not in (None, "serve"):
        configure_logging(_config_from_args(args).log_level)

    commands = {
        "serve": cmd_serve,
        "seed": cmd_seed,
        "show": cmd_show,
        "sync": cmd_sync,
    }

    if args.command in commands:
        commands[args.command](args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
