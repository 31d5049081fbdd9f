"""
todosync Config — Server Settings and Logging Setup
====================================================
Settings come from ``TODOSYNC_*`` environment variables; CLI flags
override them.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_TRUE = {"1", "true", "yes", "on"}


@dataclass
class ServerConfig:
    """Configuration for one server process."""

    db_path: str = "./todosync_db.json"   # JSON file backing the Store
    host: str = "0.0.0.0"
    port: int = 3000
    seed: Optional[int] = None             # Seed an empty store at startup
    stale_guard: bool = False              # Skip patches older than the task
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> ServerConfig:
        env = os.environ if environ is None else environ
        seed = env.get("TODOSYNC_SEED")
        return cls(
            db_path=env.get("TODOSYNC_DB_PATH", cls.db_path),
            host=env.get("TODOSYNC_HOST", cls.host),
            port=int(env.get("TODOSYNC_PORT", cls.port)),
            seed=int(seed) if seed not in (None, "") else None,
            stale_guard=env.get("TODOSYNC_STALE_GUARD", "").strip().lower() in _TRUE,
            log_level=env.get("TODOSYNC_LOG_LEVEL", cls.log_level).upper(),
        )


def configure_logging(level: str = "INFO"):
    """Root logging setup for the server and CLI."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
