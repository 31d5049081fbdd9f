"""
todosync — Patch-Based Task Sync Between a Client Cache and a Server Store
==========================================================================
A server holds the authoritative project and task lists; clients keep
a local cached copy, queue field-level edits as patches, and
periodically reconcile through the server.

Architecture:
    Store        — Authoritative state, durable JSON persistence
    PatchMerger  — Ordered, per-field last-write-wins patch application
    CacheBridge  — UI runtime events ⇄ local key-value storage
    SyncClient   — Sends queued patches, replaces the local cache
    Server       — FastAPI surface (/db, /sync)
"""

__version__ = "0.1.0"

from todosync.errors import (
    SyncError, ValidationError, UnknownTaskError, PersistenceError, TransportError,
)
from todosync.models import (
    Project, Task, TitlePatch, ProjectIdPatch, SortIdxPatch, IsDonePatch,
    StateBody, decode_patch, decode_patches, decode_state, ordered_tasks,
)
from todosync.merger import MergeResult, PatchMerger
from todosync.store import Store
from todosync.cache_bridge import CacheBridge, EventChannel, FileStorage, MemoryStorage
from todosync.sync_client import SyncClient, SyncReport

__all__ = [
    "SyncError", "ValidationError", "UnknownTaskError", "PersistenceError", "TransportError",
    "Project", "Task", "TitlePatch", "ProjectIdPatch", "SortIdxPatch", "IsDonePatch",
    "StateBody", "decode_patch", "decode_patches", "decode_state", "ordered_tasks",
    "MergeResult", "PatchMerger",
    "Store",
    "CacheBridge", "EventChannel", "FileStorage", "MemoryStorage",
    "SyncClient", "SyncReport",
]
