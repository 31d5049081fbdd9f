"""
todosync SyncClient — Push Local Patches, Pull Server State
============================================================
Talks to the todosync server over plain HTTP/JSON with urllib, so
the client side needs no extra dependency.

One sync round:
    1. Drain pending UI events into the CacheBridge.
    2. Take every queued patch and POST it to /sync in edit order.
    3. Replace the local cache with the server's merged state.

If the server is unreachable or answers 5xx, the patches go back to
the front of the outbox. A 4xx means the server rejected the batch;
it is logged and dropped. Either way the error is raised. There is no
retry inside a round.
"""

from __future__ import annotations

import json
import logging
import threading
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Optional

from todosync.cache_bridge import CacheBridge
from todosync.errors import SyncError, TransportError

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """What one sync round did."""

    sent: int = 0
    tasks: int = 0
    projects: int = 0
    warnings: list[dict] = field(default_factory=list)


class SyncClient:
    """Client for the /db and /sync endpoints."""

    DEFAULT_BASE_URL = "http://localhost:3000"

    def __init__(self, bridge: CacheBridge, base_url: str = "", timeout: float = 10.0):
        self.bridge = bridge
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, path: str, body: Any = None) -> Any:
        url = f"{self.base_url}{path}"
        data = json.dumps(body).encode("utf-8") if body is not None else None
        req = urllib.request.Request(
            url,
            data=data,
            headers={"Content-Type": "application/json"},
            method=method,
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            raise TransportError(f"{method} {path} failed with HTTP {e.code}", status=e.code) from e
        except urllib.error.URLError as e:
            raise TransportError(f"Cannot reach server at {self.base_url}: {e.reason}") from e

        try:
            return json.loads(raw)
        except ValueError as e:
            raise TransportError(f"{method} {path} returned invalid JSON") from e

    # ─── Whole-state endpoints ────────────────────────────

    def fetch_state(self) -> dict:
        """GET /db."""
        return self._request("GET", "/db")

    def push_state(self, project_list: list, todo_list: list) -> dict:
        """POST /db — replace the server state wholesale."""
        return self._request("POST", "/db", {
            "projectList": project_list,
            "todoList": todo_list,
        })

    # ─── Patch sync ───────────────────────────────────────

    def sync(self) -> SyncReport:
        """Run one sync round. Raises TransportError on failure."""
        self.bridge.drain()
        patches = self.bridge.take_outbox()
        body = [p.to_json() for p in patches]

        try:
            state = self._request("POST", "/sync", body)
        except TransportError as e:
            if e.status is not None and 400 <= e.status < 500:
                # Resending a rejected batch can never succeed
                logger.error("Server rejected %d patches, dropping them: %s", len(patches), e)
            else:
                self.bridge.restore_outbox(patches)
            raise

        self.bridge.replace_cache(state)
        report = SyncReport(
            sent=len(patches),
            tasks=len(state.get("todoList", [])),
            projects=len(state.get("projectList", [])),
            warnings=state.get("warnings", []),
        )
        for warning in report.warnings:
            logger.warning("Server skipped patch: %s", warning)
        logger.info("Synced %d patches; %d tasks now cached", report.sent, report.tasks)
        return report

    def run_periodic(self, interval: float, stop: threading.Event,
                     max_rounds: Optional[int] = None) -> int:
        """Sync every *interval* seconds until *stop* is set.

        A failed round is logged and its patches wait for the next one.
        Returns the number of successful rounds.
        """
        ok = 0
        rounds = 0
        while not stop.is_set():
            try:
                self.sync()
                ok += 1
            except SyncError as e:
                logger.warning("Sync round failed: %s", e)
            rounds += 1
            if max_rounds is not None and rounds >= max_rounds:
                break
            stop.wait(interval)
        return ok
