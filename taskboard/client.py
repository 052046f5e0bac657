"""
Python clients for the task board server.

BoardClient: realtime client that keeps a local replica in sync over Socket.IO and
    issues operations with acknowledgements.
TaskBoardHTTPClient: read-only HTTP API (board, stats, health).

Dependencies:
    pip install "python-socketio[client]" requests
"""
import logging
import threading
from typing import Optional, Dict, Any, List

import requests
import socketio

from .processor import Delta, DeltaKind
from .replica import apply_delta, normalize
from .schema import empty_board

logger = logging.getLogger(__name__)


class BoardClient:
    """Socket.IO client that mirrors the server board locally."""

    def __init__(self, url: str = "http://localhost:3000", timeout: float = 5):
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.tasks: Dict[str, List[Dict[str, Any]]] = empty_board()
        self.errors: List[Dict[str, Any]] = []
        self.synced = threading.Event()
        self._lock = threading.Lock()

        self.sio = socketio.Client(reconnection_attempts=5, reconnection_delay=1)
        self.sio.on("sync:tasks", self._on_sync)
        self.sio.on("task:error", self._on_error)
        for kind in DeltaKind:
            self.sio.on(kind.value, self._delta_handler(kind.value))

    # ── Connection ───────────────────────────────────────────────────────────

    def connect(self, wait: bool = True) -> bool:
        """Connect and (optionally) wait for the initial sync:tasks snapshot."""
        self.synced.clear()
        self.sio.connect(self.url, transports=["websocket", "polling"])
        if wait:
            return self.synced.wait(self.timeout)
        return True

    def disconnect(self) -> None:
        self.sio.disconnect()

    # ── Incoming ─────────────────────────────────────────────────────────────

    def _on_sync(self, data):
        with self._lock:
            self.tasks = normalize(data or {})
        self.synced.set()

    def _delta_handler(self, event: str):
        def handle(data):
            self._on_delta(event, data)
        return handle

    def _on_delta(self, event: str, data: Dict[str, Any]) -> None:
        delta = Delta.from_event(event, data)
        with self._lock:
            self.tasks = apply_delta(self.tasks, delta)

    def _on_error(self, data):
        logger.warning(f"Server rejected {data.get('event')}: {data.get('error')}")
        self.errors.append(data)

    def board(self) -> Dict[str, List[Dict[str, Any]]]:
        """Copy of the local replica."""
        with self._lock:
            return normalize(self.tasks)

    # ── Operations ───────────────────────────────────────────────────────────

    def _call(self, event: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.sio.call(event, payload, timeout=self.timeout)

    def create_task(self, fields: Dict[str, Any], column: str) -> Dict[str, Any]:
        return self._call("task:create", {**fields, "column": column})

    def update_task(self, fields: Dict[str, Any], column: str) -> Dict[str, Any]:
        return self._call("task:update", {**fields, "column": column})

    def move_task(self, task_id: str, source_column: str,
                  target_column: str) -> Optional[Dict[str, Any]]:
        """Move a task; dropping it back on its own column sends nothing."""
        if source_column == target_column:
            return None
        return self._call("task:move", {
            "taskId": task_id,
            "sourceColumn": source_column,
            "targetColumn": target_column,
        })

    def delete_task(self, task_id: str, column: str) -> Dict[str, Any]:
        return self._call("task:delete", {"taskId": task_id, "column": column})


class TaskBoardHTTPClient:
    """HTTP client for the read-only task board API."""

    def __init__(self, base_url: str = "http://localhost:3000"):
        self.base_url = base_url.rstrip("/")
        self.timeout = 5

    def _get(self, path: str) -> Optional[Dict[str, Any]]:
        try:
            r = requests.get(f"{self.base_url}{path}", timeout=self.timeout)
            if r.ok:
                return r.json()
            logger.warning(f"GET {path} returned {r.status_code}")
        except requests.RequestException as e:
            logger.warning(f"GET {path} failed: {e}")
        return None

    def board(self) -> Optional[Dict[str, Any]]:
        """Current board snapshot, or None if unreachable."""
        data = self._get("/api/board")
        return data.get("tasks") if data else None

    def stats(self) -> Optional[Dict[str, Any]]:
        return self._get("/api/stats")

    def health(self) -> bool:
        """Check if the server is reachable."""
        try:
            r = requests.get(f"{self.base_url}/health", timeout=2)
            return r.ok
        except requests.RequestException:
            return False
