"""
Broadcast coordinator: fans deltas out to every attached session.

Each session owns an outbox queue drained by its own daemon writer thread,
so a slow or dead connection never delays other sessions or the next
mutation. A session that falls `max_pending` messages behind is detached.
Enqueueing happens under the store lock (attach snapshots and
mutation deltas alike), which gives every session the same total order.

Reconnecting clients are re-onboarded with a fresh snapshot; missed deltas
are never replayed.
"""
import logging
import queue
import threading
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Callable, List

from .processor import Delta, MutationProcessor
from .store import TaskStore

logger = logging.getLogger(__name__)

SYNC_EVENT = "sync:tasks"

# Sentinel that stops a session's writer thread
_CLOSE = object()

# send(sid, event, payload)
SendFn = Callable[[str, str, Dict[str, Any]], None]


class Session:
    """One live connection: an id, an attach time, and an outbox."""

    def __init__(self, sid: str, send: SendFn,
                 on_failure: Optional[Callable[["Session"], None]] = None,
                 max_pending: Optional[int] = None):
        self.sid = sid
        self.attached_at = datetime.now(timezone.utc)
        self.outbox: "queue.Queue" = queue.Queue()
        self.closed = False
        self._send = send
        self._on_failure = on_failure
        self.max_pending = max_pending
        self._writer: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._writer is None:
            self._writer = threading.Thread(
                target=self._drain, name=f"session-{self.sid}", daemon=True
            )
            self._writer.start()

    def push(self, event: str, payload: Dict[str, Any]) -> None:
        """
        Queue a message for delivery. Never blocks.

        Once `max_pending` messages are waiting the session is closed and
        handed to `on_failure` instead.
        """
        if self.closed:
            return
        if self.max_pending is not None and self.outbox.qsize() >= self.max_pending:
            logger.warning(f"Session {self.sid} has {self.max_pending} undelivered messages, dropping it")
            self._fail()
            return
        self.outbox.put((event, payload))

    def _fail(self) -> None:
        self.closed = True
        if self._on_failure:
            self._on_failure(self)

    def close(self) -> None:
        """Stop delivering. Anything still queued is dropped."""
        self.closed = True
        self.outbox.put(_CLOSE)

    def _drain(self) -> None:
        while True:
            item = self.outbox.get()
            try:
                if item is _CLOSE:
                    return
                if self.closed:
                    continue
                event, payload = item
                self._send(self.sid, event, payload)
            except Exception as e:
                logger.warning(f"Send to session {self.sid} failed: {e}")
                self._fail()
            finally:
                self.outbox.task_done()

    def __repr__(self) -> str:
        return f"Session(sid={self.sid!r}, attached_at={self.attached_at.isoformat()})"


class BroadcastCoordinator:
    """Tracks attached sessions and delivers snapshots and deltas to them."""

    def __init__(self, store: TaskStore, processor: MutationProcessor,
                 max_pending: Optional[int] = None):
        self.store = store
        self.processor = processor
        self.max_pending = max_pending
        self.sessions: Dict[str, Session] = {}
        processor.subscribe(self.on_mutation)

    def on_attach(self, session: Session) -> None:
        """Register a session and send it the current board, and only it."""
        with self.store.lock:
            snapshot = self.store.snapshot()
            self.sessions[session.sid] = session
            session.push(SYNC_EVENT, snapshot)
        session.start()
        logger.info(f"Session {session.sid} attached ({len(self.sessions)} connected)")

    def on_mutation(self, delta: Delta, origin: Optional[Session] = None) -> None:
        """
        Queue a delta for every attached session, including the origin.

        The processor calls this while holding the store lock.
        """
        event = delta.event
        payload = delta.to_payload()
        with self.store.lock:
            # A session over its limit detaches itself during push
            for session in list(self.sessions.values()):
                session.push(event, payload)

    def on_detach(self, session: Session) -> None:
        """Drop a session from the fan-out set. Nobody else is notified."""
        with self.store.lock:
            removed = self.sessions.pop(session.sid, None)
        session.close()
        if removed is not None:
            logger.info(f"Session {session.sid} detached ({len(self.sessions)} connected)")

    def send_to(self, session: Session, event: str, payload: Dict[str, Any]) -> None:
        """Queue a message for one session, ordered with its broadcasts."""
        with self.store.lock:
            session.push(event, payload)

    def get(self, sid: str) -> Optional[Session]:
        with self.store.lock:
            return self.sessions.get(sid)

    def attach(self, sid: str, send: SendFn) -> Session:
        """Create a session whose send failures detach it, then attach it."""
        session = Session(sid, send, on_failure=self.on_detach, max_pending=self.max_pending)
        self.on_attach(session)
        return session

    def flush(self) -> None:
        """Block until every attached session's outbox has been drained."""
        with self.store.lock:
            sessions: List[Session] = list(self.sessions.values())
        for session in sessions:
            session.outbox.join()

    def __len__(self) -> int:
        return len(self.sessions)
