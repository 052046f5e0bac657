"""
Session gateway: the Socket.IO boundary between connections and the core.

Lifecycle:
  connect     → create Session, attach (client receives sync:tasks)
  task:*      → dispatch to MutationProcessor, broadcast follows from the
                processor; the handler's return value is the ack
  disconnect  → detach Session

Rejected operations never close the connection. The origin gets an ack
{"ok": false, "error": {...}} and a task:error event on its own outbox.
"""
import logging
from typing import Optional, Dict, Any

from flask import request
from flask_socketio import SocketIO

from .broadcast import BroadcastCoordinator, Session
from .processor import Delta, MutationProcessor
from .schema import BoardError, InvalidPayload

logger = logging.getLogger(__name__)

ERROR_EVENT = "task:error"
OPERATION_EVENTS = ("task:create", "task:update", "task:move", "task:delete")


def _payload(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise InvalidPayload("payload must be an object")
    return data


def _column(data: Dict[str, Any], key: str = "column") -> Any:
    if data.get(key) is None:
        raise InvalidPayload(f"{key} is required")
    return data[key]


class SessionGateway:
    """Registers Socket.IO handlers and routes operations to the processor."""

    def __init__(self, socketio: SocketIO, processor: MutationProcessor,
                 coordinator: BroadcastCoordinator):
        self.socketio = socketio
        self.processor = processor
        self.coordinator = coordinator

    def register(self) -> None:
        """Attach connect/disconnect and the four operation handlers."""
        self.socketio.on("connect")(self.on_connect)
        self.socketio.on("disconnect")(self.on_disconnect)
        for event in OPERATION_EVENTS:
            self.socketio.on(event)(self._handler(event))

    def _send(self, sid: str, event: str, payload: Dict[str, Any]) -> None:
        self.socketio.emit(event, payload, to=sid)

    # ── Lifecycle ────────────────────────────────────────────────────────────

    def on_connect(self, auth=None):
        self.coordinator.attach(request.sid, self._send)

    def on_disconnect(self, reason=None):
        session = self.coordinator.get(request.sid)
        if session is not None:
            self.coordinator.on_detach(session)
        logger.debug(f"Disconnected {request.sid} ({reason})")

    # ── Operations ───────────────────────────────────────────────────────────

    def _handler(self, event: str):
        def handle(data=None):
            return self.handle(event, data, self.coordinator.get(request.sid))
        handle.__name__ = "on_" + event.replace(":", "_")
        return handle

    def apply(self, event: str, data: Any, origin: Optional[Session] = None) -> Optional[Delta]:
        """Dispatch one operation message to the processor."""
        data = _payload(data)
        if event == "task:create":
            return self.processor.create(_column(data), data, origin=origin)
        if event == "task:update":
            return self.processor.update(_column(data), data, origin=origin)
        if event == "task:move":
            return self.processor.move(
                data.get("taskId"),
                _column(data, "sourceColumn"),
                _column(data, "targetColumn"),
                origin=origin,
            )
        if event == "task:delete":
            return self.processor.delete(data.get("taskId"), _column(data), origin=origin)
        raise InvalidPayload(f"Unknown operation: {event}")

    def handle(self, event: str, data: Any, origin: Optional[Session] = None) -> Dict[str, Any]:
        """Apply an operation and build the ack for the origin."""
        ack: Dict[str, Any] = {"event": event}
        if isinstance(data, dict) and data.get("requestId") is not None:
            ack["requestId"] = data["requestId"]

        try:
            delta = self.apply(event, data, origin)
        except BoardError as e:
            sid = origin.sid if origin else "?"
            logger.warning(f"Rejected {event} from {sid}: {e.kind}: {e}")
            return self._reject(ack, e.to_dict(), origin)
        except Exception as e:
            logger.exception(f"Error handling {event}")
            return self._reject(ack, {"kind": "InternalError", "message": str(e)}, origin)

        ack["ok"] = True
        if delta is None:
            ack["noop"] = True
        else:
            ack["delta"] = {"event": delta.event, "payload": delta.to_payload()}
        return ack

    def _reject(self, ack: Dict[str, Any], error: Dict[str, str],
                origin: Optional[Session]) -> Dict[str, Any]:
        ack["ok"] = False
        ack["error"] = error
        if origin is not None:
            self.coordinator.send_to(origin, ERROR_EVENT, dict(ack))
        return ack
