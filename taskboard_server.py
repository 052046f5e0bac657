#!/usr/bin/env python3
"""
Task Board Server
-----------------
Realtime collaborative task board. One authoritative in-memory board with
three columns (todo, inProgress, done); every accepted change is pushed to
all connected clients over Socket.IO in the order it was applied.

Usage:
    taskboard-server                         # defaults, 127.0.0.1:3000
    taskboard-server --host 0.0.0.0 --port 8080
    taskboard-server --seed config/seed.yaml # start with demo tasks
    python taskboard_server.py --config config/taskboard.yaml

Realtime (Socket.IO, default namespace):
    client → server: task:create, task:update, task:move, task:delete
                     (each returns an ack {ok, error?, requestId?})
    server → client: sync:tasks (on connect), task:created, task:updated,
                     task:moved, task:deleted, task:error (origin only)

HTTP (read-only):
    GET /api/board  → JSON: { tasks, stats }
    GET /api/stats  → JSON: { counts, total, completion, by_priority, by_category }
    GET /health     → JSON: { status, sessions, tasks }
"""

import argparse
import logging
import sys
from typing import Optional, Tuple

from flask import Flask, jsonify
from flask_socketio import SocketIO

from taskboard.broadcast import BroadcastCoordinator
from taskboard.config import ServerConfig, ConfigError
from taskboard.gateway import SessionGateway
from taskboard.processor import MutationProcessor
from taskboard.schema import BoardError
from taskboard.stats import board_stats
from taskboard.store import TaskStore

logger = logging.getLogger("taskboard")


# ── App factory ──────────────────────────────────────────────────────────────

def create_app(config: Optional[ServerConfig] = None) -> Tuple[Flask, SocketIO]:
    """Build the Flask app, its Socket.IO server, and a fresh board."""
    config = config or ServerConfig().validate()

    app = Flask(__name__)
    socketio = SocketIO(
        app,
        async_mode=config.async_mode,
        cors_allowed_origins=config.cors_allowed_origins,
        always_connect=True,
    )

    store = TaskStore()
    processor = MutationProcessor(store, max_attachment_bytes=config.max_attachment_bytes)
    coordinator = BroadcastCoordinator(
        store, processor, max_pending=config.max_pending_messages
    )
    gateway = SessionGateway(socketio, processor, coordinator)
    gateway.register()

    seed = config.load_seed()
    if seed:
        processor.seed(seed)

    app.extensions["taskboard"] = gateway
    app.config["TASKBOARD"] = config

    # ── Routes ───────────────────────────────────────────────────────────────

    @app.route("/api/board")
    def api_board():
        tasks = store.snapshot()
        return jsonify({"tasks": tasks, "stats": board_stats(tasks)})

    @app.route("/api/stats")
    def api_stats():
        return jsonify(board_stats(store.snapshot()))

    @app.route("/health")
    def health():
        return jsonify({
            "status": "ok",
            "sessions": len(coordinator),
            "tasks": store.count(),
        })

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    return app, socketio


# ── Main ─────────────────────────────────────────────────────────────────────

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Task Board Server")
    parser.add_argument("--host", help="Bind address (use 0.0.0.0 to expose on network)")
    parser.add_argument("--port", type=int)
    parser.add_argument("--config", help="Path to taskboard.yaml (overrides TASKBOARD_CONFIG)")
    parser.add_argument("--seed", help="YAML file with initial tasks (overrides TASKBOARD_SEED)")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ...")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        config = ServerConfig.load(args.config)
        if args.host:
            config.host = args.host
        if args.port:
            config.port = args.port
        if args.seed:
            config.seed_path = args.seed
        if args.log_level:
            config.log_level = args.log_level
        config.validate()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [taskboard] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    try:
        app, socketio = create_app(config)
    except (ConfigError, BoardError) as e:
        logger.error(f"Failed to load seed: {e}")
        return 2

    url = f"http://{config.host}:{config.port}"
    print(f"""
╔═══════════════════════════════════════╗
║  Task Board Server                    ║
╠═══════════════════════════════════════╣
║  URL:   {url:<30}║
║  Mode:  {config.async_mode:<30}║
║  Seed:  {str(config.seed_path or '-'):<30}║
╚═══════════════════════════════════════╝
""")

    # Werkzeug refuses to start outside debug mode without allow_unsafe_werkzeug
    socketio.run(app, host=config.host, port=config.port, allow_unsafe_werkzeug=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
