"""Shared fixtures for the task board tests."""

import sys
import threading
from pathlib import Path

import pytest

# Ensure the repository root is importable without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

from taskboard.broadcast import BroadcastCoordinator
from taskboard.processor import MutationProcessor
from taskboard.store import TaskStore


class Recorder:
    """Stand-in transport: records every (event, payload) sent per session."""

    def __init__(self):
        self.sent = {}
        self._lock = threading.Lock()

    def __call__(self, sid, event, payload):
        with self._lock:
            self.sent.setdefault(sid, []).append((event, payload))

    def events(self, sid):
        return [event for event, _ in self.sent.get(sid, [])]

    def messages(self, sid):
        return list(self.sent.get(sid, []))


@pytest.fixture
def store():
    return TaskStore()


@pytest.fixture
def processor(store):
    return MutationProcessor(store, max_attachment_bytes=1024)


@pytest.fixture
def coordinator(store, processor):
    return BroadcastCoordinator(store, processor)


@pytest.fixture
def recorder():
    return Recorder()
