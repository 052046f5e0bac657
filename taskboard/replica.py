"""
Client-side replica maintenance.

apply_delta() is the pure transition a connected client applies for every
broadcast it receives. Starting from a sync:tasks snapshot and applying the
server's deltas in order reproduces the server's board exactly.
"""
import copy
from typing import Dict, List, Any

from .processor import Delta, DeltaKind
from .schema import COLUMNS

BoardDict = Dict[str, List[Dict[str, Any]]]


def normalize(state: BoardDict) -> BoardDict:
    """Deep copy of `state` with every column present."""
    return {column.value: copy.deepcopy(state.get(column.value, [])) for column in COLUMNS}


def apply_delta(state: BoardDict, delta: Delta) -> BoardDict:
    """Return the board after `delta`. `state` is left untouched."""
    new_state = normalize(state)

    if delta.kind == DeltaKind.CREATED:
        new_state[delta.column.value].append(copy.deepcopy(delta.task))

    elif delta.kind == DeltaKind.UPDATED:
        task_id = delta.task.get("id")
        new_state[delta.column.value] = [
            copy.deepcopy(delta.task) if t.get("id") == task_id else t
            for t in new_state[delta.column.value]
        ]

    elif delta.kind == DeltaKind.MOVED:
        source = delta.source_column.value
        new_state[source] = [t for t in new_state[source] if t.get("id") != delta.task_id]
        new_state[delta.target_column.value].append(copy.deepcopy(delta.task))

    elif delta.kind == DeltaKind.DELETED:
        column = delta.column.value
        new_state[column] = [t for t in new_state[column] if t.get("id") != delta.task_id]

    return new_state
