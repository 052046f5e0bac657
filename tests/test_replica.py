"""
Tests for apply_delta(): client replicas converge on the server board.
"""
from taskboard.processor import Delta, DeltaKind
from taskboard.replica import apply_delta, normalize
from taskboard.schema import Column

T1 = {"id": "t1", "title": "T1", "description": "", "priority": "Medium",
      "category": "Feature", "attachments": []}


def test_created_appends():
    state = {"todo": [], "inProgress": [], "done": []}
    new = apply_delta(state, Delta(kind=DeltaKind.CREATED, column=Column.TODO, task=T1))
    assert new["todo"] == [T1]
    assert state["todo"] == []


def test_updated_replaces_in_place():
    t0 = {**T1, "id": "t0", "title": "T0"}
    state = {"todo": [t0, T1], "inProgress": [], "done": []}
    changed = {**T1, "title": "Renamed"}
    new = apply_delta(state, Delta(kind=DeltaKind.UPDATED, column=Column.TODO, task=changed))
    assert new["todo"] == [t0, changed]
    assert state["todo"][1]["title"] == "T1"


def test_moved_relocates_to_tail():
    other = {**T1, "id": "t2"}
    state = {"todo": [T1], "inProgress": [other], "done": []}
    new = apply_delta(state, Delta(
        kind=DeltaKind.MOVED, task_id="t1", task=T1,
        source_column=Column.TODO, target_column=Column.IN_PROGRESS,
    ))
    assert new == {"todo": [], "inProgress": [other, T1], "done": []}


def test_deleted_removes():
    state = {"todo": [T1], "inProgress": [], "done": []}
    new = apply_delta(state, Delta(kind=DeltaKind.DELETED, task_id="t1", column=Column.TODO))
    assert new == {"todo": [], "inProgress": [], "done": []}
    assert state["todo"] == [T1]


def test_normalize_fills_missing_columns():
    assert normalize({"todo": [T1]}) == {"todo": [T1], "inProgress": [], "done": []}


def test_replica_converges_with_server(processor, store):
    """Replaying every published delta over the initial snapshot reproduces the store."""
    replica = store.snapshot()
    deltas = []
    processor.subscribe(lambda delta, origin: deltas.append(delta))

    a = processor.create("todo", {"title": "A"}).task
    b = processor.create("todo", {"title": "B", "priority": "High"}).task
    processor.create("done", {"title": "C"})
    processor.move(a["id"], "todo", "inProgress")
    processor.update("todo", {"id": b["id"], "title": "B2", "attachments": [{"name": "x.png"}]})
    processor.move(b["id"], "todo", "done")
    processor.delete(a["id"], "inProgress")

    for delta in deltas:
        replica = apply_delta(replica, delta)
    assert replica == store.snapshot()
