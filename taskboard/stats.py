"""Display-only aggregates derived from a board snapshot."""
from typing import Dict, List, Any

from .schema import COLUMNS, Column, Priority, Category


def completion_percentage(done: int, total: int) -> int:
    """Share of tasks in done, rounded half up to a whole percent."""
    if total <= 0:
        return 0
    return int(done * 100 / total + 0.5)


def board_stats(state: Dict[str, List[Dict[str, Any]]]) -> Dict[str, Any]:
    """Counts per column, completion, and priority/category breakdowns."""
    counts = {column.value: len(state.get(column.value, [])) for column in COLUMNS}
    total = sum(counts.values())

    by_priority = {p.value: 0 for p in Priority}
    by_category = {c.value: 0 for c in Category}
    for column in COLUMNS:
        for task in state.get(column.value, []):
            pri = task.get("priority", Priority.MEDIUM.value)
            by_priority[pri] = by_priority.get(pri, 0) + 1
            cat = task.get("category", Category.FEATURE.value)
            by_category[cat] = by_category.get(cat, 0) + 1

    return {
        "counts": counts,
        "total": total,
        "completion": completion_percentage(counts[Column.DONE.value], total),
        "by_priority": by_priority,
        "by_category": by_category,
    }
