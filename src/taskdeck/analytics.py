from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Iterable

from taskdeck.models import PRIORITY_RANK, Task
from taskdeck.store import is_overdue


def completion_rate(tasks: Iterable[Task]) -> float:
    task_list = list(tasks)
    if not task_list:
        return 0.0
    done = sum(1 for task in task_list if task.completed)
    return round((done / len(task_list)) * 100, 2)


def priority_distribution(tasks: Iterable[Task]) -> dict[str, int]:
    distribution = {priority: 0 for priority in PRIORITY_RANK}
    for task in tasks:
        distribution[task.priority] += 1
    return distribution


def overdue_count(tasks: Iterable[Task], now: datetime) -> int:
    return sum(1 for task in tasks if is_overdue(task, now))


def category_counts(tasks: Iterable[Task]) -> dict[str, int]:
    """Tasks per category, in order of first appearance; uncategorized tasks are skipped."""
    return dict(Counter(task.category for task in tasks if task.category))
