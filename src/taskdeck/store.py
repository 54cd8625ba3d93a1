from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, time, timezone
from typing import Protocol, Sequence

from taskdeck.models import FilterMode, Snapshot, Task, TaskDraft, normalize_draft

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class OrderingError(RuntimeError):
    """The collection is not in priority order where it must be."""


class SnapshotStorage(Protocol):
    def load(self) -> Snapshot: ...

    def save(self, tasks: Sequence[Task], categories: Sequence[str]) -> None: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def sort_by_priority(tasks: Iterable[Task]) -> list[Task]:
    """Stable sort, highest priority first; equal priorities keep their order."""
    return sorted(tasks, key=lambda task: -task.rank)


def is_sorted_by_priority(tasks: Sequence[Task]) -> bool:
    return all(left.rank >= right.rank for left, right in zip(tasks, tasks[1:]))


def is_overdue(task: Task, now: datetime) -> bool:
    """Open task whose due day started before ``now``."""
    if task.completed or task.due_date is None:
        return False
    due_start = datetime.combine(task.due_date, time.min, tzinfo=now.tzinfo)
    return due_start < now


def matches_search(task: Task, search_text: str) -> bool:
    needle = search_text.lower()
    if needle in task.name.lower():
        return True
    if task.description and needle in task.description.lower():
        return True
    return bool(task.category and needle in task.category.lower())


class TaskStore:
    """Priority-ordered task collection plus the categories ever used.

    Every mutation computes the next collection, persists it and then
    publishes it, under one lock, so mutations never interleave. Tasks are
    immutable; edits swap in new values.
    """

    def __init__(self, storage: SnapshotStorage | None = None, clock: Clock | None = None) -> None:
        self.storage = storage
        self.clock = clock or utc_now
        self._tasks: tuple[Task, ...] = ()
        self._categories: tuple[str, ...] = ()
        self._last_id = 0
        self._adding = False
        self._lock = threading.RLock()

    # ---- lifecycle ----

    def load(self) -> None:
        """Replace the in-memory state with the stored snapshot."""
        snapshot = self.storage.load() if self.storage is not None else Snapshot.empty()
        with self._lock:
            self._tasks = tuple(sort_by_priority(snapshot.tasks))
            categories = self._union_categories((), snapshot.categories)
            self._categories = self._union_categories(
                categories, (task.category for task in self._tasks)
            )
            self._last_id = max((task.id for task in self._tasks), default=0)
        logger.info("TaskStore loaded tasks=%d categories=%d", len(self._tasks), len(self._categories))

    # ---- read access ----

    @property
    def tasks(self) -> tuple[Task, ...]:
        return self._tasks

    @property
    def categories(self) -> tuple[str, ...]:
        return self._categories

    @property
    def adding(self) -> bool:
        return self._adding

    def __len__(self) -> int:
        return len(self._tasks)

    def get(self, task_id: int) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def top(self) -> Task | None:
        tasks = self._tasks
        return tasks[0] if tasks else None

    @contextmanager
    def adding_in_progress(self) -> Iterator[Callable[[TaskDraft], Task | None] | None]:
        """Mark an add as pending.

        Yields the function that applies the pending add, or None if another
        add already is pending. Until the block exits every other mutation is
        a no-op.
        """
        with self._lock:
            claimed = not self._adding
            if claimed:
                self._adding = True
        try:
            yield self._add if claimed else None
        finally:
            if claimed:
                self._adding = False

    # ---- mutations ----

    def add(self, draft: TaskDraft) -> Task | None:
        with self._lock:
            if self._rejected_while_adding("add"):
                return None
            return self._add(draft)

    def _add(self, draft: TaskDraft) -> Task | None:
        fields = normalize_draft(draft)
        if fields is None:
            return None

        with self._lock:
            now = self.clock()
            task = Task(id=self._allocate_id(now), completed=False, created_at=now, **fields)
            tasks = sort_by_priority([*self._tasks, task])
            categories = self._union_categories(self._categories, [task.category])
            self._commit(tasks, categories)
        logger.debug("Task added id=%s priority=%s", task.id, task.priority)
        return task

    def edit(self, task_id: int, draft: TaskDraft) -> Task | None:
        fields = normalize_draft(draft)
        if fields is None:
            return None

        with self._lock:
            if self._rejected_while_adding("edit"):
                return None
            current = self.get(task_id)
            if current is None:
                return None
            edited = replace(current, **fields)
            tasks = sort_by_priority(edited if task.id == task_id else task for task in self._tasks)
            categories = self._union_categories(self._categories, [edited.category])
            self._commit(tasks, categories)
        logger.debug("Task edited id=%s priority=%s", task_id, edited.priority)
        return edited

    def toggle_completion(self, task_id: int) -> Task | None:
        with self._lock:
            if self._rejected_while_adding("toggle"):
                return None
            current = self.get(task_id)
            if current is None:
                return None
            toggled = replace(current, completed=not current.completed)
            tasks = [toggled if task.id == task_id else task for task in self._tasks]
            self._commit(tasks, self._categories)
        logger.debug("Task toggled id=%s completed=%s", task_id, toggled.completed)
        return toggled

    def remove_top(self) -> Task | None:
        """Remove and return the highest-priority task (earliest among equals)."""
        with self._lock:
            if self._rejected_while_adding("remove_top"):
                return None
            if not self._tasks:
                return None
            if not is_sorted_by_priority(self._tasks):
                raise OrderingError("task collection is not sorted by priority")
            removed, *rest = self._tasks
            self._commit(rest, self._categories)
        logger.debug("Task removed id=%s", removed.id)
        return removed

    # ---- query ----

    def query(
        self,
        search_text: str = "",
        filter_mode: FilterMode | str = FilterMode.ALL,
        now: datetime | None = None,
    ) -> list[Task]:
        """Tasks matching ``search_text`` and ``filter_mode``, in stored order."""
        try:
            mode = FilterMode(filter_mode)
        except ValueError:
            raise ValueError(f"unknown filter mode: {filter_mode!r}") from None
        now = now or self.clock()
        search_text = search_text or ""
        return [
            task
            for task in self._tasks
            if matches_search(task, search_text) and self._matches_filter(task, mode, now)
        ]

    # ---- internals ----

    def _rejected_while_adding(self, operation: str) -> bool:
        if self._adding:
            logger.debug("%s rejected: an add is still pending", operation)
        return self._adding

    @staticmethod
    def _matches_filter(task: Task, mode: FilterMode, now: datetime) -> bool:
        if mode is FilterMode.ACTIVE:
            return not task.completed
        if mode is FilterMode.COMPLETED:
            return task.completed
        if mode is FilterMode.OVERDUE:
            return is_overdue(task, now)
        return True

    @staticmethod
    def _union_categories(existing: tuple[str, ...], new: Iterable[str | None]) -> tuple[str, ...]:
        merged = list(existing)
        for category in new:
            if category and category not in merged:
                merged.append(category)
        return tuple(merged)

    def _allocate_id(self, now: datetime) -> int:
        candidate = int(now.timestamp() * 1000)
        self._last_id = max(candidate, self._last_id + 1)
        return self._last_id

    def _commit(self, tasks: Sequence[Task], categories: tuple[str, ...]) -> None:
        published = tuple(tasks)
        self._persist(published, categories)
        self._tasks = published
        self._categories = categories

    def _persist(self, tasks: tuple[Task, ...], categories: tuple[str, ...]) -> None:
        if self.storage is None:
            return
        try:
            self.storage.save(tasks, categories)
        except OSError:
            logger.exception("Failed to save %d tasks", len(tasks))
