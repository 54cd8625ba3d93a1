from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Sequence

from taskdeck.models import Snapshot, Task

logger = logging.getLogger(__name__)


class TaskStorage:
    """JSON file holding the ``tasks`` and ``categories`` entries of a snapshot."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> Snapshot:
        """Read the snapshot; anything missing or malformed loads as empty."""
        if not self.path.exists():
            return Snapshot.empty()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Unreadable snapshot %s: %s", self.path, exc)
            return Snapshot.empty()
        if not isinstance(data, dict):
            logger.warning("Snapshot %s is not a JSON object; starting empty", self.path)
            return Snapshot.empty()

        return Snapshot(
            tasks=self._load_tasks(data.get("tasks")),
            categories=self._load_categories(data.get("categories")),
        )

    def save(self, tasks: Sequence[Task], categories: Sequence[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "tasks": [task.to_dict() for task in tasks],
            "categories": list(categories),
        }
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)
        logger.debug("Saved %d tasks to %s", len(payload["tasks"]), self.path)

    def _load_tasks(self, raw: Any) -> list[Task]:
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("Snapshot %s: tasks entry is not a list; ignoring it", self.path)
            return []
        try:
            return [Task.from_dict(item) for item in raw]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Snapshot %s: malformed task record (%s); ignoring tasks", self.path, exc)
            return []

    def _load_categories(self, raw: Any) -> list[str]:
        if raw is None:
            return []
        if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
            logger.warning("Snapshot %s: categories entry is not a list of strings; ignoring it", self.path)
            return []
        return list(raw)
