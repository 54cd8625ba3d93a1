from __future__ import annotations

import json
from datetime import date, datetime, timezone
from pathlib import Path

from taskdeck.models import Task
from taskdeck.storage import TaskStorage

CREATED = datetime(2024, 5, 10, 12, 30, tzinfo=timezone.utc)


def test_load_empty_when_file_missing(tmp_path: Path) -> None:
    snapshot = TaskStorage(tmp_path / "missing.json").load()
    assert snapshot.tasks == []
    assert snapshot.categories == []


def test_round_trip_save_and_load(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "tasks.json"
    storage = TaskStorage(path)
    tasks = [
        Task(
            id=2,
            name="Write report",
            priority="high",
            created_at=CREATED,
            due_date=date(2024, 5, 20),
            category="work",
            description="quarterly numbers",
            estimated_time=90,
        ),
        Task(id=1, name="Buy milk", priority="low", completed=True, created_at=CREATED),
    ]

    storage.save(tasks, ["work", "home"])
    loaded = storage.load()

    assert loaded.tasks == tasks
    assert loaded.categories == ["work", "home"]
    assert isinstance(loaded.tasks[0].created_at, datetime)
    assert isinstance(loaded.tasks[0].due_date, date)


def test_snapshot_format(tmp_path: Path) -> None:
    path = tmp_path / "tasks.json"
    TaskStorage(path).save([Task(id=7, name="Pay rent", created_at=CREATED)], [])

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["categories"] == []
    assert data["tasks"] == [
        {
            "id": 7,
            "name": "Pay rent",
            "priority": "medium",
            "completed": False,
            "createdAt": "2024-05-10T12:30:00+00:00",
            "dueDate": None,
            "category": None,
            "description": None,
            "estimatedTime": None,
        }
    ]


def test_corrupt_file_loads_empty(tmp_path: Path) -> None:
    path = tmp_path / "tasks.json"
    path.write_text("{not json", encoding="utf-8")
    snapshot = TaskStorage(path).load()
    assert snapshot.tasks == []
    assert snapshot.categories == []


def test_wrong_shape_loads_empty(tmp_path: Path) -> None:
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
    assert TaskStorage(path).load().tasks == []


def test_entries_degrade_independently(tmp_path: Path) -> None:
    path = tmp_path / "tasks.json"
    path.write_text(
        json.dumps({"tasks": [{"id": 1, "name": "no date"}], "categories": ["work"]}),
        encoding="utf-8",
    )
    snapshot = TaskStorage(path).load()
    assert snapshot.tasks == []
    assert snapshot.categories == ["work"]

    path.write_text(json.dumps({"tasks": [], "categories": "work"}), encoding="utf-8")
    assert TaskStorage(path).load().categories == []


def _record(**overrides) -> dict:
    record = Task(id=1, name="Pay rent", created_at=CREATED).to_dict()
    record.update(overrides)
    return record


def test_records_breaking_field_types_load_empty(tmp_path: Path) -> None:
    path = tmp_path / "tasks.json"
    storage = TaskStorage(path)

    for bad in (
        {"completed": "false"},
        {"completed": 0},
        {"estimatedTime": -5},
        {"estimatedTime": 0},
        {"estimatedTime": "30"},
        {"estimatedTime": True},
    ):
        path.write_text(
            json.dumps({"tasks": [_record(**bad)], "categories": ["home"]}),
            encoding="utf-8",
        )
        snapshot = storage.load()
        assert snapshot.tasks == [], bad
        assert snapshot.categories == ["home"]

    path.write_text(json.dumps({"tasks": [_record(estimatedTime=25)]}), encoding="utf-8")
    assert storage.load().tasks[0].estimated_time == 25
