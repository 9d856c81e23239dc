"""Snapshot persistence for the task forest.

The engine loads a complete snapshot at the start of every operation and saves the complete,
fully mutated snapshot at the end; there is no incremental persistence. Two stores exist:

- `FileTaskStore(path)`: a JSON document `{"tasks": [...]}` on disk.
  - A missing file loads as an empty forest.
  - The top level must be an object and `tasks` (when present) an array, otherwise
    `ValueError` is raised; a malformed file is never silently replaced.
  - Unknown top-level keys are preserved and written back.
  - Task entries missing `id` or `name` are a `ValueError` as well.
  - Nesting deeper than the `json` module can encode or decode is reported as `ValueError`;
    a save that fails this way leaves the file as it was.
  - Saves write UTF-8 JSON with `indent=2`, `ensure_ascii=True` and a trailing newline,
    creating parent directories as needed.
- `MemoryTaskStore()`: keeps the snapshot in the store object itself. It starts empty,
  converts through `Task.to_dict` / `Task.from_dict` on both load and save, so a caller
  holding a snapshot cannot change the stored one without saving it, and chains of any
  depth are copied without recursion. `clear()` discards everything.

Writes are whole-snapshot read-then-overwrite. Two processes writing the same file are not
serialized against each other.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol

from .task import Task


class TaskStore(Protocol):
    def load(self) -> list[Task]: ...

    def save(self, tasks: list[Task]) -> None: ...

    def describe(self) -> str: ...


class FileTaskStore:
    def __init__(self, path: Path) -> None:
        self.path = path
        self._extra: dict[str, Any] = {}

    def describe(self) -> str:
        return f"file {self.path}"

    def load(self) -> list[Task]:
        if not self.path.exists():
            self._extra = {}
            return []
        text = self.path.read_text(encoding="utf-8")
        try:
            raw = json.loads(text)
        except RecursionError:
            raise ValueError(f"task file {self.path} is nested too deeply to decode") from None
        if not isinstance(raw, dict):
            raise ValueError(f"task file must be a JSON object, got {type(raw)}")

        items = raw.get("tasks") or []
        if not isinstance(items, list):
            raise ValueError("task file field 'tasks' must be an array")
        self._extra = {k: v for k, v in raw.items() if k != "tasks"}
        return [Task.from_dict(x) for x in items]

    def save(self, tasks: list[Task]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        d: dict[str, Any] = {"tasks": [t.to_dict() for t in tasks]}
        d.update(self._extra)
        try:
            text = json.dumps(d, indent=2, ensure_ascii=True)
        except RecursionError:
            raise ValueError("task tree is nested too deeply to encode as JSON") from None
        self.path.write_text(text + "\n", encoding="utf-8")


class MemoryTaskStore:
    def __init__(self) -> None:
        self._tasks: list[dict[str, Any]] = []

    def describe(self) -> str:
        return "memory"

    def load(self) -> list[Task]:
        return [Task.from_dict(d) for d in self._tasks]

    def save(self, tasks: list[Task]) -> None:
        self._tasks = [t.to_dict() for t in tasks]

    def clear(self) -> None:
        self._tasks = []
