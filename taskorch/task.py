"""taskorch.task

The task model persisted by the stores and mutated by the engine.

Shape
- A forest: the snapshot is a `list[Task]` of top-level tasks; each `Task` exclusively owns
  its `children` list. Position in that list is the execution order among siblings.
- `Task`:
  - `id` (string): opaque unique token (uuid4 hex by default)
  - `name` (string, non-empty)
  - `description` (string, default "")
  - `status` (string enum): "todo" | "in_progress" | "done"
  - `resolution` (string, optional): meaningful only when `status == "done"`
  - `completion_criteria` / `constraints` (array[string])
  - `created_at` / `updated_at` (ISO 8601 strings on disk, under `createdAt` / `updatedAt`)
  - `children` (array[Task]), serialized under the `tasks` key
  - plus any unknown per-task keys captured in `Task.extra`

Parsing rules (JSON -> dataclasses)
- `Task.from_dict(d)` splits known keys from unknown ones; unknown keys are round-tripped.
- Type coercion is forgiving: `id`/`name`/`description` become `str`, list fields become
  `list[str]`, unknown status values fall back to "todo", missing children become `[]`,
  unparseable timestamps become `None`.
- A task object without `id` or `name` is a `ValueError`.

Serialization rules (dataclasses -> JSON)
- `Task.to_dict()` always emits `id`, `name`, `description`, `status`,
  `completion_criteria`, `constraints` and `tasks`.
- `resolution` is emitted only when `status == "done"` and it is truthy.
- Timestamps are emitted only when set.
- `Task.extra` is merged last.

`TaskInput` is the boundary type for nested creation requests. It carries no runtime state;
`Task.from_input` turns it into a fresh todo subtree.

Both directions walk the tree with an explicit stack, so very deep chains convert without
hitting the interpreter recursion limit.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

_KNOWN_KEYS = {
    "id",
    "name",
    "description",
    "status",
    "resolution",
    "completion_criteria",
    "constraints",
    "createdAt",
    "updatedAt",
    "tasks",
}


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


def new_task_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(raw: Any) -> datetime | None:
    if not isinstance(raw, str) or not raw:
        return None
    text = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


@dataclass
class TaskInput:
    name: str
    description: str = ""
    completion_criteria: list[str] | None = None
    constraints: list[str] | None = None
    tasks: list["TaskInput"] = field(default_factory=list)


@dataclass
class Task:
    name: str
    id: str = field(default_factory=new_task_id)
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    resolution: str | None = None
    completion_criteria: list[str] = field(default_factory=list)
    constraints: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    children: list["Task"] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE

    def touch(self, now: datetime) -> None:
        self.updated_at = now

    @staticmethod
    def from_input(spec: TaskInput, *, now: datetime | None = None) -> "Task":
        return Task(
            name=spec.name.strip(),
            description=spec.description.strip(),
            completion_criteria=list(spec.completion_criteria or []),
            constraints=list(spec.constraints or []),
            created_at=now,
            updated_at=now,
            children=[Task.from_input(c, now=now) for c in spec.tasks],
        )

    @staticmethod
    def _from_fields(d: Any) -> tuple["Task", list[Any]]:
        if not isinstance(d, Mapping):
            raise ValueError(f"task entry must be a JSON object, got {type(d)}")
        for key in ("id", "name"):
            if key not in d:
                raise ValueError(f"task entry is missing required field {key!r}")
        known: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for k, v in d.items():
            if k in _KNOWN_KEYS:
                known[k] = v
            else:
                extra[k] = v

        children = known.get("tasks") or []
        if not isinstance(children, list):
            raise ValueError(f"task {known['id']!r} field 'tasks' must be an array")
        status_raw = known.get("status", TaskStatus.TODO.value)
        try:
            status = TaskStatus(str(status_raw))
        except ValueError:
            status = TaskStatus.TODO

        resolution = known.get("resolution")
        task = Task(
            id=str(known["id"]),
            name=str(known["name"]),
            description=str(known.get("description") or ""),
            status=status,
            resolution=(str(resolution) if resolution is not None else None),
            completion_criteria=[str(x) for x in (known.get("completion_criteria") or [])],
            constraints=[str(x) for x in (known.get("constraints") or [])],
            created_at=_parse_timestamp(known.get("createdAt")),
            updated_at=_parse_timestamp(known.get("updatedAt")),
            extra=extra,
        )
        return task, children

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "Task":
        root, raw_children = Task._from_fields(d)
        stack = [(root, raw_children)]
        while stack:
            parent, raws = stack.pop()
            for raw in raws:
                child, grandchildren = Task._from_fields(raw)
                parent.children.append(child)
                stack.append((child, grandchildren))
        return root

    def _fields_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status.value,
            "completion_criteria": list(self.completion_criteria),
            "constraints": list(self.constraints),
            "tasks": [],
        }
        if self.status == TaskStatus.DONE and self.resolution:
            d["resolution"] = self.resolution
        if self.created_at is not None:
            d["createdAt"] = self.created_at.isoformat()
        if self.updated_at is not None:
            d["updatedAt"] = self.updated_at.isoformat()
        d.update(self.extra)
        return d

    def to_dict(self) -> dict[str, Any]:
        root = self._fields_dict()
        stack = [(self, root)]
        while stack:
            task, out = stack.pop()
            for child in task.children:
                child_out = child._fields_dict()
                out["tasks"].append(child_out)
                stack.append((child, child_out))
        return root
