"""Task lifecycle engine: create, start, complete, update and delete tasks in a forest.

Every operation follows the same shape:

1. Load a fresh snapshot from the configured store.
2. Validate inputs and tree state (ids resolve, statuses allow the transition, execution
   order holds, children are complete). Nothing is mutated until every check passes, so
   a failed operation leaves the stored snapshot untouched.
3. Mutate the snapshot in memory, including cascades.
4. Save the complete snapshot and return a result built from that same snapshot.

State machine per task: todo -> in_progress -> done. `start` and `complete` never move a
done task backwards; only the unrestricted `update_task` can.

start_task(id)
- Rejects unknown ids and tasks that are already in progress or done.
- Enforces execution order (`order.validate_start`).
- Activates the task: status in_progress; if it is a leaf, any other in-progress leaf is
  reset to todo and that leaf's ancestors are re-derived; todo ancestors become
  in_progress.
- Descends into the first todo child repeatedly (`cascade.find_deepest_incomplete`) and
  activates every node on that path the same way.
- Returns the task, every task that moved to in_progress (in activation order), a message
  describing the descent, and a hierarchy table flagging every task whose status differs
  from the loaded snapshot.

complete_task(id, resolution)
- Rejects unknown ids, done tasks, empty resolutions, and tasks with unfinished children.
- Marks the task done, then auto-completes ancestors whose children are all done.
- Finds the next todo task (`cascade.find_next_task`).
- Returns a message, the next task (if any), and a progress table flagging the completed
  task plus every auto-completed ancestor.

Timestamps
- `created_at` and `updated_at` are set from `EngineConfig.clock` when a task is created.
- `updated_at` moves on every update, and on every task whose status a start or complete
  changes: the task itself, activated and reset tasks, auto-completed ancestors.

Tasks with children are never deleted; deletion does not cascade.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from .cascade import (
    activate_ancestors,
    auto_complete_ancestors,
    find_deepest_incomplete,
    find_next_task,
    reset_active_leaves,
)
from .errors import (
    AlreadyDoneError,
    AlreadyInProgressError,
    HasChildrenError,
    IncompleteChildrenError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from .order import validate_start
from .report import HierarchySummary, ProgressSummary, hierarchy_summary, progress_summary
from .store import TaskStore
from .task import Task, TaskInput, TaskStatus, utc_now
from .tree import find_by_id, siblings_of, walk

AUTO_COMPLETE_NOTE = "Auto-completed: All subtasks completed"


@dataclass(frozen=True)
class EngineConfig:
    store: TaskStore
    auto_complete_note: str = AUTO_COMPLETE_NOTE
    max_input_depth: int = 10
    verbose: bool = False
    clock: Callable[[], datetime] = utc_now


@dataclass
class CreateResult:
    task: Task
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"task": self.task.to_dict()}
        if self.message:
            d["message"] = self.message
        return d


@dataclass
class StartResult:
    task: Task
    started_tasks: list[Task]
    message: str
    hierarchy_summary: HierarchySummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "task": self.task.to_dict(),
            "started_tasks": [t.to_dict() for t in self.started_tasks],
            "message": self.message,
            "hierarchy_summary": self.hierarchy_summary.table,
        }


@dataclass
class CompleteResult:
    task: Task
    message: str
    next_task: Task | None
    progress_summary: ProgressSummary
    auto_completed: list[Task] = field(default_factory=list)

    @property
    def next_task_id(self) -> str | None:
        return self.next_task.id if self.next_task is not None else None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"message": self.message, "progress_summary": self.progress_summary.to_dict()}
        if self.next_task_id is not None:
            d["next_task_id"] = self.next_task_id
        return d


def _require_id(task_id: object) -> str:
    if not task_id or not isinstance(task_id, str):
        raise ValidationError("Task ID is required and must be a string")
    return task_id


def _require_name(name: object, *, label: str = "Task name") -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"{label} is required and must be a non-empty string")
    return name.strip()


def _require_str_list(value: object, *, label: str) -> list[str]:
    if not isinstance(value, list):
        raise ValidationError(f"{label} must be an array")
    if any(not isinstance(v, str) for v in value):
        raise ValidationError(f"All {label.lower()} must be strings")
    return list(value)


def _parse_status(value: TaskStatus | str) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in TaskStatus)
        raise ValidationError(f"Invalid status '{value}'. Must be one of: {valid}") from None


class TaskEngine:
    def __init__(self, cfg: EngineConfig) -> None:
        self.cfg = cfg

    def _log(self, msg: str) -> None:
        if self.cfg.verbose:
            print(f"[taskorch] {msg}", file=sys.stderr)

    def _require_task(self, tasks: list[Task], task_id: str) -> Task:
        task = find_by_id(tasks, task_id)
        if task is None:
            raise NotFoundError(f"Task with id '{task_id}' not found", task_id=task_id)
        return task

    def _validate_inputs(self, inputs: list[TaskInput], *, path: str, depth: int) -> None:
        if depth > self.cfg.max_input_depth:
            raise ValidationError("Task hierarchy too deep")
        for i, spec in enumerate(inputs):
            where = f"{path}[{i}]"
            if not isinstance(spec.name, str) or not spec.name.strip():
                raise ValidationError(f"Task at {where} must have a non-empty name")
            if spec.completion_criteria is not None:
                _require_str_list(spec.completion_criteria, label=f"Completion criteria at {where}")
            if spec.constraints is not None:
                _require_str_list(spec.constraints, label=f"Constraints at {where}")
            self._validate_inputs(spec.tasks, path=f"{where}.tasks", depth=depth + 1)

    # -- plain tree operations --------------------------------------------------------

    def create_task(
        self,
        name: str,
        *,
        description: str = "",
        parent_id: str | None = None,
        insert_index: int | None = None,
        completion_criteria: list[str] | None = None,
        constraints: list[str] | None = None,
        tasks: list[TaskInput] | None = None,
    ) -> CreateResult:
        spec = TaskInput(
            name=_require_name(name),
            description=(description or "").strip(),
            completion_criteria=(
                _require_str_list(completion_criteria, label="Completion criteria")
                if completion_criteria is not None
                else None
            ),
            constraints=(_require_str_list(constraints, label="Constraints") if constraints is not None else None),
            tasks=list(tasks or []),
        )
        if insert_index is not None and (isinstance(insert_index, bool) or not isinstance(insert_index, int)):
            raise ValidationError("Insert index must be an integer")
        self._validate_inputs(spec.tasks, path="tasks", depth=1)

        forest = self.cfg.store.load()
        siblings = forest
        parent: Task | None = None
        if parent_id:
            parent = find_by_id(forest, parent_id)
            if parent is None:
                raise NotFoundError(f"Parent task with id '{parent_id}' not found", task_id=parent_id)
            if parent.status == TaskStatus.DONE:
                raise StateConflictError(f"Cannot add a subtask to completed task '{parent.name}'")
            siblings = parent.children

        task = Task.from_input(spec, now=self.cfg.clock())
        if insert_index is None or insert_index < 0 or insert_index > len(siblings):
            siblings.append(task)
        else:
            siblings.insert(insert_index, task)
        self.cfg.store.save(forest)

        where = f"under '{parent.name}'" if parent is not None else "at top level"
        self._log(f"created '{task.name}' ({task.id}) {where}")

        message = None
        if parent is None:
            message = (
                f"Root task '{task.name}' created successfully. Consider breaking this down into smaller "
                f"subtasks using createTask with parentId='{task.id}' to better organize your workflow "
                "and track progress."
            )
        return CreateResult(task=task, message=message)

    def get_task(self, task_id: str) -> Task:
        return self._require_task(self.cfg.store.load(), _require_id(task_id))

    def list_tasks(self, parent_id: str | None = None) -> list[Task]:
        forest = self.cfg.store.load()
        if not parent_id:
            return forest
        return list(self._require_task(forest, parent_id).children)

    def update_task(
        self,
        task_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        status: TaskStatus | str | None = None,
        resolution: str | None = None,
        completion_criteria: list[str] | None = None,
        constraints: list[str] | None = None,
    ) -> Task:
        _require_id(task_id)
        new_name = _require_name(name, label="Task name") if name is not None else None
        new_status = _parse_status(status) if status is not None else None
        new_criteria = (
            _require_str_list(completion_criteria, label="Completion criteria")
            if completion_criteria is not None
            else None
        )
        new_constraints = _require_str_list(constraints, label="Constraints") if constraints is not None else None

        forest = self.cfg.store.load()
        task = self._require_task(forest, task_id)

        if new_name is not None:
            task.name = new_name
        if description is not None:
            task.description = description.strip()
        if new_criteria is not None:
            task.completion_criteria = new_criteria
        if new_constraints is not None:
            task.constraints = new_constraints
        if resolution is not None:
            task.resolution = resolution.strip() or None
        if new_status is not None:
            task.status = new_status
        if not task.is_done:
            task.resolution = None
        task.touch(self.cfg.clock())

        self.cfg.store.save(forest)
        self._log(f"updated '{task.name}' ({task.id}) status={task.status.value}")
        return task

    def delete_task(self, task_id: str) -> str:
        _require_id(task_id)
        forest = self.cfg.store.load()
        task = self._require_task(forest, task_id)
        if task.children:
            raise HasChildrenError(f"Cannot delete task '{task_id}' because it has child tasks")

        siblings_of(forest, task_id).remove(task)
        self.cfg.store.save(forest)
        self._log(f"deleted '{task.name}' ({task.id})")
        return task_id

    # -- lifecycle ----------------------------------------------------------------------

    def _activate(self, forest: list[Task], task: Task) -> list[Task]:
        task.status = TaskStatus.IN_PROGRESS
        touched = [task]
        if task.is_leaf:
            for reset in reset_active_leaves(forest, keep=task):
                self._log(f"reset '{reset.name}' ({reset.id}) -> {reset.status.value}")
        touched.extend(activate_ancestors(forest, task.id))
        return touched

    def start_task(self, task_id: str) -> StartResult:
        _require_id(task_id)
        forest = self.cfg.store.load()
        task = self._require_task(forest, task_id)
        if task.status == TaskStatus.DONE:
            raise AlreadyDoneError(f"Task '{task_id}' is already completed")
        if task.status == TaskStatus.IN_PROGRESS:
            raise AlreadyInProgressError(f"Task '{task_id}' is already in progress")
        validate_start(task, forest)

        before = {t.id: t.status for t in walk(forest)}
        touched = self._activate(forest, task)
        path = find_deepest_incomplete(task)
        for node in path:
            touched.extend(self._activate(forest, node))

        started: list[Task] = []
        seen: set[str] = set()
        for t in touched:
            if t.id in seen or before[t.id] == TaskStatus.IN_PROGRESS or t.status != TaskStatus.IN_PROGRESS:
                continue
            seen.add(t.id)
            started.append(t)
        now = self.cfg.clock()
        changed: set[str] = set()
        for t in walk(forest):
            if before[t.id] != t.status:
                t.touch(now)
                changed.add(t.id)

        if not path:
            message = f"Task '{task.name}' started. No incomplete subtasks found."
        elif len(path) == 1:
            message = f"Task '{task.name}' started. Direct subtask '{path[0].name}' also started automatically."
        else:
            message = (
                f"Task '{task.name}' started. Auto-started {len(path)} nested tasks down to deepest "
                f"incomplete subtask '{path[-1].name}'."
            )

        self.cfg.store.save(forest)
        self._log(f"started '{task.name}' ({task.id}); in_progress now: {', '.join(t.name for t in started)}")
        return StartResult(
            task=task,
            started_tasks=started,
            message=message,
            hierarchy_summary=hierarchy_summary(forest, changed),
        )

    def complete_task(self, task_id: str, resolution: str) -> CompleteResult:
        _require_id(task_id)
        if not isinstance(resolution, str) or not resolution.strip():
            raise ValidationError("Resolution is required and must be a non-empty string")

        forest = self.cfg.store.load()
        task = self._require_task(forest, task_id)
        if task.is_done:
            raise AlreadyDoneError(f"Task '{task_id}' is already completed")
        incomplete = [c for c in task.children if not c.is_done]
        if incomplete:
            raise IncompleteChildrenError(task, incomplete)

        task.status = TaskStatus.DONE
        task.resolution = resolution.strip()
        auto = auto_complete_ancestors(forest, task.id, note=self.cfg.auto_complete_note)
        now = self.cfg.clock()
        for t in (task, *auto):
            t.touch(now)
        nxt = find_next_task(forest, task)
        self.cfg.store.save(forest)

        message = f"Task '{task.name}' completed."
        if auto:
            message += " Auto-completed parent tasks: " + ", ".join(f"'{a.name}'" for a in auto) + "."
        if nxt is not None:
            message += f" Next task: '{nxt.name}'"
        else:
            message += " No more tasks to execute."

        self._log(f"completed '{task.name}' ({task.id})")
        for a in auto:
            self._log(f"auto-completed '{a.name}' ({a.id})")
        self._log(f"next task: {nxt.name if nxt is not None else '(none)'}")

        changed = {task.id, *(a.id for a in auto)}
        return CompleteResult(
            task=task,
            message=message,
            next_task=nxt,
            progress_summary=progress_summary(forest, changed),
            auto_completed=auto,
        )
