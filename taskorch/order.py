"""Execution-order ("frontier") checks run before a task is started.

The forest is executed strictly left to right, depth first. A task may start only when:

1. every sibling positioned before it (in its parent's child list, or in the top-level list
   for a root task) is done, and
2. the same holds for each of its ancestors relative to that ancestor's own siblings.

`validate_start` checks both and raises `OrderViolationError` with the blocking tasks. It
never mutates the forest. Direct siblings are checked first so the error names the nearest
blocker; ancestor levels are then checked from the parent upward.
"""

from __future__ import annotations

from .errors import BlockingTask, OrderViolationError
from .task import Task
from .tree import find_parent, siblings_of


def blocking_siblings(siblings: list[Task], task: Task) -> list[BlockingTask]:
    """Earlier siblings of `task` that are not done, with their 1-based positions."""
    out: list[BlockingTask] = []
    for pos, sibling in enumerate(siblings, start=1):
        if sibling is task:
            break
        if not sibling.is_done:
            out.append(
                BlockingTask(
                    order=pos,
                    name=sibling.name,
                    status=sibling.status.value,
                    description=sibling.description,
                )
            )
    return out


def render_blocking_table(blocking: list[BlockingTask]) -> str:
    lines = ["| Order | Task Name | Status | Description |", "|-------|-----------|--------|-------------|"]
    for b in blocking:
        desc = b.description.strip() or "No description"
        lines.append(f"| {b.order} | {b.name} | {b.status} | {desc} |")
    return "\n".join(lines)


def _violation_message(*, task: Task, parent: Task | None, ancestor: Task | None, blocking: list[BlockingTask]) -> str:
    head = f'Execution order violation: Cannot start task "{task.name}"'
    if ancestor is not None:
        head += f' because its ancestor "{ancestor.name}" is blocked'
    elif parent is not None:
        head += f' within parent task "{parent.name}"'
    return (
        f"{head}.\n\n"
        f"The following {len(blocking)} task(s) with smaller order values must be completed first:\n\n"
        f"{render_blocking_table(blocking)}\n\n"
        "Please complete these tasks in order."
    )


def validate_start(task: Task, tasks: list[Task]) -> None:
    parent = find_parent(tasks, task.id)
    blocking = blocking_siblings(siblings_of(tasks, task.id), task)
    if blocking:
        raise OrderViolationError(
            _violation_message(task=task, parent=parent, ancestor=None, blocking=blocking),
            task=task,
            blocking=blocking,
        )

    current = parent
    while current is not None:
        owner = find_parent(tasks, current.id)
        level = tasks if owner is None else owner.children
        blocking = blocking_siblings(level, current)
        if blocking:
            raise OrderViolationError(
                _violation_message(task=task, parent=parent, ancestor=current, blocking=blocking),
                task=task,
                blocking=blocking,
                ancestor=current,
            )
        current = owner
